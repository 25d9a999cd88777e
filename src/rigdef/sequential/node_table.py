"""Canonical node table and name index for one module.

The table is an arena: a growable list of ``TableEntry`` records indexed by
slot. Name and number lookups are secondary indices over the same list.
Slots are assigned on append and never reused or reordered.
"""

from __future__ import annotations

from collections.abc import Iterator

from rigdef.node_refs import ByName, ByNumber, Slot, node_ref_to_json
from rigdef.sequential.types import (
    CANONICAL_GROUPS,
    CANONICAL_RANK,
    CANONICAL_SEQUENCE,
    WHEEL_NODES_PER_RAY,
    SectionKind,
    SubRole,
    TableEntry,
    WheelKind,
)


def wheel_node_layout(section: WheelKind, num_rays: int) -> list[tuple[SubRole, int]]:
    """Return the (sub-role, ray index) sequence generated by one wheel.

    Two nodes per ray: tire side A then side B, ray by ray.
    Four nodes per ray: the whole rim ring first (A/B per ray), then the
    whole tire ring in the same order.
    """
    if num_rays < 0:
        raise ValueError(f"num_rays must be >= 0, got {num_rays}")
    per_ray = WHEEL_NODES_PER_RAY[section]
    tire = [(role, ray) for ray in range(num_rays) for role in ("tire_a", "tire_b")]
    if per_ray == 2:
        return tire  # type: ignore[return-value]
    rim = [(role, ray) for ray in range(num_rays) for role in ("rim_a", "rim_b")]
    return rim + tire  # type: ignore[return-value]


class NodeTable:
    """Append-only registry of canonical node slots."""

    __slots__ = ("_entries", "_by_name", "_by_number", "_counts", "_last_rank")

    def __init__(self) -> None:
        self._entries: list[TableEntry] = []
        self._by_name: dict[str, int] = {}
        self._by_number: dict[int, int] = {}
        self._counts: dict[SectionKind, int] = {kind: 0 for kind in CANONICAL_SEQUENCE}
        self._last_rank = 0

    # ── Registration ──────────────────────────────────────────

    def _append(self, entry: TableEntry) -> Slot:
        slot = Slot(len(self._entries))
        self._entries.append(entry)
        self._counts[entry.origin_section] += 1
        self._last_rank = max(self._last_rank, CANONICAL_RANK[entry.origin_section])
        return slot

    def add_numbered(self, number: int) -> Slot | None:
        """Append a numbered node. Returns None if the number is taken."""
        if number in self._by_number:
            return None
        slot = self._append(TableEntry("numbered_nodes", None, ByNumber(number), 0))
        self._by_number[number] = slot.index
        return slot

    def add_named(self, name: str) -> Slot | None:
        """Append a named node. Returns None if the name is taken."""
        if name in self._by_name:
            return None
        slot = self._append(TableEntry("named_nodes", None, ByName(name), 0))
        self._by_name[name] = slot.index
        return slot

    def add_generated(
        self,
        section: SectionKind,
        subrole: SubRole | None = None,
        sub_index: int = 0,
    ) -> Slot:
        if section in ("numbered_nodes", "named_nodes"):
            raise ValueError(f"{section} nodes must be registered with a user id")
        return self._append(TableEntry(section, subrole, None, sub_index))

    def add_wheel(self, section: WheelKind, num_rays: int) -> list[Slot]:
        return [
            self._append(TableEntry(section, subrole, None, ray))
            for subrole, ray in wheel_node_layout(section, num_rays)
        ]

    def precedes_registered(self, section: SectionKind) -> bool:
        """True if appending ``section`` now would break canonical order."""
        return CANONICAL_RANK[section] < self._last_rank

    # ── Lookup ────────────────────────────────────────────────

    def slot_for_number(self, number: int) -> Slot | None:
        index = self._by_number.get(number)
        return None if index is None else Slot(index)

    def slot_for_name(self, name: str) -> Slot | None:
        index = self._by_name.get(name)
        return None if index is None else Slot(index)

    def entry(self, slot: Slot) -> TableEntry | None:
        if slot.index >= len(self._entries):
            return None
        return self._entries[slot.index]

    def count(self, section: SectionKind) -> int:
        return self._counts[section]

    def section_base_offset(self, section: SectionKind) -> int:
        """Slots occupied by all canonically preceding section groups."""
        rank = CANONICAL_RANK[section]
        return sum(
            self._counts[kind]
            for group in CANONICAL_GROUPS[:rank]
            for kind in group
        )

    def section_size(self, section: SectionKind) -> int:
        """Slots occupied by the canonical group ``section`` belongs to."""
        return sum(self._counts[kind] for kind in CANONICAL_GROUPS[CANONICAL_RANK[section]])

    @property
    def entries(self) -> tuple[TableEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[Slot, TableEntry]]:
        for index, entry in enumerate(self._entries):
            yield Slot(index), entry

    def __repr__(self) -> str:
        return f"NodeTable({len(self._entries)} slots, {len(self._by_name)} named)"


def node_table_to_dict(table: NodeTable) -> list[dict[str, object]]:
    """Serialize every slot of a table to a JSON-safe record."""

    return [
        {
            "slot": slot.index,
            "origin_section": entry.origin_section,
            "origin_subrole": entry.origin_subrole,
            "user_id": None if entry.user_id is None else node_ref_to_json(entry.user_id),
            "sub_index": entry.sub_index,
        }
        for slot, entry in table
    ]
