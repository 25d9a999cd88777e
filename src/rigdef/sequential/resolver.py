"""Sequential node-reference resolver.

Legacy rig files addressed nodes by their position in one flat node array.
Explicit nodes took the positions they were declared at, and sections such as
cinecam and wheels appended generated nodes wherever they happened to appear
in the file. Reordering the file renumbered everything after the move.

This resolver builds, per module, a canonical node table whose layout does
not depend on section order:

    1. nodes, nodes2    [1 per entry; all nodes blocks first]
    2. cinecam          [1 per entry]
    3. wheels           [num_rays * 2]
    4. wheels2          [num_rays * 4]
    5. meshwheels       [num_rays * 2]
    6. meshwheels2      [num_rays * 2]
    7. flexbodywheels   [num_rays * 4]

and then rewrites every node reference and node range in the module to a
``Slot`` in that table. Failures never propagate: they are recorded as
diagnostics and the offending reference is left ``Unresolved``.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from rigdef.document import Cinecam, Module, NodeDef, RigDocument, WheelDef
from rigdef.node_refs import (
    ByName,
    ByNumber,
    NodeRange,
    NodeRef,
    Slot,
    Unresolved,
    is_node_ref,
)
from rigdef.sequential.config import ResolverConfig
from rigdef.sequential.diagnostics import DiagnosticsCollector
from rigdef.sequential.node_table import NodeTable, node_table_to_dict
from rigdef.sequential.types import (
    CANONICAL_GROUPS,
    CANONICAL_SEQUENCE,
    WHEEL_KINDS,
    WHEEL_NODES_PER_RAY,
    Message,
    SectionKind,
    Severity,
    SubRole,
    WheelKind,
)


log = logging.getLogger(__name__)

NODE_KEYWORDS: tuple[str, ...] = ("nodes", "nodes2")
GENERATOR_KINDS: tuple[SectionKind, ...] = ("cinecam", *WHEEL_KINDS)


@dataclass(frozen=True, slots=True)
class WheelRegistration:
    """Bookkeeping for one ``register_wheel_nodes`` call."""
    section: WheelKind
    first_slot: Slot | None  # None when the wheel has no rays
    num_rays: int
    has_rigidity_node: bool


class SequentialResolver:
    """Builds canonical node tables and rewrites node references in place.

    One instance serves one document load. It is not safe to share between
    concurrent ``process`` calls.
    """

    __slots__ = (
        "_config",
        "_enabled",
        "_table",
        "_tables",
        "_diagnostics",
        "_wheels",
        "_legacy_layout",
        "_entry_slots",
        "_defining_slots",
        "_total_resolved",
        "_num_resolved_to_self",
        "_num_legacy_translations",
    )

    def __init__(self, config: ResolverConfig | None = None) -> None:
        self._config = config or ResolverConfig()
        self.init(self._config.enabled)

    # ── Lifecycle ─────────────────────────────────────────────

    def init(self, enabled: bool) -> None:
        """Reset all run state. When ``enabled`` is False every operation
        becomes a no-op and references pass through unchanged."""
        self._enabled = enabled
        self._table = NodeTable()
        self._tables: dict[str, NodeTable] = {}
        self._diagnostics = DiagnosticsCollector()
        self._wheels: list[WheelRegistration] = []
        self._legacy_layout: list[Slot] = []
        self._entry_slots: dict[int, range] = {}
        self._defining_slots = range(0)
        self._total_resolved = 0
        self._num_resolved_to_self = 0
        self._num_legacy_translations = 0

    def disable(self) -> None:
        self._enabled = False
        self._table = NodeTable()
        self._tables = {}
        self._legacy_layout = []
        self._entry_slots = {}

    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def config(self) -> ResolverConfig:
        return self._config

    # ── Node map builder ──────────────────────────────────────

    def _check_order(self, section: SectionKind) -> None:
        if self._table.precedes_registered(section):
            self.emit(
                "warning",
                f"{section} node registered after a canonically later section; "
                "positional lookups in this module are unreliable",
            )

    def register_numbered_node(self, number: int) -> bool:
        if not self._enabled:
            return False
        self._check_order("numbered_nodes")
        if self._table.add_numbered(number) is None:
            first = self._table.slot_for_number(number)
            self.emit(
                "error",
                f"duplicate node number {number}; keeping first definition at slot {first}",
            )
            return False
        return True

    def register_named_node(self, name: str) -> bool:
        if not self._enabled:
            return False
        self._check_order("named_nodes")
        if self._table.add_named(name) is None:
            first = self._table.slot_for_name(name)
            self.emit(
                "error",
                f"duplicate node name '{name}'; keeping first definition at slot {first}",
            )
            return False
        return True

    def register_generated_node(self, section: SectionKind, subrole: SubRole | None = None) -> bool:
        if not self._enabled:
            return False
        self._check_order(section)
        self._table.add_generated(section, subrole)
        return True

    def register_wheel_nodes(self, section: WheelKind, num_rays: int, has_rigidity_node: bool) -> bool:
        if not self._enabled:
            return False
        self._check_order(section)
        slots = self._table.add_wheel(section, num_rays)
        self._wheels.append(
            WheelRegistration(
                section=section,
                first_slot=slots[0] if slots else None,
                num_rays=num_rays,
                has_rigidity_node=has_rigidity_node,
            ),
        )
        return True

    # ── Reference resolver ────────────────────────────────────

    def section_base_offset(self, section: SectionKind) -> int:
        return self._table.section_base_offset(section)

    def resolve_by_position(self, section: SectionKind, index: int) -> NodeRef:
        """Slot of the ``index``-th node generated by ``section`` in this module."""
        if not self._enabled:
            return Unresolved()
        size = self._table.section_size(section)
        if not 0 <= index < size:
            self.emit("error", f"position {index} out of range for {section} ({size} nodes)")
            return Unresolved()
        return Slot(self.section_base_offset(section) + index)

    def resolve_reference(self, ref: NodeRef) -> NodeRef:
        if not self._enabled:
            return ref
        match ref:
            case Slot():
                return ref
            case Unresolved():
                self.emit("error", f"node reference {ref} cannot be resolved")
                return ref
            case ByName(name=name):
                slot = self._table.slot_for_name(name)
                if slot is None:
                    self.emit("error", f"named node '{name}' not found")
                    return Unresolved(ref)
            case ByNumber(number=number):
                slot = self._table.slot_for_number(number)
                if slot is None and self._config.legacy_positional_fallback:
                    slot = self._translate_legacy_position(number)
                if slot is None:
                    self.emit(
                        "error",
                        f"node number {number} is not defined (undefined or forward reference)",
                    )
                    return Unresolved(ref)
            case _:
                raise TypeError(f"not a node reference: {ref!r}")

        self._total_resolved += 1
        if slot.index in self._defining_slots:
            self._num_resolved_to_self += 1
            if self._config.report_self_references:
                self.emit("info", f"node {ref} resolves to a node this entry defines ({slot})")
        return slot

    def _translate_legacy_position(self, number: int) -> Slot | None:
        """Map a legacy node array position to its canonical slot.

        Numbered nodes were already looked up by number, so only named and
        generated nodes are reachable this way.
        """
        if number >= len(self._legacy_layout):
            return None
        slot = self._legacy_layout[number]
        entry = self._table.entry(slot)
        if entry is None or isinstance(entry.user_id, ByNumber):
            return None
        self._num_legacy_translations += 1
        self.emit(
            "warning",
            f"legacy positional reference {number} translated to slot {slot} ({entry.origin_section})",
        )
        return slot

    def resolve_range(self, node_range: NodeRange) -> NodeRange:
        if not self._enabled:
            return node_range
        resolved = NodeRange(
            start=self.resolve_reference(node_range.start),
            end=self.resolve_reference(node_range.end),
        )
        if not resolved.is_resolved():
            self.emit("error", f"node range {node_range} left partially resolved as {resolved}")
            return resolved
        if (
            self._config.warn_on_range_reorder
            and isinstance(node_range.start, ByNumber)
            and isinstance(node_range.end, ByNumber)
            and isinstance(resolved.start, Slot)
            and isinstance(resolved.end, Slot)
        ):
            legacy_span = node_range.end.number - node_range.start.number
            canonical_span = resolved.end.index - resolved.start.index
            if legacy_span != canonical_span:
                self.emit(
                    "warning",
                    f"node range {node_range} now spans {resolved}; "
                    "nodes between the endpoints may have changed",
                )
        return resolved

    # ── Processing ────────────────────────────────────────────

    def process(self, document: RigDocument) -> None:
        """Resolve all node references of every module in place."""
        if not self._enabled:
            log.debug("resolver disabled; leaving %r untouched", document.name)
            return
        for module in document.modules:
            self._process_module(module)
        log.info(
            "resolved %r: %d modules, %d errors, %d warnings",
            document.name,
            len(document.modules),
            self.error_count(),
            self.warning_count(),
        )

    def _process_module(self, module: Module) -> None:
        self._diagnostics.current_module = module.name
        self._diagnostics.current_section = ""
        if module.name in self._tables:
            self.emit("warning", f"module '{module.name}' appears more than once")
        self._table = NodeTable()
        self._tables[module.name] = self._table
        self._legacy_layout = []
        self._entry_slots = {}

        self._build_node_map(module)
        self._map_generated_entries(module)
        self._rewrite_module(module)

        self._defining_slots = range(0)
        self._diagnostics.current_section = ""
        log.debug("module %r: %d canonical slots", module.name, len(self._table))

    def _build_node_map(self, module: Module) -> None:
        """Register nodes in canonical order, regardless of document order."""
        for group in CANONICAL_GROUPS:
            if group == ("numbered_nodes", "named_nodes"):
                # all nodes blocks, then all nodes2 blocks
                for keyword in NODE_KEYWORDS:
                    for section in module.sections_by_keyword(keyword):
                        self._diagnostics.current_section = section.keyword
                        for entry in section.entries:
                            self._register_node_def(entry)
                continue
            kind = group[0]
            for section in module.sections_by_keyword(kind):
                self._diagnostics.current_section = section.keyword
                for entry in section.entries:
                    if self._generated_count(kind, entry) is None:
                        self.emit("error", f"unexpected {type(entry).__name__} entry in {kind}")
                    elif kind == "cinecam":
                        self.register_generated_node(kind)
                    else:
                        self.register_wheel_nodes(kind, entry.num_rays, entry.has_rigidity_node)

    def _register_node_def(self, entry: Any) -> None:
        if not isinstance(entry, NodeDef):
            self.emit("error", f"unexpected {type(entry).__name__} entry in node section")
            return
        match entry.node_id:
            case ByNumber(number=number):
                ok = self.register_numbered_node(number)
            case ByName(name=name):
                ok = self.register_named_node(name)
            case other:
                self.emit("error", f"node definition has no usable id ({other})")
                return
        if ok:
            slot = len(self._table) - 1
            self._entry_slots[id(entry)] = range(slot, slot + 1)

    @staticmethod
    def _generated_count(kind: SectionKind, entry: Any) -> int | None:
        if kind == "cinecam":
            return 1 if isinstance(entry, Cinecam) else None
        if isinstance(entry, WheelDef):
            return entry.num_rays * WHEEL_NODES_PER_RAY[kind]  # type: ignore[index]
        return None

    def _map_generated_entries(self, module: Module) -> None:
        """Assign each node-producing entry its slots and record the legacy
        (document-order) node array layout."""
        cursor: dict[SectionKind, int] = {kind: 0 for kind in GENERATOR_KINDS}
        for section in module.sections:
            self._diagnostics.current_section = section.keyword
            if section.keyword in NODE_KEYWORDS:
                for entry in section.entries:
                    slots = self._entry_slots.get(id(entry))
                    if slots is not None:
                        self._legacy_layout.extend(Slot(i) for i in slots)
                continue
            if section.keyword not in GENERATOR_KINDS:
                continue
            kind: SectionKind = section.keyword  # type: ignore[assignment]
            for entry in section.entries:
                count = self._generated_count(kind, entry)
                if not count:
                    continue
                first = self.resolve_by_position(kind, cursor[kind])
                cursor[kind] += count
                if isinstance(first, Slot):
                    slots = range(first.index, first.index + count)
                    self._entry_slots[id(entry)] = slots
                    self._legacy_layout.extend(Slot(i) for i in slots)

    def _rewrite_module(self, module: Module) -> None:
        for section in module.sections:
            self._diagnostics.current_section = section.keyword
            for entry in section.entries:
                if not dataclasses.is_dataclass(entry) or isinstance(entry, type):
                    continue
                slots = self._entry_slots.get(id(entry), range(0))
                self._defining_slots = slots
                if section.keyword in GENERATOR_KINDS and hasattr(entry, "base_slot"):
                    entry.base_slot = Slot(slots.start) if slots else None
                self._rewrite_entry(entry)

    def _rewrite_entry(self, entry: Any) -> None:
        for f in dataclasses.fields(entry):
            if f.metadata.get("ref_kind") == "definition":
                continue
            value = getattr(entry, f.name)
            rewritten = self._rewrite_value(value)
            if rewritten is not value:
                setattr(entry, f.name, rewritten)

    def _rewrite_value(self, value: Any) -> Any:
        if is_node_ref(value):
            return self.resolve_reference(value)
        if isinstance(value, NodeRange):
            return self.resolve_range(value)
        if isinstance(value, list):
            for i, item in enumerate(value):
                value[i] = self._rewrite_value(item)
            return value
        if isinstance(value, tuple) and any(is_node_ref(v) or isinstance(v, NodeRange) for v in value):
            return tuple(self._rewrite_value(item) for item in value)
        return value

    # ── Diagnostics ───────────────────────────────────────────

    def emit(self, severity: Severity, text: str) -> Message:
        return self._diagnostics.emit(severity, text)

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._diagnostics.messages

    def error_count(self) -> int:
        return self._diagnostics.error_count()

    def warning_count(self) -> int:
        return self._diagnostics.warning_count()

    def other_count(self) -> int:
        return self._diagnostics.other_count()

    def format_messages(self) -> str:
        return self._diagnostics.format_messages()

    def diagnostics_to_dict(self) -> dict[str, object]:
        return self._diagnostics.to_dict()

    # ── Introspection ─────────────────────────────────────────

    @property
    def node_table(self) -> NodeTable:
        """Table of the module processed last (or of manual registrations)."""
        return self._table

    def node_tables(self) -> dict[str, NodeTable]:
        return dict(self._tables)

    def wheel_registrations(self) -> tuple[WheelRegistration, ...]:
        return tuple(self._wheels)

    def dump_node_table(self) -> list[dict[str, object]]:
        return node_table_to_dict(self._table)

    def statistics(self) -> dict[str, object]:
        tables = self._tables or {self._diagnostics.current_module: self._table}
        return {
            "total_resolved": self._total_resolved,
            "resolved_to_self": self._num_resolved_to_self,
            "legacy_translations": self._num_legacy_translations,
            "wheels_with_rigidity_node": sum(1 for w in self._wheels if w.has_rigidity_node),
            "modules": {
                name: {
                    "num_slots": len(table),
                    "section_counts": {kind: table.count(kind) for kind in CANONICAL_SEQUENCE},
                }
                for name, table in tables.items()
            },
        }

    def log_node_statistics(self) -> None:
        stats = self.statistics()
        log.info(
            "node statistics: %d resolved, %d to self, %d legacy translations",
            stats["total_resolved"],
            stats["resolved_to_self"],
            stats["legacy_translations"],
        )
        modules: dict[str, dict[str, Any]] = stats["modules"]  # type: ignore[assignment]
        for name, module_stats in modules.items():
            counts = ", ".join(
                f"{kind}={count}" for kind, count in module_stats["section_counts"].items() if count
            )
            log.info("  module %r: %d slots (%s)", name, module_stats["num_slots"], counts or "empty")

    def log_all_nodes(self) -> None:
        for slot, entry in self._table:
            log.debug(
                "%s origin=%s subrole=%s user_id=%s sub_index=%d",
                slot,
                entry.origin_section,
                entry.origin_subrole or "-",
                entry.user_id if entry.user_id is not None else "-",
                entry.sub_index,
            )


def resolution_report(resolver: SequentialResolver) -> dict[str, object]:
    """Deterministic JSON-safe summary of a resolver run."""

    return {
        "enabled": resolver.is_enabled(),
        "diagnostics": resolver.diagnostics_to_dict(),
        "statistics": resolver.statistics(),
        "node_tables": {
            name: node_table_to_dict(table)
            for name, table in sorted(resolver.node_tables().items())
        },
    }
