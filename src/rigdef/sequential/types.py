"""Core types for sequential node-map building and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from rigdef.node_refs import NodeId


SectionKind: TypeAlias = Literal[
    "numbered_nodes",
    "named_nodes",
    "cinecam",
    "wheels",
    "wheels2",
    "meshwheels",
    "meshwheels2",
    "flexbodywheels",
]
WheelKind: TypeAlias = Literal["wheels", "wheels2", "meshwheels", "meshwheels2", "flexbodywheels"]
SubRole: TypeAlias = Literal["tire_a", "tire_b", "rim_a", "rim_b"]
Severity: TypeAlias = Literal["info", "warning", "error", "fatal"]


# Canonical build order. Numbered and named nodes form one group and keep
# their declaration order relative to each other.
CANONICAL_GROUPS: tuple[tuple[SectionKind, ...], ...] = (
    ("numbered_nodes", "named_nodes"),
    ("cinecam",),
    ("wheels",),
    ("wheels2",),
    ("meshwheels",),
    ("meshwheels2",),
    ("flexbodywheels",),
)
CANONICAL_SEQUENCE: tuple[SectionKind, ...] = tuple(
    kind for group in CANONICAL_GROUPS for kind in group
)
CANONICAL_RANK: dict[SectionKind, int] = {
    kind: rank for rank, group in enumerate(CANONICAL_GROUPS) for kind in group
}

# Nodes generated per wheel ray.
WHEEL_NODES_PER_RAY: dict[WheelKind, int] = {
    "wheels": 2,
    "wheels2": 4,
    "meshwheels": 2,
    "meshwheels2": 2,
    "flexbodywheels": 4,
}
WHEEL_KINDS: tuple[WheelKind, ...] = tuple(WHEEL_NODES_PER_RAY)

SEVERITIES: tuple[Severity, ...] = ("info", "warning", "error", "fatal")


@dataclass(frozen=True, slots=True)
class TableEntry:
    """One canonical node slot and where it came from."""

    origin_section: SectionKind
    origin_subrole: SubRole | None  # None unless generated by a wheel
    user_id: NodeId | None          # None for generated nodes
    sub_index: int                  # ray index for wheel nodes, else 0

    def __post_init__(self) -> None:
        if self.sub_index < 0:
            raise ValueError(f"sub_index must be >= 0, got {self.sub_index}")
        if self.origin_section in ("numbered_nodes", "named_nodes") and self.user_id is None:
            raise ValueError(f"{self.origin_section} entry must carry user_id")


@dataclass(frozen=True, slots=True)
class Message:
    """Single diagnostic produced while resolving a document."""

    text: str
    severity: Severity
    origin_section: str  # document keyword being processed, "" outside sections
    module_name: str
