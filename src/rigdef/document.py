"""In-memory rig document tree, as handed over by the rig file parser.

A document is a list of modules; a module is a list of sections in the
order they were declared in the source file; a section is a keyword plus
its entries. The same keyword may appear in several blocks of one module.

Reference-bearing fields are declared with ``ref_field`` so that codecs can
tell a node reference from a plain value. The resolver itself does not need
the metadata: it rewrites any ``NodeRef`` or ``NodeRange`` it finds, except
in fields marked ``"definition"`` (a node's own id, a generated base slot).

Entries are mutable; the resolver rewrites references in place.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from rigdef.node_refs import NodeId, NodeRange, NodeRef, Slot


RefKind: TypeAlias = Literal["definition", "ref", "optional_ref", "ref_list", "ref_pairs", "range_list"]
Vec3: TypeAlias = tuple[float, float, float]

ROOT_MODULE_NAME = "_root_"


def ref_field(kind: RefKind, **kwargs: Any) -> Any:
    """Declare a dataclass field holding node references of ``kind``."""
    return field(metadata={"ref_kind": kind}, **kwargs)


# ---------------------------------------------------------------------------
# Node-producing entries
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class NodeDef:
    """Explicit node (nodes / nodes2)."""
    node_id: NodeId = ref_field("definition")
    position: Vec3 = (0.0, 0.0, 0.0)
    options: str = ""


@dataclass(slots=True)
class Cinecam:
    """Camera apex point hung on eight existing nodes; generates one node."""
    position: Vec3 = (0.0, 0.0, 0.0)
    nodes: list[NodeRef] = ref_field("ref_list", default_factory=list)
    spring: float = 8000.0
    damping: float = 800.0
    base_slot: Slot | None = ref_field("definition", default=None)


@dataclass(slots=True)
class WheelDef:
    """Any wheel-like definition (wheels, wheels2, meshwheels, meshwheels2,
    flexbodywheels); generates ``num_rays * K`` nodes."""
    num_rays: int = 0
    axis_nodes: list[NodeRef] = ref_field("ref_list", default_factory=list)
    rigidity_node: NodeRef | None = ref_field("optional_ref", default=None)
    reference_arm_node: NodeRef | None = ref_field("optional_ref", default=None)
    radius: float = 0.0
    rim_radius: float = 0.0
    mass: float = 0.0
    base_slot: Slot | None = ref_field("definition", default=None)

    def __post_init__(self) -> None:
        if self.num_rays < 0:
            raise ValueError(f"num_rays must be >= 0, got {self.num_rays}")

    @property
    def has_rigidity_node(self) -> bool:
        return self.rigidity_node is not None


# ---------------------------------------------------------------------------
# Reference-only entries
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Beam:
    """Node chain: beams, shocks, shocks2, hydros, commands2, ropes, triggers."""
    nodes: list[NodeRef] = ref_field("ref_list", default_factory=list)
    options: str = ""


@dataclass(slots=True)
class NodeAnchor:
    """Single-node entry: fixes, contacters, hooks, ropables, ties, exhausts."""
    node: NodeRef = ref_field("ref")
    options: str = ""


@dataclass(slots=True)
class Axle:
    """Differential between two wheels, each given by its axis node pair."""
    wheels: list[list[NodeRef]] = ref_field("ref_pairs", default_factory=list)
    options: str = ""


@dataclass(slots=True)
class Attachment:
    """Object positioned by three nodes: props, flexbodies, videocameras."""
    reference_node: NodeRef = ref_field("ref")
    x_axis_node: NodeRef = ref_field("ref")
    y_axis_node: NodeRef = ref_field("ref")
    mesh_name: str = ""
    node_ranges: list[NodeRange] = ref_field("range_list", default_factory=list)


@dataclass(slots=True)
class Camera:
    center_node: NodeRef = ref_field("ref")
    back_node: NodeRef = ref_field("ref")
    left_node: NodeRef = ref_field("ref")


@dataclass(slots=True)
class SlideNode:
    slide_node: NodeRef = ref_field("ref")
    rail_ranges: list[NodeRange] = ref_field("range_list", default_factory=list)
    options: str = ""


@dataclass(slots=True)
class CameraRail:
    nodes: list[NodeRef] = ref_field("ref_list", default_factory=list)


@dataclass(slots=True)
class CollisionBox:
    ranges: list[NodeRange] = ref_field("range_list", default_factory=list)


@dataclass(slots=True)
class CabTriangle:
    """Submesh cab triangle."""
    nodes: list[NodeRef] = ref_field("ref_list", default_factory=list)
    options: str = ""


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Section:
    """One keyword block. Entries of unknown keywords are kept as raw data."""
    keyword: str
    entries: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class Module:
    name: str
    sections: list[Section] = field(default_factory=list)

    def sections_by_keyword(self, keyword: str) -> list[Section]:
        """All blocks of ``keyword`` in declaration order."""
        return [section for section in self.sections if section.keyword == keyword]

    def iter_entries(self, keyword: str) -> Iterator[Any]:
        for section in self.sections_by_keyword(keyword):
            yield from section.entries


@dataclass(slots=True)
class RigDocument:
    name: str
    modules: list[Module] = field(default_factory=list)

    def module(self, name: str) -> Module | None:
        for module in self.modules:
            if module.name == name:
                return module
        return None


ENTRY_TYPES: dict[str, type] = {
    "nodes": NodeDef,
    "nodes2": NodeDef,
    "cinecam": Cinecam,
    "wheels": WheelDef,
    "wheels2": WheelDef,
    "meshwheels": WheelDef,
    "meshwheels2": WheelDef,
    "flexbodywheels": WheelDef,
    "beams": Beam,
    "shocks": Beam,
    "shocks2": Beam,
    "hydros": Beam,
    "commands2": Beam,
    "ropes": Beam,
    "triggers": Beam,
    "fixes": NodeAnchor,
    "contacters": NodeAnchor,
    "hooks": NodeAnchor,
    "ropables": NodeAnchor,
    "ties": NodeAnchor,
    "exhausts": NodeAnchor,
    "axles": Axle,
    "props": Attachment,
    "flexbodies": Attachment,
    "videocameras": Attachment,
    "cameras": Camera,
    "slidenodes": SlideNode,
    "camerarail": CameraRail,
    "collisionboxes": CollisionBox,
    "submesh": CabTriangle,
}
