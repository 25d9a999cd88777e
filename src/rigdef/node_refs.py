"""Node reference types shared by the document model and the resolver.

A reference found in a rig document is one of:

  ByNumber   : legacy numeric address ("12")
  ByName     : symbolic address ("wheel_hub_left")
  Slot       : canonical position in a module's node table
  Unresolved : terminal form of a reference that failed to resolve

Only ``Slot`` should reach physics consumers. Numbers and slots are distinct
types so a user number can never be mistaken for a table position.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class ByNumber:
    """Legacy numeric node address."""

    number: int

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError(f"node number must be >= 0, got {self.number}")

    def __str__(self) -> str:
        return str(self.number)


@dataclass(frozen=True, slots=True)
class ByName:
    """Symbolic node address."""

    name: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("node name cannot be empty")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Slot:
    """Canonical, zero-based position in a module's node table."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"slot index must be >= 0, got {self.index}")

    def __str__(self) -> str:
        return f"#{self.index}"


@dataclass(frozen=True, slots=True)
class Unresolved:
    """A reference that could not be resolved.

    ``original`` keeps the legacy address for diagnostics; consumers must
    treat any Unresolved as a broken link.
    """

    original: ByNumber | ByName | None = None

    def __str__(self) -> str:
        if self.original is None:
            return "<unresolved>"
        return f"<unresolved {self.original}>"


NodeRef: TypeAlias = ByNumber | ByName | Slot | Unresolved
NodeId: TypeAlias = ByNumber | ByName


@dataclass(frozen=True, slots=True)
class NodeRange:
    """Inclusive span of nodes, addressed by its two endpoints.

    The range owns no intermediate slots. After canonical reordering the
    slots between ``start`` and ``end`` are not guaranteed to be the nodes
    the legacy author meant.
    """

    start: NodeRef
    end: NodeRef

    def is_resolved(self) -> bool:
        return isinstance(self.start, Slot) and isinstance(self.end, Slot)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def is_node_ref(value: object) -> bool:
    return isinstance(value, (ByNumber, ByName, Slot, Unresolved))


def node_ref_from_json(value: object) -> NodeRef:
    """Decode a reference from its JSON form.

    int -> ByNumber, str -> ByName, {"slot": n} -> Slot, null -> Unresolved.
    Numeric strings stay names; the legacy parser already decided.
    """
    if value is None:
        return Unresolved()
    if isinstance(value, bool):
        raise ValueError(f"invalid node reference: {value!r}")
    if isinstance(value, int):
        return ByNumber(value)
    if isinstance(value, str):
        return ByName(value)
    if isinstance(value, dict):
        if "slot" in value:
            return Slot(int(value["slot"]))
        if "unresolved" in value:
            original = value["unresolved"]
            if original is None:
                return Unresolved()
            decoded = node_ref_from_json(original)
            if not isinstance(decoded, (ByNumber, ByName)):
                raise ValueError(f"invalid unresolved origin: {original!r}")
            return Unresolved(decoded)
    raise ValueError(f"invalid node reference: {value!r}")


def node_ref_to_json(ref: NodeRef) -> object:
    """Encode a reference to its JSON form (inverse of node_ref_from_json)."""
    match ref:
        case ByNumber(number=n):
            return n
        case ByName(name=name):
            return name
        case Slot(index=i):
            return {"slot": i}
        case Unresolved(original=None):
            return None
        case Unresolved(original=original):
            return {"unresolved": node_ref_to_json(original)}
    raise TypeError(f"not a node reference: {ref!r}")
