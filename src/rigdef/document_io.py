"""JSON codec for rig document trees.

Layout::

    {"name": "...",
     "modules": [{"name": "_root_",
                  "sections": [{"keyword": "nodes", "entries": [{...}, ...]}]}]}

References use the encoding of ``rigdef.node_refs`` (int, str, {"slot": n},
null); ranges are ``[start, end]`` pairs. Entries of keywords without a
registered entry type are carried through verbatim.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

from rigdef.document import ENTRY_TYPES, Module, RigDocument, Section
from rigdef.io_utils import load_json, save_json
from rigdef.node_refs import NodeRange, node_ref_from_json, node_ref_to_json


class DocumentFormatError(ValueError):
    """Raised when a serialized document does not match the tree layout."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


# ---------------------------------------------------------------------------
# Field codecs
# ---------------------------------------------------------------------------

def _require_list(raw: Any, path: str) -> list[Any]:
    if not isinstance(raw, list):
        raise DocumentFormatError(path, f"expected a list, got {type(raw).__name__}")
    return raw


def _decode_range(raw: Any, path: str) -> NodeRange:
    if not isinstance(raw, list) or len(raw) != 2:
        raise DocumentFormatError(path, "node range must be a [start, end] pair")
    return NodeRange(node_ref_from_json(raw[0]), node_ref_from_json(raw[1]))


def _decode_field(kind: str | None, raw: Any, path: str) -> Any:
    try:
        match kind:
            case "ref":
                return node_ref_from_json(raw)
            case "definition" | "optional_ref":
                return None if raw is None else node_ref_from_json(raw)
            case "ref_list":
                return [node_ref_from_json(item) for item in _require_list(raw, path)]
            case "ref_pairs":
                return [
                    [node_ref_from_json(item) for item in _require_list(pair, f"{path}[{i}]")]
                    for i, pair in enumerate(_require_list(raw, path))
                ]
            case "range_list":
                return [
                    _decode_range(item, f"{path}[{i}]")
                    for i, item in enumerate(_require_list(raw, path))
                ]
    except DocumentFormatError:
        raise
    except (TypeError, ValueError) as exc:
        raise DocumentFormatError(path, str(exc)) from exc
    if isinstance(raw, list):
        return tuple(raw)
    return raw


def _encode_value(value: Any) -> Any:
    if isinstance(value, NodeRange):
        return [node_ref_to_json(value.start), node_ref_to_json(value.end)]
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    if value is None or isinstance(value, (bool, int, float, str, dict)):
        return value
    return node_ref_to_json(value)


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------

def entry_from_dict(keyword: str, raw: Any, path: str) -> Any:
    entry_type = ENTRY_TYPES.get(keyword)
    if entry_type is None:
        return raw
    if not isinstance(raw, dict):
        raise DocumentFormatError(path, f"{keyword} entry must be an object")

    known = {f.name: f for f in dataclasses.fields(entry_type)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise DocumentFormatError(path, f"unknown {keyword} fields: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for name, value in raw.items():
        kind = known[name].metadata.get("ref_kind")
        kwargs[name] = _decode_field(kind, value, f"{path}.{name}")
    try:
        return entry_type(**kwargs)
    except (TypeError, ValueError) as exc:
        raise DocumentFormatError(path, str(exc)) from exc


def entry_to_dict(entry: Any) -> Any:
    if not dataclasses.is_dataclass(entry):
        return entry
    payload: dict[str, Any] = {}
    for f in dataclasses.fields(entry):
        value = getattr(entry, f.name)
        if value is None and f.default is None:
            continue
        payload[f.name] = _encode_value(value)
    return payload


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

def document_from_dict(payload: Any, *, source: str = "<document>") -> RigDocument:
    if not isinstance(payload, dict):
        raise DocumentFormatError(source, "document must be an object")
    raw_modules = payload.get("modules", [])
    if not isinstance(raw_modules, list):
        raise DocumentFormatError(f"{source}.modules", "must be a list")

    modules: list[Module] = []
    for m_idx, raw_module in enumerate(raw_modules):
        m_path = f"{source}.modules[{m_idx}]"
        if not isinstance(raw_module, dict) or "name" not in raw_module:
            raise DocumentFormatError(m_path, "module must be an object with a name")
        sections: list[Section] = []
        for s_idx, raw_section in enumerate(raw_module.get("sections", [])):
            s_path = f"{m_path}.sections[{s_idx}]"
            if not isinstance(raw_section, dict) or "keyword" not in raw_section:
                raise DocumentFormatError(s_path, "section must be an object with a keyword")
            keyword = str(raw_section["keyword"])
            entries = [
                entry_from_dict(keyword, raw_entry, f"{s_path}.entries[{e_idx}]")
                for e_idx, raw_entry in enumerate(raw_section.get("entries", []))
            ]
            sections.append(Section(keyword=keyword, entries=entries))
        modules.append(Module(name=str(raw_module["name"]), sections=sections))
    return RigDocument(name=str(payload.get("name", "")), modules=modules)


def document_to_dict(document: RigDocument) -> dict[str, Any]:
    return {
        "name": document.name,
        "modules": [
            {
                "name": module.name,
                "sections": [
                    {
                        "keyword": section.keyword,
                        "entries": [entry_to_dict(entry) for entry in section.entries],
                    }
                    for section in module.sections
                ],
            }
            for module in document.modules
        ],
    }


def load_document(path: Path) -> RigDocument:
    """Load a rig document tree from a JSON file."""
    return document_from_dict(load_json(path), source=path.name)


def save_document(document: RigDocument, path: Path) -> None:
    save_json(document_to_dict(document), path, pretty=True)
