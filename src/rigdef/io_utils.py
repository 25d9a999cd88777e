"""I/O utilities for JSON documents, reports and configs.

All JSON goes through orjson. Written artifacts use sorted keys so that
reports of two runs over the same document compare byte-for-byte.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dumps_json(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize an object to deterministic JSON bytes."""
    opts = orjson.OPT_SORT_KEYS
    if pretty:
        opts |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_json(obj, pretty=pretty) + b"\n")
