"""Resolver configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import orjson


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Per-instance resolver mode.

    Each ``SequentialResolver`` owns its config, so concurrent document loads
    with different modes never share a flag.
    """
    enabled: bool = True
    # Translate numbers that miss every numbered node but hit a named or
    # generated node's legacy array position. Off: such numbers are errors.
    legacy_positional_fallback: bool = False
    # Warn when a numeric range changes length after reordering.
    warn_on_range_reorder: bool = True
    # Emit an info message per self-reference (the counter is always kept).
    report_self_references: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolverConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown resolver config keys: {', '.join(unknown)}")
        values: dict[str, bool] = {}
        for key, value in data.items():
            if not isinstance(value, bool):
                raise ValueError(f"resolver config key {key!r} must be a boolean, got {value!r}")
            values[key] = value
        return cls(**values)

    @classmethod
    def from_json(cls, path: Path) -> ResolverConfig:
        """Load from a resolver config JSON file."""
        data = orjson.loads(path.read_bytes())
        if not isinstance(data, dict):
            raise ValueError(f"Invalid resolver config payload in {path}")
        return cls.from_dict(data)

    def with_overrides(self, **overrides: bool | None) -> ResolverConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
