#!/usr/bin/env python3
"""Resolve node references of a parsed rig document to canonical slots.

Reads a document tree (JSON), builds the canonical node table of every
module, rewrites all node references in place and writes the resolved tree
plus a diagnostics report.

Usage:
    python3 scripts/resolve_node_refs.py --input truck.json --output truck.resolved.json
    python3 scripts/resolve_node_refs.py --input truck.json --report-out report.json --dump-table

A compact JSON summary goes to stdout; the message report goes to stderr.
Exit status: 0 clean, 1 resolution errors, 2 unreadable input.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from rigdef.document_io import load_document, save_document
from rigdef.io_utils import dumps_json, save_json
from rigdef.sequential import ResolverConfig, SequentialResolver, resolution_report


log = logging.getLogger("resolve_node_refs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Canonicalize node references of a rig document tree",
    )
    parser.add_argument("--input", type=Path, required=True, help="Document tree JSON")
    parser.add_argument("--output", type=Path, default=None, help="Where to write the resolved tree")
    parser.add_argument("--report-out", type=Path, default=None, help="Where to write the full report")
    parser.add_argument("--config", type=Path, default=None, help="Resolver config JSON")
    parser.add_argument(
        "--disable",
        action="store_true",
        help="Pass references through unchanged (legacy-compatible loading)",
    )
    parser.add_argument(
        "--legacy-fallback",
        action="store_true",
        help="Translate legacy array positions of named and generated nodes (warns instead of failing)",
    )
    parser.add_argument("--dump-table", action="store_true", help="Include node tables in the summary")
    parser.add_argument("--json", action="store_true", help="Print the full report instead of a summary")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def load_config(args: argparse.Namespace) -> ResolverConfig:
    config = ResolverConfig.from_json(args.config) if args.config else ResolverConfig()
    return config.with_overrides(
        enabled=False if args.disable else None,
        legacy_positional_fallback=True if args.legacy_fallback else None,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = load_config(args)
        document = load_document(args.input)
    except (OSError, ValueError) as exc:  # DocumentFormatError, JSONDecodeError
        log.error("cannot load input: %s", exc)
        return 2

    resolver = SequentialResolver(config)
    resolver.process(document)
    resolver.log_node_statistics()
    if args.verbose:
        resolver.log_all_nodes()
    print(resolver.format_messages(), file=sys.stderr)

    report = resolution_report(resolver)
    if args.output:
        save_document(document, args.output)
    if args.report_out:
        save_json(report, args.report_out, pretty=True)

    if args.json:
        payload: dict[str, object] = report
    else:
        payload = {
            "document": document.name,
            "enabled": resolver.is_enabled(),
            "num_errors": resolver.error_count(),
            "num_warnings": resolver.warning_count(),
            "num_other": resolver.other_count(),
            "output": str(args.output) if args.output else None,
            "report_out": str(args.report_out) if args.report_out else None,
        }
        if args.dump_table:
            payload["node_tables"] = report["node_tables"]
    sys.stdout.buffer.write(dumps_json(payload) + b"\n")
    sys.stdout.flush()
    return 0 if resolver.error_count() == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
