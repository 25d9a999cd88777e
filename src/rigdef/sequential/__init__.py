"""Sequential importer: canonical node tables and node-reference resolution."""

from rigdef.sequential.config import ResolverConfig
from rigdef.sequential.diagnostics import DiagnosticsCollector, format_message
from rigdef.sequential.node_table import NodeTable, node_table_to_dict, wheel_node_layout
from rigdef.sequential.resolver import (
    SequentialResolver,
    WheelRegistration,
    resolution_report,
)
from rigdef.sequential.types import (
    CANONICAL_GROUPS,
    CANONICAL_SEQUENCE,
    WHEEL_NODES_PER_RAY,
    Message,
    SectionKind,
    Severity,
    SubRole,
    TableEntry,
    WheelKind,
)

__all__ = [
    "CANONICAL_GROUPS",
    "CANONICAL_SEQUENCE",
    "DiagnosticsCollector",
    "Message",
    "NodeTable",
    "ResolverConfig",
    "SectionKind",
    "SequentialResolver",
    "Severity",
    "SubRole",
    "TableEntry",
    "WHEEL_NODES_PER_RAY",
    "WheelKind",
    "WheelRegistration",
    "format_message",
    "node_table_to_dict",
    "resolution_report",
    "wheel_node_layout",
]
