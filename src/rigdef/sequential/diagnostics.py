"""Diagnostics collector for the sequential resolver.

Messages are data, not log lines: they are kept in emission order, counted
by severity, and rendered on demand. Each one is also mirrored to the module
logger at DEBUG so a verbose run shows them as they happen.
"""

from __future__ import annotations

import logging

from rigdef.sequential.types import SEVERITIES, Message, Severity


log = logging.getLogger(__name__)

_SEVERITY_LABELS: dict[Severity, str] = {
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "FATAL_ERROR",
}


class DiagnosticsCollector:
    """Append-only message log with running severity counters.

    ``current_section`` and ``current_module`` are set by the resolver as it
    walks a document; every emitted message is stamped with them.
    """

    __slots__ = (
        "_messages",
        "_num_errors",
        "_num_warnings",
        "_num_other",
        "current_section",
        "current_module",
    )

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._num_errors = 0
        self._num_warnings = 0
        self._num_other = 0
        self.current_section = ""
        self.current_module = ""

    def emit(self, severity: Severity, text: str) -> Message:
        if severity not in SEVERITIES:
            raise ValueError(f"unknown severity {severity!r}")
        message = Message(
            text=text,
            severity=severity,
            origin_section=self.current_section,
            module_name=self.current_module,
        )
        self._messages.append(message)
        if severity == "error":
            self._num_errors += 1
        elif severity == "warning":
            self._num_warnings += 1
        else:
            self._num_other += 1
        log.debug("%s %s", _SEVERITY_LABELS[severity], format_message(message))
        return message

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def error_count(self) -> int:
        return self._num_errors

    def warning_count(self) -> int:
        return self._num_warnings

    def other_count(self) -> int:
        """Info and fatal messages, bucketed together."""
        return self._num_other

    def format_messages(self) -> str:
        """Render all messages as a human-readable multi-line report."""
        if not self._messages:
            return "No messages"
        lines = [
            f"{_SEVERITY_LABELS[msg.severity]} {format_message(msg)}"
            for msg in self._messages
        ]
        lines.append(
            f"Total: {self._num_errors} errors, {self._num_warnings} warnings, "
            f"{self._num_other} other"
        )
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "num_errors": self._num_errors,
            "num_warnings": self._num_warnings,
            "num_other": self._num_other,
            "messages": [
                {
                    "severity": msg.severity,
                    "module": msg.module_name,
                    "section": msg.origin_section,
                    "text": msg.text,
                }
                for msg in self._messages
            ],
        }


def format_message(message: Message) -> str:
    location = f"module '{message.module_name}'"
    if message.origin_section:
        location += f", section '{message.origin_section}'"
    return f"({location}) {message.text}"
