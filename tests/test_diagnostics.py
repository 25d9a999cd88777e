"""Tests for the diagnostics collector."""

from __future__ import annotations

import logging

import pytest

from rigdef.sequential.diagnostics import DiagnosticsCollector


class TestDiagnosticsCollector:
    def test_counters_bucket_info_and_fatal_as_other(self) -> None:
        diag = DiagnosticsCollector()
        diag.emit("error", "e")
        diag.emit("warning", "w")
        diag.emit("info", "i")
        diag.emit("fatal", "f")
        assert diag.error_count() == 1
        assert diag.warning_count() == 1
        assert diag.other_count() == 2
        assert [m.severity for m in diag.messages] == ["error", "warning", "info", "fatal"]

    def test_messages_carry_current_location(self) -> None:
        diag = DiagnosticsCollector()
        diag.current_module = "_root_"
        diag.current_section = "beams"
        message = diag.emit("error", "named node 'x' not found")
        assert message.module_name == "_root_"
        assert message.origin_section == "beams"

    def test_unknown_severity_rejected(self) -> None:
        with pytest.raises(ValueError):
            DiagnosticsCollector().emit("debug", "nope")  # type: ignore[arg-type]

    def test_format_messages(self) -> None:
        diag = DiagnosticsCollector()
        assert diag.format_messages() == "No messages"
        diag.current_module = "_root_"
        diag.current_section = "hooks"
        diag.emit("fatal", "parser gave up")
        report = diag.format_messages().splitlines()
        assert report[0] == "FATAL_ERROR (module '_root_', section 'hooks') parser gave up"
        assert report[-1] == "Total: 0 errors, 0 warnings, 1 other"

    def test_emit_mirrors_to_debug_log(self, caplog: pytest.LogCaptureFixture) -> None:
        diag = DiagnosticsCollector()
        with caplog.at_level(logging.DEBUG, logger="rigdef.sequential.diagnostics"):
            diag.emit("warning", "legacy quirk")
        assert "legacy quirk" in caplog.text

    def test_to_dict(self) -> None:
        diag = DiagnosticsCollector()
        diag.current_module = "m"
        diag.emit("info", "note")
        assert diag.to_dict() == {
            "num_errors": 0,
            "num_warnings": 0,
            "num_other": 1,
            "messages": [{"severity": "info", "module": "m", "section": "", "text": "note"}],
        }
