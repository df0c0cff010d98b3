"""Tests for turn-scoped logging context, JSON logging and metrics."""

import json
import logging

from regintel.observability.logging_config import JSONFormatter
from regintel.observability.metrics import compliance_turns_total, render_metrics
from regintel.observability.turn_context import (
    bind_turn,
    get_conversation_id,
    get_tenant_id,
    get_turn_id,
)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("regintel.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestBindTurn:
    def test_binds_and_restores_identifiers(self):
        with bind_turn("tenant-1", "conv-1", turn_id="turn-1") as turn_id:
            assert turn_id == "turn-1"
            assert get_turn_id() == "turn-1"
            assert get_tenant_id() == "tenant-1"
            assert get_conversation_id() == "conv-1"
        assert get_turn_id() == ""
        assert get_tenant_id() == ""

    def test_generates_turn_id(self):
        with bind_turn() as turn_id:
            assert len(turn_id) == 32

    def test_nested_bindings_restore_outer(self):
        with bind_turn("outer", turn_id="t-outer"):
            with bind_turn("inner", turn_id="t-inner"):
                assert get_tenant_id() == "inner"
            assert get_tenant_id() == "outer"
            assert get_turn_id() == "t-outer"


class TestJSONFormatter:
    def test_includes_turn_identifiers(self):
        with bind_turn("tenant-1", "conv-1", turn_id="turn-1"):
            entry = json.loads(JSONFormatter().format(_record(duration_ms=12.5)))
        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "regintel.test"
        assert entry["turn_id"] == "turn-1"
        assert entry["tenant_id"] == "tenant-1"
        assert entry["conversation_id"] == "conv-1"
        assert entry["duration_ms"] == 12.5

    def test_omits_unbound_tenant_and_conversation(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["turn_id"] == ""
        assert "tenant_id" not in entry
        assert "conversation_id" not in entry


def test_metrics_are_exposed():
    compliance_turns_total.labels(mode="chat", outcome="ok").inc(0)
    assert b"compliance_turns_total" in render_metrics()
