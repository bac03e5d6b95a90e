"""
Unit Tests for Audit and Logging
================================
"""

import json
import logging
import sys


class TestAuditLogger:
    """Tests for the hash-chained audit trail."""

    def test_events_are_chained(self):
        from seedkey_core.audit import AuditEventType, AuditLogger

        audit = AuditLogger("seedkey-test")
        first = audit.log(AuditEventType.CHALLENGE_CREATED, resource_id="ch_1")
        second = audit.log(AuditEventType.AUTH_LOGIN, actor_id="user_1")

        assert first.previous_hash is None
        assert second.previous_hash == first.hash
        assert len(first.hash) == 64
        assert first.event_type == "challenge.created"

    def test_flush_clears_buffer(self):
        from seedkey_core.audit import AuditLogger

        audit = AuditLogger()
        audit.log("auth.logout")

        assert len(audit.flush()) == 1
        assert audit.flush() == []

    def test_chain_verifies(self):
        from seedkey_core.audit import AuditLogger, verify_chain_integrity

        audit = AuditLogger()
        for event_type in ("challenge.created", "user.registered", "auth.login"):
            audit.log(event_type, payload={"n": event_type})

        assert verify_chain_integrity(audit.flush()) == (True, None)

    def test_tampered_payload_detected(self):
        """Editing a past event breaks the chain at that event."""
        from seedkey_core.audit import AuditLogger, verify_chain_integrity

        audit = AuditLogger()
        audit.log("auth.login", payload={"key_id": "key_1"})
        audit.log("auth.logout")
        events = audit.flush()
        events[0].payload["key_id"] = "key_2"

        assert verify_chain_integrity(events) == (False, 0)

    def test_removed_event_detected(self):
        from seedkey_core.audit import AuditLogger, verify_chain_integrity

        audit = AuditLogger()
        for _ in range(3):
            audit.log("auth.failed", outcome="failure")
        events = audit.flush()

        assert verify_chain_integrity([events[0], events[2]]) == (False, 1)

    def test_continue_chain(self):
        from seedkey_core.audit import AuditLogger

        audit = AuditLogger()
        audit.set_previous_hash("a" * 64)

        assert audit.log("auth.login").previous_hash == "a" * 64

    def test_to_dict(self):
        from seedkey_core.audit import AuditLogger

        event = AuditLogger("svc").log("auth.login", actor_id="user_1")
        data = event.to_dict()

        assert data["service"] == "svc"
        assert data["actor_id"] == "user_1"
        assert isinstance(data["timestamp"], str)


class TestJSONFormatter:
    """Tests for the JSON log formatter."""

    def test_format_includes_context(self):
        from seedkey_core.logging import JSONFormatter, request_id_var

        token = request_id_var.set("req-1")
        try:
            record = logging.LogRecord(
                "seedkey.test", logging.INFO, __file__, 10, "hello %s", ("world",), None
            )
            record.extra_data = {"user_id_hint": "u1"}
            data = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-1"
        assert data["user_id_hint"] == "u1"
        assert data["source"]["line"] == 10

    def test_format_exception(self):
        from seedkey_core.logging import JSONFormatter

        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "seedkey.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"


class TestSetupLogging:
    """Tests for routing structlog through the JSON formatter."""

    def test_structlog_events_rendered_as_json(self, capsys):
        import structlog
        from seedkey_core.logging import setup_logging

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("seedkey-test", level="INFO")
            structlog.get_logger("seedkey.test").info("Challenge created", challenge_id="ch_1")
            lines = [
                json.loads(line)
                for line in capsys.readouterr().out.splitlines()
                if line.strip()
            ]
        finally:
            structlog.reset_defaults()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        entry = lines[-1]
        assert entry["message"] == "Challenge created"
        assert entry["challenge_id"] == "ch_1"
        assert entry["service"] == "seedkey-test"
        assert entry["logger"] == "seedkey.test"
