"""Unit tests for the audit logger."""
import json
import threading


def _entries(log_dir):
    return [json.loads(line) for line in (log_dir / "audit.log").read_text().splitlines()]


class TestLogEvent:
    def test_creates_log_file(self, audit_log_dir):
        from shield.infrastructure.audit import log_event
        log_event("identifier_blocked", "1.2.3.4")
        assert (audit_log_dir / "audit.log").exists()

    def test_entry_fields(self, audit_log_dir):
        from shield.infrastructure.audit import log_event
        log_event("identifier_blocked", "a@b.com", "email", {"attempts": 5})
        entry = _entries(audit_log_dir)[0]
        assert entry["action"] == "identifier_blocked"
        assert entry["identifier"] == "a@b.com"
        assert entry["type"] == "email"
        assert entry["payload"] == {"attempts": 5}
        assert entry["ts"]

    def test_untyped_identifier_and_empty_payload(self, audit_log_dir):
        from shield.infrastructure.audit import log_event
        log_event("identifier_unblocked", "1.2.3.4")
        entry = _entries(audit_log_dir)[0]
        assert entry["type"] is None
        assert entry["payload"] == {}

    def test_non_json_values_are_stringified(self, audit_log_dir, clock):
        from shield.infrastructure.audit import log_event
        log_event("identifier_blocked", "1.2.3.4", payload={"blocked_until": clock.now})
        assert _entries(audit_log_dir)[0]["payload"]["blocked_until"].startswith("2026-03-01")

    def test_thread_safe_concurrent_writes(self, audit_log_dir):
        from shield.infrastructure.audit import log_event
        threads = [
            threading.Thread(target=log_event, args=("concurrent", f"10.0.0.{i}"))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(_entries(audit_log_dir)) == 20


class TestTryLogEvent:
    def test_write_failure_is_logged_not_raised(self, monkeypatch, caplog):
        import shield.infrastructure.audit as audit_mod

        def broken(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(audit_mod, "log_event", broken)
        with caplog.at_level("ERROR", logger="shield.audit"):
            audit_mod.try_log_event("identifier_blocked", "1.2.3.4")
        assert "disk full" in caplog.text
