import json
import logging

import pytest

from quotedoc import logs


@pytest.fixture
def event_lines(monkeypatch):
    lines = []

    class Capture(logging.Handler):
        def emit(self, record):
            lines.append(record.getMessage())

    events = logging.getLogger("quotedoc.tests.events")
    events.handlers = [Capture()]
    events.setLevel(logging.INFO)
    events.propagate = False
    monkeypatch.setattr(logs, "logger_json", events)
    monkeypatch.setattr(logs, "logger_txt", None)
    monkeypatch.setattr(logs, "LOG_REDACT", True)
    return lines


class TestRedact:
    def test_email_and_phone(self, monkeypatch):
        monkeypatch.setattr(logs, "LOG_REDACT", True)
        out = logs.redact("mail carlos@acme.example or call +503 2200-0000")
        assert "carlos@" not in out
        assert "2200" not in out
        assert "[email redacted]" in out
        assert "[phone redacted]" in out

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(logs, "LOG_REDACT", False)
        assert logs.redact("carlos@acme.example") == "carlos@acme.example"


class TestLogEvent:
    def test_writes_json_line(self, event_lines):
        entry = logs.log_event("proposal_rendered", {"quote_id": "q-1", "pages": 2})
        assert entry["event"] == "proposal_rendered"
        assert entry["ts"].endswith("Z")
        written = json.loads(event_lines[0])
        assert written["quote_id"] == "q-1"
        assert written["pages"] == 2

    def test_string_values_are_redacted(self, event_lines):
        logs.log_event("proposal_failed", {"error": "upload for ana@example.com failed"})
        assert "ana@example.com" not in event_lines[0]

    def test_no_handlers_still_returns_entry(self, monkeypatch):
        monkeypatch.setattr(logs, "logger_json", None)
        monkeypatch.setattr(logs, "logger_txt", None)
        assert logs.log_event("ping")["event"] == "ping"


def test_setup_disabled_creates_nothing(tmp_path):
    logs.setup_logging(str(tmp_path / "logs"), enabled=False)
    assert not (tmp_path / "logs").exists()
