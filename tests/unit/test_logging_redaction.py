import json
import logging

import pytest

from mission_control.logging import bind_context, clear_context, configure_logging, redact_event


def test_redact_event_scrubs_string_fields() -> None:
    event = {"event": "token sk-" + "a" * 30, "count": 3}
    redacted = redact_event(None, "info", event)
    assert redacted["event"] == "token [REDACTED]"
    assert redacted["count"] == 3


def test_stdlib_records_are_redacted_as_json(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("INFO", json_output=True)
    bind_context(agent="loki")
    try:
        logging.getLogger("mission_control.test").warning(
            "upstream failed: %s", "bad key ghp_" + "b" * 36
        )
    finally:
        clear_context()
    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "upstream failed: bad key [REDACTED]"
    assert payload["agent"] == "loki"
    assert payload["level"] == "warning"
