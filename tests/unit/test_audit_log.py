import json

import pytest

from mission_control.guardrails.audit import AuditLog, audited


def _read_records(audit: AuditLog) -> list[dict[str, str]]:
    assert audit.log_file is not None
    lines = audit.log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_initialize_creates_session_file(tmp_path) -> None:
    audit = AuditLog(tmp_path / "logs")
    path = audit.initialize()
    assert path.parent == tmp_path / "logs"
    assert path.name.startswith("session-")
    assert audit.initialize() == path
    records = _read_records(audit)
    assert records[0]["type"] == "ACTIVITY"
    assert records[0]["action"] == "SESSION_START"


def test_records_are_lazily_initialized_and_redacted(tmp_path) -> None:
    audit = AuditLog(tmp_path / "logs")
    audit.security("SUSPICIOUS", value="sk-" + "q" * 30)
    records = _read_records(audit)
    assert [record.get("event") or record.get("action") for record in records] == [
        "SESSION_START",
        "SUSPICIOUS",
    ]
    assert "sk-qqq" not in records[1]["details"]
    assert "[REDACTED]" in records[1]["details"]


def test_filters_by_kind_and_label(tmp_path) -> None:
    audit = AuditLog(tmp_path / "logs")
    audit.activity("TASK_CREATE", agent="jarvis")
    audit.security("PATH_TRAVERSAL_ATTEMPT", target_path="../x")
    assert [r["action"] for r in audit.activities("TASK_CREATE")] == ["TASK_CREATE"]
    assert len(audit.security_events()) == 1
    assert audit.security_events("OTHER") == []


def test_write_failure_is_logged_not_raised(tmp_path) -> None:
    blocker = tmp_path / "logs"
    blocker.write_text("not a directory", encoding="utf-8")
    audit = AuditLog(blocker)
    audit.activity("STILL_WORKS")
    assert audit.activities("STILL_WORKS")


def test_unserializable_details_are_recorded(tmp_path) -> None:
    audit = AuditLog(tmp_path / "logs")
    audit.activity("ODD", value=object())
    assert audit.activities("ODD")


@pytest.mark.asyncio
async def test_audited_records_start_success_and_error(tmp_path) -> None:
    audit = AuditLog(tmp_path / "logs")

    @audited(audit, "FETCH")
    async def fetch(value: int) -> int:
        if value < 0:
            raise ValueError("negative with sk-" + "k" * 30)
        return value * 2

    assert await fetch(2) == 4
    with pytest.raises(ValueError):
        await fetch(-1)

    actions = [record["action"] for record in audit.activities()]
    assert actions[1:] == ["FETCH_START", "FETCH_SUCCESS", "FETCH_START", "FETCH_ERROR"]
    assert "sk-kkk" not in audit.activities("FETCH_ERROR")[0]["details"]
