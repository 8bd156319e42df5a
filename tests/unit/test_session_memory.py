import json

import pytest

from mission_control.agents.memory import (
    EXCERPT_CHARS,
    MAX_CONVERSATIONS,
    ConversationRecord,
    MemoryStore,
    SessionMemory,
)
from mission_control.guardrails import Guardrails


@pytest.fixture
def store(guardrails: Guardrails) -> MemoryStore:
    session_dir = guardrails.root / "sessions" / "quill"
    session_dir.mkdir(parents=True)
    return MemoryStore(session_dir, "quill", guardrails)


def test_missing_file_loads_empty(store: MemoryStore) -> None:
    memory = store.load()
    assert memory.conversations == []
    assert memory.last_run is None


def test_more_than_cap_keeps_most_recent_in_order(store: MemoryStore) -> None:
    memory = SessionMemory()
    for index in range(MAX_CONVERSATIONS + 25):
        memory.append(store.record(f"message {index}", f"reply {index}"))
        assert store.save(memory) is True

    reloaded = store.load()
    assert len(reloaded.conversations) == MAX_CONVERSATIONS
    assert reloaded.conversations[0].user_message == "message 25"
    assert reloaded.conversations[-1].user_message == f"message {MAX_CONVERSATIONS + 24}"
    assert reloaded.last_run == reloaded.conversations[-1].timestamp


def test_persisted_shape_uses_camel_case(store: MemoryStore) -> None:
    memory = SessionMemory()
    memory.append(store.record("hello", "hi there"))
    store.save(memory)
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(raw) == {"conversations", "lastRun"}
    assert set(raw["conversations"][0]) == {"timestamp", "userMessage", "summary"}


def test_excerpts_are_truncated_and_redacted(store: MemoryStore) -> None:
    secret = "sk-" + "s" * 40
    record = store.record("x" * 90 + secret, "y" * 500)
    assert len(record.summary) == EXCERPT_CHARS
    assert "sk-sss" not in record.user_message
    assert "[REDACTED]" in record.user_message


def test_save_redacts_every_field(store: MemoryStore) -> None:
    memory = SessionMemory(
        conversations=[
            ConversationRecord(
                timestamp="2026-01-01T00:00:00+00:00",
                user_message="token ghp_" + "a" * 36,
                summary="ok",
            )
        ]
    )
    store.save(memory)
    assert "ghp_" not in store.path.read_text(encoding="utf-8")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"conversations": "nope"}',
        '{"conversations": [{"timestamp": 1}]}',
    ],
)
def test_corrupted_file_resets_to_empty(
    store: MemoryStore, guardrails: Guardrails, content: str
) -> None:
    store.path.write_text(content, encoding="utf-8")
    memory = store.load()
    assert memory.conversations == []
    assert guardrails.audit.activities("MEMORY_CORRUPTED")


def test_unsafe_memory_path_is_never_written(guardrails: Guardrails, tmp_path) -> None:
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    store = MemoryStore(outside, "quill", guardrails)
    memory = SessionMemory()
    memory.append(store.record("a", "b"))
    assert store.save(memory) is False
    assert not store.path.exists()
    assert guardrails.audit.security_events("UNSAFE_MEMORY_WRITE")
    assert store.load().conversations == []
    assert guardrails.audit.security_events("UNSAFE_MEMORY_PATH")


def test_recent_returns_tail() -> None:
    memory = SessionMemory()
    for index in range(8):
        memory.append(ConversationRecord(str(index), "u", "s"))
    assert [record.timestamp for record in memory.recent(5)] == ["3", "4", "5", "6", "7"]
    assert memory.recent(0) == []
