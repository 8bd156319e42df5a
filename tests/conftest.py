import os
from pathlib import Path

import pytest

from mission_control.config import get_settings
from mission_control.guardrails import Guardrails, get_guardrails

from fakes import FakeStore


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    root = tmp_path / "mc"
    root.mkdir()
    monkeypatch.chdir(tmp_path)
    os.environ["MC_ROOT"] = str(root)
    os.environ["OPENAI_API_KEY"] = "sk-test-key"
    os.environ["CONVEX_URL"] = ""
    os.environ["APP_ENV"] = "dev"
    for key in (
        "AGENT_INTERVAL",
        "RATE_LIMIT_CHAT_PER_MINUTE",
        "RATE_LIMIT_DEFAULT_PER_MINUTE",
        "DEFAULT_MODEL",
    ):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    get_guardrails.cache_clear()
    yield
    get_settings.cache_clear()
    get_guardrails.cache_clear()


@pytest.fixture
def mc_root() -> Path:
    return get_settings().root_path


@pytest.fixture
def guardrails(mc_root: Path) -> Guardrails:
    return Guardrails.for_root(mc_root)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()

