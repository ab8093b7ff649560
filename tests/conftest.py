"""
Shared pytest fixtures for terminai tests.

Every store lives under ``tmp_path`` and the provider is replaced by a
recording fake transport, so tests never touch the user's real cache or
state directories and never reach the network.
"""

from __future__ import annotations

from typing import Any

import pytest

from terminai.cache import CacheStore
from terminai.config import Settings
from terminai.memory import MemoryStore
from terminai.session import TransportResponse


class FakeTransport:
    """
    Deterministic stand-in for the provider call.

    Answers every payload with ``"echo: <latest user turn>"`` and records
    the payloads it was given.
    """

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    def __call__(self, payload: dict[str, Any]) -> TransportResponse:
        self.payloads.append(payload)
        user = [m["content"] for m in payload["messages"] if m["role"] == "user"][-1]
        last_line = user.splitlines()[-1].removeprefix("User: ")
        return TransportResponse(
            text=f"echo: {last_line}",
            raw={"choices": [{"message": {"content": f"echo: {last_line}"}}]},
        )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env files out of every test."""
    for name in (
        "TERMINAI_CACHE_DIR",
        "TERMINAI_STATE_DIR",
        "TERMINAI_MAX_KEEP",
        "TERMINAI_MEMORY_WINDOW",
        "TERMINAI_LOCK_TIMEOUT",
        "TERMINAI_TIMEOUT",
        "TERMINAI_STRICT_STORAGE",
        "TERMINAI_SERVE_FROM_CACHE",
        "TERMINAI_MODEL",
        "TERMINAI_TEMPERATURE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(cache_dir=tmp_path / "cache", state_dir=tmp_path / "state")


@pytest.fixture()
def cache_store(settings: Settings) -> CacheStore:
    return CacheStore(settings.cache_dir)


@pytest.fixture()
def memory_store(settings: Settings) -> MemoryStore:
    return MemoryStore(settings.memory_file, max_keep=settings.max_keep)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()
