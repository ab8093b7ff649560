"""Tests for the CLI entry point."""

from __future__ import annotations

import io
import json

import pytest
from filelock import FileLock

from terminai.cache import CacheStore
from terminai.cli import main
from terminai.memory import MemoryStore
from terminai.request import canonicalize


@pytest.fixture()
def dirs(tmp_path) -> list[str]:
    return ["--cache-dir", str(tmp_path / "cache"), "--state-dir", str(tmp_path / "state")]


def _run(capsys, argv: list[str]) -> tuple[int, str, str]:
    rc = main(argv)
    captured = capsys.readouterr()
    return rc, captured.out, captured.err


class TestCacheKey:
    def test_prints_hex_key(self, dirs, capsys):
        rc, out, _ = _run(capsys, dirs + ["cache", "key", "--model", "m", "hello"])
        assert rc == 0
        assert len(out.strip()) == 64

    def test_flag_order_does_not_matter(self, dirs, capsys):
        _, first, _ = _run(
            capsys,
            dirs + ["cache", "key", "--model", "m", "--temperature", "0.5", "--stop", "a,b", "hi"],
        )
        _, second, _ = _run(
            capsys,
            dirs + ["cache", "key", "--stop", "a, b", "hi", "--temperature", "0.50", "--model", "m"],
        )
        assert first == second

    def test_stream_does_not_change_key(self, dirs, capsys):
        _, plain, _ = _run(capsys, dirs + ["cache", "key", "hi"])
        _, streamed, _ = _run(capsys, dirs + ["cache", "key", "--stream", "hi"])
        assert plain == streamed

    def test_reads_prompt_from_stdin(self, dirs, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("hi\n"))
        _, piped, _ = _run(capsys, dirs + ["cache", "key"])
        _, given, _ = _run(capsys, dirs + ["cache", "key", "hi"])
        assert piped == given

    def test_invalid_temperature_fails_fast(self, dirs, capsys, tmp_path):
        rc, _, err = _run(capsys, dirs + ["cache", "key", "--temperature", "warm", "hi"])
        assert rc == 1
        assert err.startswith("Error:")
        assert len(err.strip().splitlines()) == 1
        assert not (tmp_path / "cache").exists()

    def test_invalid_max_tokens_fails_fast(self, dirs, capsys):
        rc, _, err = _run(capsys, dirs + ["cache", "key", "--max-tokens", "lots", "hi"])
        assert rc == 1
        assert "max-tokens" in err


class TestCacheListAndReplay:
    def _seed(self, tmp_path) -> str:
        store = CacheStore(tmp_path / "cache")
        return store.record(canonicalize("m", "What is caching?"), "Storing answers.").key

    def test_list_empty(self, dirs, capsys):
        rc, out, _ = _run(capsys, dirs + ["cache", "list"])
        assert rc == 0
        assert "No cache entries." in out

    def test_list_entries(self, dirs, capsys, tmp_path):
        key = self._seed(tmp_path)
        rc, out, _ = _run(capsys, dirs + ["cache", "list"])
        assert rc == 0
        assert key in out
        assert "[m]" in out
        assert "What is caching?" in out

    def test_list_json(self, dirs, capsys, tmp_path):
        key = self._seed(tmp_path)
        _, out, _ = _run(capsys, dirs + ["cache", "list", "--json"])
        [row] = json.loads(out)
        assert row["key"] == key
        assert row["prompt_preview"] == "What is caching?"

    def test_replay(self, dirs, capsys, tmp_path):
        key = self._seed(tmp_path)
        rc, out, _ = _run(capsys, dirs + ["cache", "replay", key])
        assert rc == 0
        assert out == "Storing answers.\n"

    def test_replay_unknown_key(self, dirs, capsys):
        rc, _, err = _run(capsys, dirs + ["cache", "replay", "0" * 64])
        assert rc == 1
        assert "Cache not found for key" in err


class TestMemoryCommands:
    def test_append_and_join(self, dirs, capsys):
        _run(capsys, dirs + ["memory", "append", "--prompt", "hi", "--response", "there"])
        rc, out, _ = _run(capsys, dirs + ["memory", "join", "--with", "next"])
        assert rc == 0
        assert out == "User: hi\nAssistant: there\nUser: next\n"

    def test_get(self, dirs, capsys):
        _run(capsys, dirs + ["memory", "append", "--prompt", "hello world"])
        _, out, _ = _run(capsys, dirs + ["memory", "get"])
        assert out == "Recent context:\n- hello, world\n"

    def test_join_max(self, dirs, capsys, tmp_path):
        store = MemoryStore(tmp_path / "state" / "memory.json")
        for i in range(4):
            store.append(f"q{i}")
        _, out, _ = _run(capsys, dirs + ["memory", "join", "--max", "1"])
        assert out == "User: q3\n"

    def test_empty_join_prints_nothing(self, dirs, capsys):
        rc, out, _ = _run(capsys, dirs + ["memory", "join"])
        assert rc == 0
        assert out == ""

    def test_clear(self, dirs, capsys):
        _run(capsys, dirs + ["memory", "append", "--prompt", "hi"])
        rc, out, _ = _run(capsys, dirs + ["memory", "clear"])
        assert rc == 0
        assert "Cleared" in out
        _, out, _ = _run(capsys, dirs + ["memory", "join"])
        assert out == ""

    def test_state_dir_from_environment(self, capsys, monkeypatch, tmp_path):
        monkeypatch.setenv("TERMINAI_STATE_DIR", str(tmp_path / "env-state"))
        _run(capsys, ["memory", "append", "--prompt", "hi"])
        assert (tmp_path / "env-state" / "memory.json").exists()


class TestCompose:
    def test_compose_with_memory(self, dirs, capsys):
        _run(capsys, dirs + ["memory", "append", "--prompt", "before", "--response", "ok"])
        rc, out, _ = _run(capsys, dirs + ["compose", "--system", "be brief", "now"])
        assert rc == 0
        assert out == "System: be brief\nUser: before\nAssistant: ok\nUser: now\n"

    def test_compose_without_memory(self, dirs, capsys):
        _run(capsys, dirs + ["memory", "append", "--prompt", "before"])
        _, out, _ = _run(capsys, dirs + ["compose", "--no-memory", "now"])
        assert out == "now\n"

    def test_compose_missing_prompt(self, dirs, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        rc, _, err = _run(capsys, dirs + ["compose"])
        assert rc == 1
        assert "no prompt" in err


class TestStorageErrors:
    def test_unwritable_state_dir(self, capsys, tmp_path):
        (tmp_path / "blocker").write_text("not a directory")
        state = str(tmp_path / "blocker" / "state")
        argv = ["--state-dir", state, "memory", "append", "--prompt", "hi"]
        rc, _, err = _run(capsys, argv)
        assert rc == 1
        assert err.startswith("Error:")
        assert len(err.strip().splitlines()) == 1

    def test_lock_timeout(self, dirs, capsys, tmp_path, monkeypatch):
        monkeypatch.setenv("TERMINAI_LOCK_TIMEOUT", "0.1")
        (tmp_path / "state").mkdir()
        with FileLock(str(tmp_path / "state" / "memory.json.lock")):
            rc, _, err = _run(capsys, dirs + ["memory", "append", "--prompt", "hi"])
        assert rc == 1
        assert err.startswith("Error:")
        assert "memory.json.lock" in err
