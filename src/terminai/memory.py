"""
MemoryStore: bounded, file-backed log of recent conversation turns.

The log lives in a single JSON file.  Appends are read-modify-write, so
they hold an exclusive cross-process file lock for the whole cycle; readers
need no lock because the file is only ever replaced atomically.

Usage example::

    from terminai.memory import MemoryStore

    memory = MemoryStore("~/.local/state/terminai/memory.json", max_keep=100)
    memory.append("What is a monad?", response="A monoid in the category...")

    # Transcript of the last turns, ready to prepend to a new prompt
    print(memory.join(max_items=8, with_prompt="Give an example."))
"""

from __future__ import annotations

import logging
from pathlib import Path

from filelock import FileLock

from .config import DEFAULT_LOCK_TIMEOUT, DEFAULT_MAX_KEEP
from .errors import InvalidRequestError
from .models import MemoryItem, MemoryLog
from .storage import read_model, utc_now_iso, write_model
from .summarizer import KeywordSummarizer, Summarizer, summarize

logger = logging.getLogger(__name__)

#: Default number of turns rendered by :meth:`MemoryStore.join` and ``get``.
DEFAULT_WINDOW: int = 8


class MemoryStore:
    """
    Size-bounded conversation memory persisted to a JSON file.

    Responsibilities
    ----------------
    * **Append** – Annotates a turn with the configured summarizer, adds it
      to the log and evicts the oldest turns beyond ``max_keep``.
    * **Window** – Returns the most recent turns in their original order.
    * **Render** – Turns a window into a ``User:``/``Assistant:`` transcript
      (:meth:`join`) or a compact keyword context (:meth:`get`).
    * **Clear** – Deletes the log; the next append recreates it.

    A missing or corrupt log file reads as an empty log.

    Parameters
    ----------
    path:
        Location of the memory log file.
    max_keep:
        Maximum number of turns retained.  Oldest turns are dropped first.
    summarizer:
        Object implementing :class:`~terminai.summarizer.Summarizer`.
        Defaults to the keyword summarizer.
    lock_timeout:
        Seconds to wait for the append lock before raising
        :class:`filelock.Timeout`.
    strict:
        Raise :class:`~terminai.errors.CorruptStateError` on a corrupt log
        instead of treating it as empty.
    """

    def __init__(
        self,
        path: str | Path,
        max_keep: int = DEFAULT_MAX_KEEP,
        summarizer: Summarizer | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        strict: bool = False,
    ) -> None:
        if max_keep < 1:
            raise ValueError(f"max_keep must be at least 1, got {max_keep}")
        self.path = Path(path).expanduser()
        self.max_keep = max_keep
        self.summarizer = summarizer if summarizer is not None else KeywordSummarizer()
        self.strict = strict
        self._lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock_timeout = lock_timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, prompt: str, response: str | None = None) -> MemoryItem:
        """
        Record one turn and persist the updated log.

        Parameters
        ----------
        prompt:
            The user's literal prompt.  Must be non-empty.
        response:
            The assistant's reply, if any.  Empty strings are stored as
            ``None``.

        Returns
        -------
        MemoryItem
            The item that was appended.
        """
        if not prompt:
            raise InvalidRequestError("append requires a prompt")

        analysis = self.summarizer.analyze(prompt)
        pairs, summary = summarize(analysis)
        item = MemoryItem(
            ts=utc_now_iso(),
            prompt=prompt,
            response=response or None,
            analysis=analysis,
            pairs=pairs,
            summary=summary,
        )

        with self._locked():
            log = self._load()
            items = (log.items + [item])[-self.max_keep:]
            write_model(self.path, MemoryLog(items=items))
        logger.debug("Appended memory item (%d kept)", len(items))
        return item

    def window(self, max_items: int) -> list[MemoryItem]:
        """Return the last ``min(max_items, len(log))`` items, oldest first."""
        if max_items <= 0:
            return []
        return self._load().items[-max_items:]

    def items(self) -> list[MemoryItem]:
        """Return every retained item, oldest first."""
        return self._load().items

    def join(self, max_items: int = DEFAULT_WINDOW, with_prompt: str | None = None) -> str:
        """
        Render the window as a transcript.

        Each item yields a ``User:`` line and, if it has a response, an
        ``Assistant:`` line.  A non-empty *with_prompt* adds a final
        ``User:`` line.  Returns ``""`` when there is nothing to render.
        """
        lines: list[str] = []
        for item in self.window(max_items):
            lines.append(f"User: {item.prompt}")
            if item.response:
                lines.append(f"Assistant: {item.response}")
        if with_prompt:
            lines.append(f"User: {with_prompt}")
        return "\n".join(lines)

    def get(self, max_items: int = DEFAULT_WINDOW, with_prompt: str | None = None) -> str:
        """
        Render the window as a compact keyword context.

        One bullet per item, built from its first four summary keywords,
        else its first two keyword pairs, else the first three keywords of
        its first sentence.
        """
        bullets = [f"- {_headline(item)}" for item in self.window(max_items)]
        blocks: list[str] = []
        if bullets:
            blocks.append("Recent context:\n" + "\n".join(bullets))
        if with_prompt:
            blocks.append(f"Current prompt:\n- {with_prompt}")
        return "\n\n".join(blocks)

    def clear(self) -> None:
        """Delete the persisted log.  Subsequent reads see an empty log."""
        with self._locked():
            self.path.unlink(missing_ok=True)
        logger.debug("Cleared memory log %s", self.path)

    def __len__(self) -> int:
        return len(self._load().items)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _locked(self) -> FileLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(self._lock_path), timeout=self._lock_timeout)

    def _load(self) -> MemoryLog:
        return read_model(self.path, MemoryLog, strict=self.strict) or MemoryLog()


def _headline(item: MemoryItem) -> str:
    if item.summary:
        return ", ".join(item.summary[:4])
    if item.pairs:
        return ", ".join(" ".join(pair) for pair in item.pairs[:2])
    if item.analysis:
        return ", ".join(item.analysis[0].keywords[:3])
    return ""
