"""
Lightweight keyword summarization for conversation memory.

This is deliberately not NLP: each sentence is reduced to its first few
meaningful tokens so that memory entries can be annotated cheaply and
deterministically.  The :class:`Summarizer` protocol is the seam where a
stronger summarizer can be plugged into the memory store.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from .models import SentenceRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Keywords kept per sentence.
MAX_KEYWORDS: int = 6

#: Keywords forming a sentence's leading pair.
PAIR_SIZE: int = 2

#: Tokens of this length or shorter are discarded.
MIN_TOKEN_LENGTH: int = 2

#: Cap applied to the per-item ``pairs`` and ``summary`` aggregates.
MAX_AGGREGATE: int = 8

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_SENTENCE_END = re.compile(r"(?<=[.!?])")


# ---------------------------------------------------------------------------
# Sentence analysis
# ---------------------------------------------------------------------------


def _split_sentences(text: str) -> list[str]:
    """Split after every '.', '!' or '?' and drop empty segments."""
    flat = text.replace("\r", "").replace("\n", " ")
    parts = _SENTENCE_END.split(flat)
    return [p.strip() for p in parts if p.strip()]


def tokenize(sentence: str) -> list[str]:
    """Lowercase ASCII alphanumeric tokens longer than two characters."""
    cleaned = _NON_ALNUM.sub(" ", sentence.lower())
    return [tok for tok in cleaned.split() if len(tok) > MIN_TOKEN_LENGTH]


def analyze(text: str) -> list[SentenceRecord]:
    """
    Turn *text* into one :class:`SentenceRecord` per sentence.

    Sentences without qualifying tokens still produce a record, with empty
    ``keywords`` and ``pair``.
    """
    records: list[SentenceRecord] = []
    for sentence in _split_sentences(text):
        tokens = tokenize(sentence)
        records.append(
            SentenceRecord(
                text=sentence,
                keywords=tokens[:MAX_KEYWORDS],
                pair=tokens[:PAIR_SIZE],
            )
        )
    return records


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def summarize(
    records: Iterable[SentenceRecord],
    limit: int = MAX_AGGREGATE,
) -> tuple[list[list[str]], list[str]]:
    """
    Collapse sentence records into ``(pairs, summary)``.

    Both lists keep order of first appearance, drop duplicates and are cut
    to *limit* entries.  Empty pairs are skipped.
    """
    pairs: list[list[str]] = []
    seen_pairs: set[tuple[str, ...]] = set()
    summary: list[str] = []
    seen_words: set[str] = set()

    for record in records:
        pair = tuple(record.pair)
        if pair and pair not in seen_pairs:
            seen_pairs.add(pair)
            pairs.append(list(pair))
        for word in record.keywords:
            if word not in seen_words:
                seen_words.add(word)
                summary.append(word)

    return pairs[:limit], summary[:limit]


# ---------------------------------------------------------------------------
# Pluggable interface
# ---------------------------------------------------------------------------


@runtime_checkable
class Summarizer(Protocol):
    """Anything that can annotate a prompt with sentence records."""

    def analyze(self, text: str) -> list[SentenceRecord]:
        ...


class KeywordSummarizer:
    """Default :class:`Summarizer` backed by :func:`analyze`."""

    def analyze(self, text: str) -> list[SentenceRecord]:
        return analyze(text)
