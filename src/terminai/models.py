"""Persisted data shapes.

Every file terminai writes is described by one of these pydantic models and
validated with ``model_validate`` when read back.  Unknown fields are
ignored and missing optional fields take their defaults, so older files and
hand-edited files degrade instead of crashing.  ``schema_version`` is
written on every save; files from a newer, unknown version are rejected.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, field_validator

SCHEMA_VERSION = 1


class _Versioned(BaseModel):
    schema_version: int = SCHEMA_VERSION

    @field_validator("schema_version")
    @classmethod
    def _known_version(cls, value: int) -> int:
        if value > SCHEMA_VERSION:
            raise ValueError(f"unsupported schema version {value} (max {SCHEMA_VERSION})")
        return value


# ---------------------------------------------------------------------------
# Requests and cache entries
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """One chat message sent to the provider."""

    role: str
    content: str


class CanonicalRequest(BaseModel):
    """Normalized, order-independent form of a logical chat request.

    Attributes:
        model: Provider model name
        messages: Optional system message followed by the user message
        temperature: Sampling temperature
        stop: Sorted, deduplicated, trimmed stop sequences
        max_tokens: Optional response token limit
    """

    model: str
    messages: list[Message]
    temperature: float
    stop: list[str] = Field(default_factory=list)
    max_tokens: int | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the canonical dict with its fixed key order."""
        data: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
            "temperature": self.temperature,
        }
        if self.stop:
            data["stop"] = list(self.stop)
        if self.max_tokens is not None:
            data["max_tokens"] = self.max_tokens
        return data

    def canonical_json(self) -> str:
        """Compact JSON serialization used for hashing."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False)

    @property
    def user_prompt(self) -> str:
        """Content of the first user message (empty if there is none)."""
        for message in self.messages:
            if message.role == "user":
                return message.content
        return ""


class CachedResponse(BaseModel):
    text: str = ""
    raw: Any | None = None


class CacheMeta(BaseModel):
    created_at_iso: str = ""
    model: str = ""


class CacheEntry(_Versioned):
    """A request/response pair stored under its content hash."""

    key: str
    request: CanonicalRequest
    response: CachedResponse = Field(default_factory=CachedResponse)
    meta: CacheMeta = Field(default_factory=CacheMeta)


# ---------------------------------------------------------------------------
# Conversation memory
# ---------------------------------------------------------------------------


class SentenceRecord(BaseModel):
    """Keyword analysis of a single sentence."""

    text: str
    keywords: list[str] = Field(default_factory=list)
    pair: list[str] = Field(default_factory=list)


class MemoryItem(BaseModel):
    """One remembered conversation turn."""

    ts: str
    prompt: str
    response: str | None = None
    analysis: list[SentenceRecord] = Field(default_factory=list)
    pairs: list[list[str]] = Field(default_factory=list)
    summary: list[str] = Field(default_factory=list)


class MemoryLog(_Versioned):
    items: list[MemoryItem] = Field(default_factory=list)
