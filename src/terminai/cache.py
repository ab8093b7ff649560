"""
Content-addressed response cache.

Each canonical request is hashed with SHA-256 and its entry stored as
``<key>.json`` in the cache directory.  Identical requests always produce
the same key and, assuming a deterministic provider, the same content, so
concurrent writers need no lock: entries are written atomically and the
last writer wins harmlessly.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import CacheMissError
from .models import CachedResponse, CacheEntry, CacheMeta, CanonicalRequest
from .storage import read_model, utc_now_iso, write_model

logger = logging.getLogger(__name__)

#: Characters of the user prompt shown by :meth:`CacheStore.list`.
PREVIEW_LENGTH: int = 80

_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def cache_key(request: CanonicalRequest) -> str:
    """Return the hex SHA-256 digest of the canonical serialization."""
    return hashlib.sha256(request.canonical_json().encode("utf-8")).hexdigest()


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Cut *text* to *length* characters, marking truncation with '...'."""
    return text[:length] + "..." if len(text) > length else text


@dataclass(frozen=True)
class CacheListing:
    """One row of :meth:`CacheStore.list`."""

    key: str
    created_at: str
    model: str
    prompt_preview: str


class CacheStore:
    """
    Persistent request/response cache keyed by content hash.

    Parameters
    ----------
    directory:
        Folder holding one JSON file per entry.  Created on first write.
    strict:
        Raise :class:`~terminai.errors.CorruptStateError` on unreadable
        entries instead of treating them as missing.
    """

    def __init__(self, directory: str | Path, strict: bool = False) -> None:
        self.directory = Path(directory)
        self.strict = strict

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def key(request: CanonicalRequest) -> str:
        return cache_key(request)

    def _path(self, key: str) -> Path | None:
        if not _KEY_PATTERN.match(key):
            return None
        return self.directory / f"{key}.json"

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def put(self, key: str, entry: CacheEntry) -> None:
        """Write (or idempotently overwrite) the entry for *key*."""
        path = self._path(key)
        if path is None:
            raise ValueError(f"Not a cache key: {key!r}")
        if entry.key != key:
            raise ValueError(f"Entry key {entry.key!r} does not match {key!r}")
        write_model(path, entry)
        logger.debug("Cached %s under %s", entry.request.model, key)

    def record(
        self,
        request: CanonicalRequest,
        text: str,
        raw: Any | None = None,
    ) -> CacheEntry:
        """Build an entry for a fresh provider response and store it."""
        key = self.key(request)
        entry = CacheEntry(
            key=key,
            request=request,
            response=CachedResponse(text=text, raw=raw),
            meta=CacheMeta(created_at_iso=utc_now_iso(), model=request.model),
        )
        self.put(key, entry)
        return entry

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for *key*, or ``None`` if there is none."""
        path = self._path(key)
        if path is None:
            return None
        return read_model(path, CacheEntry, strict=self.strict)

    def replay(self, key: str) -> str:
        """
        Return the stored response text for *key*.

        Falls back to the pretty-printed raw provider payload when no text
        was stored, or to the whole entry when there is no payload either.
        Raises :class:`CacheMissError` if *key* is unknown.
        """
        entry = self.get(key)
        if entry is None:
            raise CacheMissError(key)
        if entry.response.text:
            return entry.response.text
        fallback = entry.response.raw
        if fallback is None:
            fallback = entry.model_dump(mode="json")
        return json.dumps(fallback, indent=2, ensure_ascii=False)

    def list(self) -> list[CacheListing]:
        """Enumerate readable entries, sorted by key."""
        if not self.directory.is_dir():
            return []
        listings: list[CacheListing] = []
        for path in sorted(self.directory.glob("*.json")):
            entry = self.get(path.stem)
            if entry is None:
                continue
            listings.append(
                CacheListing(
                    key=path.stem,
                    created_at=entry.meta.created_at_iso,
                    model=entry.request.model or entry.meta.model,
                    prompt_preview=preview(entry.request.user_prompt),
                )
            )
        return listings

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self.list())
