"""
Exception taxonomy for terminai.

Input errors are raised before any store is touched.  Storage-read problems
are normally absorbed by the stores themselves and only surface as
:class:`CorruptStateError` when strict storage is enabled.
"""

from __future__ import annotations


class TerminaiError(Exception):
    """Base class for every error raised by terminai."""


class InvalidRequestError(TerminaiError, ValueError):
    """A caller-supplied request field failed validation."""


class CacheMissError(TerminaiError, KeyError):
    """No cache entry exists for the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Cache not found for key: {self.key}"


class CorruptStateError(TerminaiError):
    """A persisted file exists but cannot be parsed (strict mode only)."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
