"""
Request canonicalization and input validation.

A logical chat request is reduced to a :class:`CanonicalRequest` whose JSON
serialization is identical for every semantically equal request, whatever
order the flags were given in and whatever incidental whitespace surrounds
the stop sequences.  Non-semantic fields such as ``stream`` never take part.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from .errors import InvalidRequestError
from .models import CanonicalRequest, Message

_NUMBER = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")
_INTEGER = re.compile(r"^[0-9]+$")


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def parse_temperature(value: Any) -> float:
    """Parse a decimal temperature from a string or real number."""
    if isinstance(value, bool):
        raise InvalidRequestError(f"temperature must be a number, got {value!r}")
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str) and _NUMBER.match(value.strip()):
        number = float(Decimal(value.strip()))
    else:
        raise InvalidRequestError(f"temperature must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidRequestError(f"temperature must be finite, got {value!r}")
    # Folds -0.0 into 0.0 so both serialize the same way.
    return number + 0.0


def _parse_whole(value: Any, name: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidRequestError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _INTEGER.match(value.strip()):
        number = int(value.strip())
    else:
        raise InvalidRequestError(f"{name} must be an integer, got {value!r}")
    if number < 0:
        raise InvalidRequestError(f"{name} must not be negative, got {value!r}")
    return number


def parse_max_tokens(value: Any) -> int | None:
    """Parse an optional non-negative token limit; blank means absent."""
    return _parse_whole(value, "max-tokens")


def parse_timeout(value: Any) -> int:
    """Parse a request timeout in whole seconds."""
    timeout = _parse_whole(value, "timeout")
    if not timeout:
        raise InvalidRequestError(f"timeout must be a positive integer, got {value!r}")
    return timeout


def parse_stop(value: str | Iterable[str] | None) -> list[str]:
    """
    Normalize stop sequences to a sorted list of unique, trimmed strings.

    A string is split on commas.  Elements that are empty after trimming
    are dropped, so ``""`` and ``" , "`` both mean "no stop sequences".
    """
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else list(value)
    cleaned = set()
    for part in parts:
        if not isinstance(part, str):
            raise InvalidRequestError(f"stop sequences must be strings, got {part!r}")
        if part.strip():
            cleaned.add(part.strip())
    return sorted(cleaned)


# ---------------------------------------------------------------------------
# Canonicalization
# ---------------------------------------------------------------------------


def canonicalize(
    model: str,
    prompt: str,
    system_prompt: str | None = None,
    temperature: Any = 0.7,
    stop: str | Iterable[str] | None = None,
    max_tokens: Any = None,
) -> CanonicalRequest:
    """
    Build the canonical form of a request.

    The system message is included only when *system_prompt* is non-empty,
    and always precedes the user message.  Raises
    :class:`InvalidRequestError` on any invalid field.
    """
    if not model or not model.strip():
        raise InvalidRequestError("model must not be empty")
    if not prompt:
        raise InvalidRequestError("prompt must not be empty")

    messages: list[Message] = []
    if system_prompt:
        messages.append(Message(role="system", content=system_prompt))
    messages.append(Message(role="user", content=prompt))

    return CanonicalRequest(
        model=model.strip(),
        messages=messages,
        temperature=parse_temperature(temperature),
        stop=parse_stop(stop),
        max_tokens=parse_max_tokens(max_tokens),
    )


def canonicalize_payload(payload: Mapping[str, Any]) -> CanonicalRequest:
    """
    Canonicalize a provider-style payload dict.

    Reads ``model``, ``messages``, ``temperature``, ``stop`` and
    ``max_tokens``; delivery fields such as ``stream`` or ``timestamp`` and
    anything else are ignored.
    """
    system_prompt = None
    prompt = ""
    for message in payload.get("messages") or []:
        role = message.get("role")
        if role == "system" and system_prompt is None:
            system_prompt = message.get("content") or None
        elif role == "user" and not prompt:
            prompt = message.get("content") or ""

    return canonicalize(
        model=payload.get("model") or "",
        prompt=prompt,
        system_prompt=system_prompt,
        temperature=payload.get("temperature", 0.7),
        stop=payload.get("stop"),
        max_tokens=payload.get("max_tokens"),
    )


def build_payload(
    request: CanonicalRequest,
    prompt: str | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """
    Provider payload for *request*, optionally with a substituted user prompt.

    The session sends the composed prompt while the cache keys on the
    literal one, so *prompt* replaces the user message content here only.
    """
    payload = request.to_wire()
    if prompt is not None:
        payload["messages"] = [
            {"role": m["role"], "content": prompt if m["role"] == "user" else m["content"]}
            for m in payload["messages"]
        ]
    payload["stream"] = stream
    return payload
