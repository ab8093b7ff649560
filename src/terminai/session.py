"""
ChatSession: one request through memory, transport, cache and back.

The HTTP call to the provider is not part of this package; callers inject
any callable matching :class:`Transport`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from filelock import Timeout

from .cache import CacheStore
from .config import Settings
from .context import ContextComposer
from .memory import MemoryStore
from .request import build_payload, canonicalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """What the provider returned: the response text and its raw payload."""

    text: str
    raw: Any | None = None


class Transport(Protocol):
    """Sends one request payload; implementations give up after ``Settings.timeout`` seconds."""

    def __call__(self, payload: dict[str, Any]) -> TransportResponse:
        ...


@dataclass(frozen=True)
class ChatResult:
    text: str
    key: str
    cached: bool = False


class ChatSession:
    """
    Runs the request flow for one CLI invocation.

    1. Canonicalize the literal prompt (input errors surface here, before
       any store is touched).
    2. Optionally answer from the cache.
    3. Compose the effective prompt from memory and send it.
    4. Record the response in the cache and the literal turn in memory.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        cache: CacheStore | None = None,
        memory: MemoryStore | None = None,
        composer: ContextComposer | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport
        if cache is None:
            cache = CacheStore(settings.cache_dir, strict=settings.strict_storage)
        if memory is None:
            memory = MemoryStore(
                settings.memory_file,
                max_keep=settings.max_keep,
                lock_timeout=settings.lock_timeout,
                strict=settings.strict_storage,
            )
        if composer is None:
            composer = ContextComposer(memory, window=settings.memory_window)
        self.cache = cache
        self.memory = memory
        self.composer = composer

    def send(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: Any = None,
        stop: Any = None,
        max_tokens: Any = None,
        stream: bool = False,
        use_memory: bool = True,
        use_cache: bool = True,
    ) -> ChatResult:
        request = canonicalize(
            model=model or self.settings.model,
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=self.settings.temperature if temperature is None else temperature,
            stop=stop,
            max_tokens=max_tokens,
        )
        key = self.cache.key(request)

        if use_cache and self.settings.serve_from_cache:
            entry = self.cache.get(key)
            if entry is not None and entry.response.text:
                logger.info("Serving %s from cache", key)
                return ChatResult(text=entry.response.text, key=key, cached=True)

        effective = self.composer.compose(system_prompt, prompt, memory_enabled=use_memory)
        response = self.transport(build_payload(request, prompt=effective, stream=stream))

        # Storage failures past this point are logged, never raised.
        if use_cache:
            try:
                self.cache.record(request, response.text, raw=response.raw)
            except (OSError, Timeout) as exc:
                logger.warning("Could not cache response %s: %s", key, exc)
            else:
                logger.info("Cached under key: %s", key)
        # Turns are remembered even when this call ran without context.
        try:
            self.memory.append(prompt, response=response.text)
        except (OSError, Timeout) as exc:
            logger.warning("Could not record turn in memory: %s", exc)

        return ChatResult(text=response.text, key=key)

    def clear_memory(self) -> None:
        self.memory.clear()
