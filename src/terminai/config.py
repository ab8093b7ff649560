"""
Runtime settings for terminai.

Settings are an explicit value passed to each component's constructor;
nothing in the package reads the environment at import time.  Entry points
build one with :meth:`Settings.from_env`.

Environment variables:
    TERMINAI_CACHE_DIR       - cache entry directory (default: $XDG_CACHE_HOME/terminai)
    TERMINAI_STATE_DIR       - state root holding memory.json (default: $XDG_STATE_HOME/terminai)
    TERMINAI_MAX_KEEP        - memory retention bound (default: 100)
    TERMINAI_MEMORY_WINDOW   - turns included in composed prompts (default: 8)
    TERMINAI_LOCK_TIMEOUT    - seconds to wait for the memory lock (default: 10)
    TERMINAI_TIMEOUT         - whole seconds a transport may spend on one request (default: 300)
    TERMINAI_STRICT_STORAGE  - raise on corrupt files instead of ignoring them
    TERMINAI_SERVE_FROM_CACHE - answer repeated requests from the cache
    TERMINAI_MODEL           - default model name
    TERMINAI_TEMPERATURE     - default sampling temperature
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .request import parse_timeout

APP_NAME = "terminai"

DEFAULT_MODEL = "llama-3.1-70b-versatile"
DEFAULT_TEMPERATURE = "0.7"
DEFAULT_MAX_KEEP = 100
DEFAULT_MEMORY_WINDOW = 8
DEFAULT_LOCK_TIMEOUT = 10.0
DEFAULT_TIMEOUT = 300

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the platform cache location, honouring ``XDG_CACHE_HOME``."""
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / APP_NAME


def default_state_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the platform state location, honouring ``XDG_STATE_HOME``."""
    env = os.environ if environ is None else environ
    base = env.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base) / APP_NAME


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the cache, memory and session components."""

    cache_dir: Path = field(default_factory=default_cache_dir)
    state_dir: Path = field(default_factory=default_state_dir)
    max_keep: int = DEFAULT_MAX_KEEP
    memory_window: int = DEFAULT_MEMORY_WINDOW
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    timeout: int = DEFAULT_TIMEOUT
    strict_storage: bool = False
    serve_from_cache: bool = False
    model: str = DEFAULT_MODEL
    temperature: str = DEFAULT_TEMPERATURE

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.max_keep < 1:
            raise ValueError(f"max_keep must be at least 1, got {self.max_keep}")
        if self.memory_window < 0:
            raise ValueError(f"memory_window must not be negative, got {self.memory_window}")
        if self.lock_timeout <= 0:
            raise ValueError(f"lock_timeout must be positive, got {self.lock_timeout}")
        if self.timeout < 1:
            raise ValueError(f"timeout must be at least 1, got {self.timeout}")

    @property
    def memory_file(self) -> Path:
        return self.state_dir / "memory.json"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from *environ* (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        return cls(
            cache_dir=Path(env.get("TERMINAI_CACHE_DIR") or default_cache_dir(env)),
            state_dir=Path(env.get("TERMINAI_STATE_DIR") or default_state_dir(env)),
            max_keep=int(env.get("TERMINAI_MAX_KEEP", DEFAULT_MAX_KEEP)),
            memory_window=int(env.get("TERMINAI_MEMORY_WINDOW", DEFAULT_MEMORY_WINDOW)),
            lock_timeout=float(env.get("TERMINAI_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT)),
            timeout=parse_timeout(env.get("TERMINAI_TIMEOUT") or DEFAULT_TIMEOUT),
            strict_storage=_flag(env.get("TERMINAI_STRICT_STORAGE")),
            serve_from_cache=_flag(env.get("TERMINAI_SERVE_FROM_CACHE")),
            model=env.get("TERMINAI_MODEL") or DEFAULT_MODEL,
            temperature=env.get("TERMINAI_TEMPERATURE") or DEFAULT_TEMPERATURE,
        )

    def with_overrides(self, **changes: object) -> Settings:
        """Return a copy with the non-``None`` values of *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
