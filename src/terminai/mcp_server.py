"""
MCP (Model Context Protocol) server for terminai.

Exposes the response cache and the conversation memory as tools so that an
MCP client can replay cached answers and read or extend the transcript that
the terminai CLI builds its prompts from.

Run as a stdio server:
    python -m terminai.mcp_server

Or via the installed entry-point:
    terminai-mcp

Configuration comes from the same environment variables as the CLI (see
:mod:`terminai.config`), optionally loaded from a ``.env`` file.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from .cache import CacheStore
from .config import Settings
from .context import ContextComposer
from .errors import CacheMissError
from .memory import MemoryStore
from .request import canonicalize

# ---------------------------------------------------------------------------
# Lazily built stores
# ---------------------------------------------------------------------------


@dataclass
class _Services:
    settings: Settings
    cache: CacheStore
    memory: MemoryStore

    @classmethod
    def from_settings(cls, settings: Settings) -> _Services:
        return cls(
            settings=settings,
            cache=CacheStore(settings.cache_dir, strict=settings.strict_storage),
            memory=MemoryStore(
                settings.memory_file,
                max_keep=settings.max_keep,
                lock_timeout=settings.lock_timeout,
                strict=settings.strict_storage,
            ),
        )


_services: _Services | None = None


def _get_services() -> _Services:
    global _services
    if _services is None:
        load_dotenv()
        _services = _Services.from_settings(Settings.from_env())
    return _services


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "terminai",
    instructions=(
        "Response cache and conversation memory of the terminai assistant. "
        "Use `cache_key` to compute the key of a request and `cache_replay` "
        "to read a cached answer without calling the model again. "
        "Use `cache_list` to browse cached requests. "
        "Use `memory_join` or `memory_context` to read recent conversation "
        "turns, `memory_append` to record a turn, and `memory_clear` to "
        "forget them. Use `compose_prompt` to see the prompt terminai would send."
    ),
)


@mcp.tool()
def cache_key(
    prompt: str,
    model: str = "",
    system: str = "",
    temperature: str = "",
    stop: str = "",
    max_tokens: str = "",
) -> str:
    """
    Compute the cache key of a request.

    Args:
        prompt:      The user's prompt.
        model:       Model name (defaults to the configured model).
        system:      Optional system message.
        temperature: Sampling temperature (defaults to the configured one).
        stop:        Comma-separated stop sequences.
        max_tokens:  Optional response token limit.

    Returns:
        The 64-character hex key.
    """
    settings = _get_services().settings
    request = canonicalize(
        model=model or settings.model,
        prompt=prompt,
        system_prompt=system,
        temperature=temperature or settings.temperature,
        stop=stop,
        max_tokens=max_tokens,
    )
    return CacheStore.key(request)


@mcp.tool()
def cache_list() -> str:
    """
    List cached requests.

    Returns:
        JSON array with key, created_at, model and prompt_preview per entry.
    """
    listings = _get_services().cache.list()
    if not listings:
        return "No cache entries."
    return json.dumps([dataclasses.asdict(row) for row in listings], indent=2)


@mcp.tool()
def cache_replay(key: str) -> str:
    """
    Return the cached response for a key.

    Args:
        key: Cache key as returned by `cache_key` or `cache_list`.
    """
    try:
        return _get_services().cache.replay(key)
    except CacheMissError as exc:
        return str(exc)


@mcp.tool()
def memory_append(prompt: str, response: str = "") -> str:
    """
    Record a conversation turn.

    Args:
        prompt:   The user's literal prompt.
        response: The assistant's reply, if any.
    """
    item = _get_services().memory.append(prompt, response=response or None)
    return f"Remembered turn ({', '.join(item.summary) or 'no keywords'})."


@mcp.tool()
def memory_join(max_items: int = 8, with_prompt: str = "") -> str:
    """
    Return recent turns as a User/Assistant transcript.

    Args:
        max_items:   Number of recent turns to include (default 8).
        with_prompt: Optional prompt appended as a final User line.
    """
    text = _get_services().memory.join(max_items=max_items, with_prompt=with_prompt)
    return text or "No memory stored."


@mcp.tool()
def memory_context(max_items: int = 8, with_prompt: str = "") -> str:
    """
    Return recent turns as compact keyword bullets.

    Args:
        max_items:   Number of recent turns to include (default 8).
        with_prompt: Optional prompt listed under "Current prompt".
    """
    text = _get_services().memory.get(max_items=max_items, with_prompt=with_prompt)
    return text or "No memory stored."


@mcp.tool()
def memory_clear() -> str:
    """Forget every remembered turn."""
    _get_services().memory.clear()
    return "Cleared conversation memory."


@mcp.tool()
def compose_prompt(prompt: str, system: str = "", use_memory: bool = True) -> str:
    """
    Return the effective prompt terminai would send for this input.

    Args:
        prompt:     The user's prompt.
        system:     Optional system message, rendered as a "System:" preface.
        use_memory: Include the recent transcript (default true).
    """
    services = _get_services()
    composer = ContextComposer(services.memory, window=services.settings.memory_window)
    return composer.compose(system or None, prompt, memory_enabled=use_memory)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
