"""
Command-line interface for terminai's cache and memory.

Sub-commands
------------
cache key      – Print the cache key of a request.
cache list     – List cached requests.
cache replay   – Print a cached response by key.
memory get     – Print the compact keyword context.
memory join    – Print the recent conversation transcript.
memory append  – Record a turn.
memory clear   – Forget every turn.
compose        – Print the effective prompt that would be sent.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from filelock import Timeout

from .cache import CacheStore
from .config import Settings
from .context import ContextComposer
from .errors import TerminaiError
from .memory import MemoryStore
from .request import canonicalize


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terminai",
        description="Response cache and conversation memory for the terminai assistant.",
    )
    parser.add_argument(
        "--cache-dir",
        default=None,
        metavar="DIR",
        help="Cache directory (default: $TERMINAI_CACHE_DIR or ~/.cache/terminai).",
    )
    parser.add_argument(
        "--state-dir",
        default=None,
        metavar="DIR",
        help="State directory holding memory.json (default: ~/.local/state/terminai).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    sub = parser.add_subparsers(dest="command", required=True)

    # cache
    p_cache = sub.add_parser("cache", help="Inspect the response cache.")
    cache_sub = p_cache.add_subparsers(dest="action", required=True)

    p_key = cache_sub.add_parser("key", help="Print the cache key of a request.")
    p_key.add_argument("prompt", nargs="*", help="Prompt text (reads stdin if omitted).")
    p_key.add_argument("--model", "-m", default=None, help="Model name.")
    p_key.add_argument("--temperature", "--temp", default=None, help="Sampling temperature.")
    p_key.add_argument("--max-tokens", default=None, help="Maximum response tokens.")
    p_key.add_argument("--stop", default=None, help="Comma-separated stop sequences.")
    p_key.add_argument("--system", default=None, help="System message.")
    p_key.add_argument(
        "--stream",
        action="store_true",
        help="Accepted for parity with requests; does not affect the key.",
    )

    p_list = cache_sub.add_parser("list", help="List cached requests.")
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    p_replay = cache_sub.add_parser("replay", help="Print a cached response.")
    p_replay.add_argument("key", help="Cache key (hash).")

    # memory
    p_memory = sub.add_parser("memory", help="Inspect or edit conversation memory.")
    memory_sub = p_memory.add_subparsers(dest="action", required=True)

    for name, help_text in (
        ("get", "Print the compact keyword context."),
        ("join", "Print the recent conversation transcript."),
    ):
        p_render = memory_sub.add_parser(name, help=help_text)
        p_render.add_argument(
            "--max",
            type=int,
            default=None,
            metavar="N",
            help="Number of recent turns (default: 8).",
        )
        p_render.add_argument("--with", dest="with_prompt", default=None, help="Prompt to append.")

    p_append = memory_sub.add_parser("append", help="Record a conversation turn.")
    p_append.add_argument("--prompt", required=True, help="The user's prompt.")
    p_append.add_argument("--response", default=None, help="The assistant's reply.")

    memory_sub.add_parser("clear", help="Forget every turn.")

    # compose
    p_compose = sub.add_parser("compose", help="Print the effective prompt.")
    p_compose.add_argument("prompt", nargs="*", help="Prompt text (reads stdin if omitted).")
    p_compose.add_argument("--system", default=None, help="System message.")
    p_compose.add_argument(
        "--no-memory",
        action="store_true",
        help="Do not include conversation memory.",
    )

    return parser


def _settings_for(args: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        cache_dir=Path(args.cache_dir) if args.cache_dir else None,
        state_dir=Path(args.state_dir) if args.state_dir else None,
    )


def _prompt_from(args: argparse.Namespace) -> str:
    if args.prompt:
        return " ".join(args.prompt)
    return sys.stdin.read().strip()


def _memory_for(settings: Settings) -> MemoryStore:
    return MemoryStore(
        settings.memory_file,
        max_keep=settings.max_keep,
        lock_timeout=settings.lock_timeout,
        strict=settings.strict_storage,
    )


def _run_cache(args: argparse.Namespace, settings: Settings) -> int:
    if args.action == "key":
        request = canonicalize(
            model=args.model or settings.model,
            prompt=_prompt_from(args),
            system_prompt=args.system,
            temperature=settings.temperature if args.temperature is None else args.temperature,
            stop=args.stop,
            max_tokens=args.max_tokens,
        )
        print(CacheStore.key(request))
        return 0

    cache = CacheStore(settings.cache_dir, strict=settings.strict_storage)

    if args.action == "list":
        listings = cache.list()
        if args.as_json:
            print(json.dumps([dataclasses.asdict(row) for row in listings], indent=2))
        elif not listings:
            print("No cache entries.")
        else:
            for row in listings:
                print(f"{row.key}  {row.created_at}  [{row.model}]")
                print(f"    {row.prompt_preview}")

    elif args.action == "replay":
        print(cache.replay(args.key))

    return 0


def _run_memory(args: argparse.Namespace, settings: Settings) -> int:
    memory = _memory_for(settings)

    if args.action in ("get", "join"):
        max_items = settings.memory_window if args.max is None else args.max
        render = memory.get if args.action == "get" else memory.join
        text = render(max_items=max_items, with_prompt=args.with_prompt)
        if text:
            print(text)

    elif args.action == "append":
        memory.append(args.prompt, response=args.response)

    elif args.action == "clear":
        memory.clear()
        print("Cleared conversation memory.")

    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        settings = _settings_for(args)
        if args.command == "cache":
            return _run_cache(args, settings)
        if args.command == "memory":
            return _run_memory(args, settings)

        # compose
        prompt = _prompt_from(args)
        if not prompt:
            print("Error: no prompt provided.", file=sys.stderr)
            return 1
        composer = ContextComposer(_memory_for(settings), window=settings.memory_window)
        print(composer.compose(args.system, prompt, memory_enabled=not args.no_memory))
        return 0

    except (TerminaiError, ValueError, OSError, Timeout) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
