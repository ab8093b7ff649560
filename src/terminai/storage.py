"""
File helpers shared by the cache and memory stores.

Writes go to a temporary file in the destination directory and are moved
into place with :func:`os.replace`, so readers only ever see a complete old
file or a complete new one.  Reads validate against a pydantic model and
treat missing or unparseable files as absent.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .errors import CorruptStateError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def utc_now_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def atomic_write_text(path: Path, text: str) -> None:
    """Replace *path* with *text* in a single rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        # Leave no stray temp file behind if the write or rename failed.
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_model(path: Path, model: BaseModel) -> None:
    """Serialize *model* as indented JSON and write it atomically."""
    atomic_write_text(path, model.model_dump_json(indent=2) + "\n")


def read_model(path: Path, model_cls: type[ModelT], strict: bool = False) -> ModelT | None:
    """
    Load *path* as *model_cls*.

    Returns ``None`` when the file does not exist.  A file that cannot be
    read or validated is also reported as ``None`` (logged at INFO) unless
    *strict* is set, in which case :class:`CorruptStateError` is raised.
    """
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        return _unreadable(path, str(exc), strict)

    try:
        return model_cls.model_validate_json(data)
    except ValidationError as exc:
        reason = f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
        return _unreadable(path, reason, strict)


def _unreadable(path: Path, reason: str, strict: bool) -> None:
    if strict:
        raise CorruptStateError(path, reason)
    logger.info("Ignoring unreadable state file %s (%s)", path, reason)
    return None
