"""Build the effective prompt from memory and an optional system preface."""

from __future__ import annotations

import logging

from .errors import CorruptStateError
from .memory import DEFAULT_WINDOW, MemoryStore

logger = logging.getLogger(__name__)


class ContextComposer:
    """
    Prefix a new prompt with the recent conversation transcript.

    Only the composed text is affected; callers must still append the
    user's literal prompt to memory, never the composed one, or context
    would be duplicated into every later turn.
    """

    def __init__(self, memory: MemoryStore | None, window: int = DEFAULT_WINDOW) -> None:
        self.memory = memory
        self.window = window

    def compose(
        self,
        system_prompt: str | None,
        prompt: str,
        memory_enabled: bool = True,
    ) -> str:
        """
        Return the prompt to send to the provider.

        ``"System: <system_prompt>\\n"`` (when given) followed by the memory
        transcript ending in ``User: <prompt>``.  Falls back to *prompt*
        when memory is disabled, unavailable or empty.
        """
        if not memory_enabled or self.memory is None:
            return prompt
        try:
            transcript = self.memory.join(max_items=self.window, with_prompt=prompt)
        except CorruptStateError as exc:
            logger.warning("Memory log is corrupt, sending prompt without context: %s", exc)
            return prompt
        except OSError as exc:
            logger.info("Memory unavailable, sending prompt without context: %s", exc)
            return prompt
        if not transcript:
            return prompt
        preface = f"System: {system_prompt}\n" if system_prompt else ""
        return preface + transcript
