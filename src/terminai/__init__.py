"""
terminai: response cache and conversation memory for a terminal LLM client.

Provides a content-addressed cache of request/response pairs and a bounded,
keyword-annotated log of recent turns used to give new prompts context.
"""

from .cache import CacheStore
from .config import Settings
from .context import ContextComposer
from .errors import CacheMissError, CorruptStateError, InvalidRequestError, TerminaiError
from .memory import MemoryStore
from .request import canonicalize
from .session import ChatSession, TransportResponse
from .summarizer import KeywordSummarizer, Summarizer, analyze

__all__ = [
    "CacheStore",
    "Settings",
    "ContextComposer",
    "CacheMissError",
    "CorruptStateError",
    "InvalidRequestError",
    "TerminaiError",
    "MemoryStore",
    "canonicalize",
    "ChatSession",
    "TransportResponse",
    "KeywordSummarizer",
    "Summarizer",
    "analyze",
]
