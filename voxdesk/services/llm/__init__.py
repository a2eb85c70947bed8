"""Completion engine services (Groq)."""

from voxdesk.services.llm.exceptions import (
    CompletionAuthenticationError,
    CompletionConnectionError,
    CompletionEngineError,
    CompletionRateLimitError,
    CompletionTimeoutError,
    MalformedReplyError,
)
from voxdesk.services.llm.groq import GroqCompletionEngine
from voxdesk.services.llm.protocol import (
    CompletionEngine,
    CompletionReply,
    FunctionCallReply,
    Message,
    Role,
    TextReply,
)
from voxdesk.services.llm.token_counter import estimate_message_tokens, estimate_tokens

__all__ = [
    # Protocol and types
    "CompletionEngine",
    "CompletionReply",
    "FunctionCallReply",
    "Message",
    "Role",
    "TextReply",
    # Implementation
    "GroqCompletionEngine",
    # Utilities
    "estimate_tokens",
    "estimate_message_tokens",
    # Exceptions
    "CompletionEngineError",
    "CompletionTimeoutError",
    "CompletionRateLimitError",
    "CompletionConnectionError",
    "CompletionAuthenticationError",
    "MalformedReplyError",
]
