"""Token estimation for completion requests.

Groq doesn't expose a tokenizer, so history trimming works from an
estimate: ~4 characters per token for plain ASCII, ~3 for text with
accented Latin characters (French callers).
"""

from collections.abc import Iterable

# Role markers and separators added per chat message
MESSAGE_OVERHEAD_TOKENS = 4


def estimate_tokens(text: str) -> int:
    """Estimate token count for a piece of text.

    Args:
        text: Input text to estimate

    Returns:
        Estimated token count
    """
    if not text:
        return 0

    accented = sum(1 for char in text if ord(char) > 127)
    plain = len(text) - accented

    # Accented characters usually split into their own tokens
    estimated = (accented / 1.5) + (plain / 4)

    # Add 10% buffer for safety
    return int(estimated * 1.1) + 1


def estimate_message_tokens(contents: Iterable[str]) -> int:
    """Estimate tokens for a sequence of chat message contents."""
    return sum(estimate_tokens(content) + MESSAGE_OVERHEAD_TOKENS for content in contents)
