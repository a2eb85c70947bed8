"""Groq completion engine with function calling."""

from __future__ import annotations

import json
from typing import Any

import groq
from groq import AsyncGroq

from voxdesk.config import Settings, get_settings
from voxdesk.logging_config import get_logger
from voxdesk.services.llm.exceptions import (
    CompletionAuthenticationError,
    CompletionConnectionError,
    CompletionEngineError,
    CompletionRateLimitError,
    MalformedReplyError,
)
from voxdesk.services.llm.protocol import (
    CompletionReply,
    FunctionCallReply,
    Message,
    TextReply,
)

logger: Any = get_logger(__name__)

# Engine tiers exposed to caller configuration
ENGINE_MODELS: dict[str, str] = {
    "standard": "llama-3.1-8b-instant",
    "advanced": "llama-3.3-70b-versatile",
}


def resolve_model(engine_id: str) -> str:
    """Map an engine tier to a Groq model; unknown ids are used as model names."""
    return ENGINE_MODELS.get(engine_id, engine_id)


class GroqCompletionEngine:
    """Groq completion engine using the OpenAI-compatible tools API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._client: AsyncGroq | None = None

    @property
    def client(self) -> AsyncGroq:
        """Lazy initialization of AsyncGroq client."""
        if self._client is None:
            self._client = AsyncGroq(
                api_key=self._settings.groq_api_key.get_secret_value(),
                timeout=self._settings.completion_timeout,
                max_retries=1,
            )
        return self._client

    async def complete(
        self,
        messages: list[Message],
        *,
        engine_id: str,
        temperature: float,
        tools: list[dict[str, Any]],
        max_tokens: int = 500,
    ) -> CompletionReply:
        """Run one chat completion offering the given tools.

        Args:
            messages: System framing followed by the conversation
            engine_id: Engine tier or raw model name
            temperature: Sampling temperature
            tools: Function definitions the model may call
            max_tokens: Maximum response tokens

        Returns:
            TextReply or FunctionCallReply

        Raises:
            CompletionRateLimitError: When rate limit exceeded
            CompletionConnectionError: When API unreachable
            CompletionAuthenticationError: When API key invalid
            CompletionEngineError: For other API errors or malformed replies
        """
        model = resolve_model(engine_id)
        request: dict[str, Any] = {
            "messages": [m.to_api() for m in messages],
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**request)

        except groq.RateLimitError as e:
            logger.warning(f"Groq rate limit hit: {e}")
            raise CompletionRateLimitError(
                "Rate limit exceeded",
                retry_after=self._extract_retry_after(e),
            ) from e

        except groq.APIConnectionError as e:
            logger.error(f"Groq connection error: {e.__cause__}")
            raise CompletionConnectionError("Failed to connect to Groq API") from e

        except groq.AuthenticationError as e:
            logger.error("Groq authentication failed")
            raise CompletionAuthenticationError("Invalid Groq API key") from e

        except groq.APIStatusError as e:
            logger.error(f"Groq API error: {e.status_code} - {e.message}")
            raise CompletionEngineError(f"Groq API error: {e.status_code}") from e

        if not response.choices:
            raise MalformedReplyError("Groq returned no choices")

        if response.usage:
            logger.debug(
                f"Groq usage model={model} prompt={response.usage.prompt_tokens} "
                f"completion={response.usage.completion_tokens}"
            )

        return self._parse_reply(response.choices[0].message)

    def _parse_reply(self, message: Any) -> CompletionReply:
        """Turn a chat completion message into a tagged reply."""
        text = (message.content or "").strip()
        tool_calls = getattr(message, "tool_calls", None) or []

        if not tool_calls:
            return TextReply(text=text)

        if len(tool_calls) > 1:
            logger.warning(f"Groq returned {len(tool_calls)} tool calls, using the first")

        function = tool_calls[0].function
        raw_arguments = function.arguments or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid tool call arguments for {function.name}: {e}")
            raise MalformedReplyError(f"Invalid JSON in tool arguments: {e}") from e

        if not isinstance(arguments, dict):
            raise MalformedReplyError("Tool arguments must be a JSON object")

        return FunctionCallReply(function_name=function.name, arguments=arguments, text=text)

    def _extract_retry_after(self, error: groq.RateLimitError) -> float:
        """Extract retry-after from rate limit error."""
        if hasattr(error, "response") and error.response:
            retry_after = error.response.headers.get("retry-after")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass
        return 60.0  # Default to 60 seconds

    async def health_check(self) -> bool:
        """Check if Groq API is reachable."""
        try:
            response = await self.client.chat.completions.create(
                messages=[{"role": "user", "content": "hi"}],
                model=resolve_model("standard"),
                max_tokens=1,
            )
            return bool(response.choices)
        except Exception as e:
            logger.warning(f"Groq health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
