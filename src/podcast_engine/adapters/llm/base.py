"""Base interface for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from podcast_engine.logging import get_logger

logger = get_logger(__name__)

JSON_ONLY_INSTRUCTION = "Respond with a single valid JSON value and nothing else."


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    raw_response: dict[str, Any] | None = None
    finish_reason: str | None = None
    truncated: bool = False


@dataclass
class LLMMessage:
    """A message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str


def split_system_prompt(messages: list[LLMMessage]) -> tuple[str, list[LLMMessage]]:
    """Join every system message into one prompt; return it with the remaining turns.

    Services often send a persona as a system message plus the task as a user
    message; providers with a separate system field need them apart.
    """
    system = "\n\n".join(m.content for m in messages if m.role == "system" and m.content)
    return system, [m for m in messages if m.role != "system"]


def with_json_instruction(system_prompt: str, json_mode: bool) -> str:
    if not json_mode or JSON_ONLY_INSTRUCTION in system_prompt:
        return system_prompt
    return f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}" if system_prompt else JSON_ONLY_INSTRUCTION


def usage_dict(prompt_tokens: int | None, completion_tokens: int | None) -> dict[str, int]:
    prompt = prompt_tokens or 0
    completion = completion_tokens or 0
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": prompt + completion,
    }


def warn_if_truncated(provider: str, response: LLMResponse, max_tokens: int) -> LLMResponse:
    """Log truncated completions; long scripts hitting the token cap lose their ending."""
    if response.truncated:
        logger.warning(
            "llm_response_truncated",
            provider=provider,
            max_tokens=max_tokens,
            content_length=len(response.content),
        )
    return response


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations:
    - GeminiProvider: Google Gemini via google-genai (default)
    - OpenAIProvider: OpenAI chat completions
    - AnthropicProvider: Anthropic messages API
    - StubLLMProvider: Returns canned data for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion from messages.

        Args:
            messages: Conversation; system messages carry the persona
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens in response
            json_mode: Ask for a bare JSON value. Callers still parse leniently
                (see utils.json_extract) since not every model honours it.

        Returns:
            LLMResponse with generated content

        Raises:
            ValueError: If the provider has no credentials
            httpx.HTTPStatusError: On API errors (HTTP providers)
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available."""
        return True
