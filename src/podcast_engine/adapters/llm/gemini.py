"""Google Gemini LLM provider."""

import asyncio
from typing import Any

from google import genai
from google.genai import types

from podcast_engine.adapters.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    split_system_prompt,
    usage_dict,
    warn_if_truncated,
)
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)

_ROLES = {"user": "user", "assistant": "model"}


def build_contents(turns: list[LLMMessage]) -> list[types.Content]:
    """Map conversation turns to Gemini contents; unknown roles are sent as user."""
    return [
        types.Content(role=_ROLES.get(m.role, "user"), parts=[types.Part(text=m.content)])
        for m in turns
    ]


def build_config(
    system_prompt: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
) -> types.GenerateContentConfig:
    options: dict[str, Any] = {
        "temperature": temperature,
        "max_output_tokens": max_tokens,
    }
    if system_prompt:
        options["system_instruction"] = system_prompt
    if json_mode:
        options["response_mime_type"] = "application/json"
    return types.GenerateContentConfig(**options)


class GeminiProvider(LLMProvider):
    """Google Gemini via the google-genai SDK.

    The pipeline uses two tiers: a fast model for extraction and scoring calls
    and a powerful model for planning and writing (see services.providers).
    The SDK client is synchronous, so calls run in the default executor.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize Gemini provider.

        Args:
            api_key: Google API key (uses GOOGLE_API_KEY from settings if not provided)
            model: Model name (defaults to the configured fast model)
        """
        self.api_key = api_key or settings.google_api_key
        self.model: str = model or settings.fast_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini")

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ValueError("Google API key not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return f"gemini:{self.model}"

    async def _generate(self, contents: Any, config: types.GenerateContentConfig | None = None):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.client.models.generate_content(
                model=self.model, contents=contents, config=config
            ),
        )

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("Google API key not configured")

        system_prompt, turns = split_system_prompt(messages)
        contents = build_contents(turns)
        logger.debug(
            "gemini_request",
            model=self.model,
            message_count=len(contents),
            json_mode=json_mode,
        )

        response = await self._generate(
            contents, build_config(system_prompt, temperature, max_tokens, json_mode)
        )

        metadata = getattr(response, "usage_metadata", None)
        usage = usage_dict(
            getattr(metadata, "prompt_token_count", None),
            getattr(metadata, "candidates_token_count", None),
        )
        finish_reason = None
        if response.candidates and response.candidates[0].finish_reason is not None:
            finish_reason = str(response.candidates[0].finish_reason)

        logger.info(
            "gemini_response",
            model=self.model,
            tokens_used=usage["total_tokens"],
            finish_reason=finish_reason,
        )
        result = LLMResponse(
            content=response.text or "",
            model=self.model,
            usage=usage,
            finish_reason=finish_reason,
            truncated=bool(finish_reason and "MAX_TOKENS" in finish_reason),
        )
        return warn_if_truncated(self.name, result, max_tokens)

    async def health_check(self) -> bool:
        if not self.api_key:
            return False

        try:
            response = await self._generate("Reply with the word ok.")
            return bool(response.text)
        except Exception as e:
            logger.error("gemini_health_check_failed", error=str(e))
            return False
