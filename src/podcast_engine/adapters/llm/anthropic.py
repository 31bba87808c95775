"""Anthropic messages API provider."""

from typing import Any

import httpx

from podcast_engine.adapters.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    split_system_prompt,
    usage_dict,
    warn_if_truncated,
    with_json_instruction,
)
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)

API_VERSION = "2023-06-01"


def build_payload(
    model: str,
    messages: list[LLMMessage],
    temperature: float,
    max_tokens: int,
    json_mode: bool,
) -> dict[str, Any]:
    """Messages API request body.

    In JSON mode the assistant turn is prefilled with ``{`` so the model starts
    inside an object; ``parse_response`` puts the brace back.
    """
    system, turns = split_system_prompt(messages)
    conversation = [{"role": m.role, "content": m.content} for m in turns]
    if json_mode:
        conversation.append({"role": "assistant", "content": "{"})

    payload: dict[str, Any] = {
        "model": model,
        "messages": conversation,
        "max_tokens": max_tokens,
        "temperature": min(temperature, 1.0),
    }
    system = with_json_instruction(system, json_mode)
    if system:
        payload["system"] = system
    return payload


def parse_response(data: dict[str, Any], model: str, json_mode: bool) -> LLMResponse:
    text = "".join(
        block.get("text", "")
        for block in data.get("content") or []
        if block.get("type") == "text"
    )
    if json_mode and not text.lstrip().startswith("{"):
        text = "{" + text

    usage = data.get("usage") or {}
    stop_reason = data.get("stop_reason")
    return LLMResponse(
        content=text,
        model=data.get("model", model),
        usage=usage_dict(usage.get("input_tokens"), usage.get("output_tokens")),
        raw_response=data,
        finish_reason=stop_reason,
        truncated=stop_reason == "max_tokens",
    )


class AnthropicProvider(LLMProvider):
    """Claude models via the Anthropic messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.anthropic.com/v1",
    ) -> None:
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.base_url = base_url

        if not self.api_key:
            logger.warning("Anthropic API key not configured")

    @property
    def name(self) -> str:
        return f"anthropic:{self.model}"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("Anthropic API key not configured")

        payload = build_payload(self.model, messages, temperature, max_tokens, json_mode)
        logger.debug(
            "anthropic_request",
            model=self.model,
            message_count=len(payload["messages"]),
            json_mode=json_mode,
        )

        async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
            response = await client.post(
                f"{self.base_url}/messages", headers=self._headers(), json=payload
            )
            response.raise_for_status()

        result = parse_response(response.json(), self.model, json_mode)
        logger.info(
            "anthropic_response",
            model=result.model,
            tokens_used=result.usage["total_tokens"],
            stop_reason=result.finish_reason,
        )
        return warn_if_truncated(self.name, result, max_tokens)

    async def health_check(self) -> bool:
        """Send a one-token request; there is no dedicated health endpoint."""
        if not self.api_key:
            return False

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(
                    f"{self.base_url}/messages",
                    headers=self._headers(),
                    json={
                        "model": self.model,
                        "messages": [{"role": "user", "content": "ping"}],
                        "max_tokens": 1,
                    },
                )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("anthropic_health_check_failed", error=str(e))
            return False
