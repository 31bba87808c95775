"""OpenAI chat completions provider."""

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


def build_payload(
    model: str,
    messages: list[LLMMessage],
    temperature: float,
    max_tokens: int,
    json_mode: bool,
) -> dict[str, Any]:
    """Chat completions request body.

    System messages are merged into one leading message. JSON mode requires the
    word "JSON" somewhere in the prompt, so the instruction is always added.
    """
    system, turns = split_system_prompt(messages)
    system = with_json_instruction(system, json_mode)

    chat = [{"role": "system", "content": system}] if system else []
    chat.extend({"role": m.role, "content": m.content} for m in turns)

    payload: dict[str, Any] = {
        "model": model,
        "messages": chat,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    return payload


def parse_response(data: dict[str, Any], model: str) -> LLMResponse:
    choice = (data.get("choices") or [{}])[0]
    usage = data.get("usage") or {}
    finish_reason = choice.get("finish_reason")
    return LLMResponse(
        content=(choice.get("message") or {}).get("content") or "",
        model=data.get("model", model),
        usage=usage_dict(usage.get("prompt_tokens"), usage.get("completion_tokens")),
        raw_response=data,
        finish_reason=finish_reason,
        truncated=finish_reason == "length",
    )


class OpenAIProvider(LLMProvider):
    """GPT models via the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.openai.com/v1",
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = base_url

        if not self.api_key:
            logger.warning("OpenAI API key not configured")

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("OpenAI API key not configured")

        payload = build_payload(self.model, messages, temperature, max_tokens, json_mode)
        logger.debug(
            "openai_request",
            model=self.model,
            message_count=len(payload["messages"]),
            json_mode=json_mode,
        )

        async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
            )
            response.raise_for_status()

        result = parse_response(response.json(), self.model)
        logger.info(
            "openai_response",
            model=result.model,
            tokens_used=result.usage["total_tokens"],
            finish_reason=result.finish_reason,
        )
        return warn_if_truncated(self.name, result, max_tokens)

    async def health_check(self) -> bool:
        if not self.api_key:
            return False

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self.base_url}/models/{self.model}",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("openai_health_check_failed", error=str(e))
            return False
