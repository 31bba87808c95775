"""LLM provider adapters."""

from podcast_engine.adapters.llm.anthropic import AnthropicProvider
from podcast_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from podcast_engine.adapters.llm.gemini import GeminiProvider
from podcast_engine.adapters.llm.openai import OpenAIProvider
from podcast_engine.adapters.llm.stub import StubLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "StubLLMProvider",
]
