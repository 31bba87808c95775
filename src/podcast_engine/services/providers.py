"""Provider selection from configuration."""

from functools import lru_cache
from typing import Literal

from podcast_engine.adapters.docstore import (
    DocumentStore,
    InMemoryDocumentStore,
    PostgresDocumentStore,
)
from podcast_engine.adapters.embeddings import (
    EmbeddingProvider,
    GeminiEmbeddingProvider,
    OpenAIEmbeddingProvider,
    StubEmbeddingProvider,
)
from podcast_engine.adapters.llm import (
    AnthropicProvider,
    GeminiProvider,
    LLMProvider,
    OpenAIProvider,
    StubLLMProvider,
)
from podcast_engine.adapters.search import (
    GeminiSearchProvider,
    PerplexitySearchProvider,
    SearchProvider,
    StubSearchProvider,
)
from podcast_engine.adapters.storage import BlobStorage, InMemoryBlobStorage, LocalBlobStorage
from podcast_engine.adapters.voiceover import (
    ElevenLabsProvider,
    GoogleTTSProvider,
    StubVoiceoverProvider,
    VoiceoverProvider,
)
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


def get_llm_provider(tier: Literal["fast", "powerful"] = "fast") -> LLMProvider:
    """Get the configured LLM provider.

    Args:
        tier: "fast" for cheap extraction calls, "powerful" for planning and writing.
            Only Gemini distinguishes tiers; other providers use their configured model.
    """
    provider_name = settings.llm_provider.lower()

    if provider_name == "stub":
        return StubLLMProvider()
    if provider_name == "gemini" and settings.google_api_key:
        model = settings.powerful_model if tier == "powerful" else settings.fast_model
        return GeminiProvider(model=model)
    if provider_name == "anthropic" and settings.anthropic_api_key:
        return AnthropicProvider()
    if provider_name == "openai" and settings.openai_api_key:
        return OpenAIProvider()

    logger.warning("llm_provider_unavailable_using_stub", requested=provider_name)
    return StubLLMProvider()


def get_search_providers() -> list[SearchProvider]:
    """Get the configured search providers, in ranking-priority order."""
    providers: list[SearchProvider] = []
    for provider_name in settings.search_providers:
        name = provider_name.lower()
        if name == "gemini":
            providers.append(GeminiSearchProvider())
        elif name == "perplexity":
            providers.append(PerplexitySearchProvider())
        elif name == "stub":
            providers.append(StubSearchProvider())
        else:
            logger.warning("unknown_search_provider", provider=provider_name)
    return providers or [StubSearchProvider()]


def get_embedding_provider() -> EmbeddingProvider:
    """Get the configured embedding provider."""
    provider = settings.embedding_provider.lower()

    if provider == "gemini":
        return GeminiEmbeddingProvider()
    elif provider == "openai":
        return OpenAIEmbeddingProvider()
    else:
        return StubEmbeddingProvider()


def get_voiceover_provider() -> VoiceoverProvider:
    """Get the configured voiceover provider."""
    provider = settings.voiceover_provider.lower()

    if provider == "google":
        return GoogleTTSProvider()
    elif provider == "elevenlabs":
        return ElevenLabsProvider()
    else:
        return StubVoiceoverProvider()


@lru_cache
def get_blob_storage() -> BlobStorage:
    """Get the configured blob storage (one instance per process)."""
    if settings.storage_provider.lower() == "memory":
        return InMemoryBlobStorage()
    return LocalBlobStorage()


@lru_cache
def get_document_store() -> DocumentStore:
    """Get the configured document store (one instance per process)."""
    if settings.docstore_provider.lower() == "memory":
        return InMemoryDocumentStore()
    return PostgresDocumentStore()
