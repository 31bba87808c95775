"""Domain enumerations."""

from enum import StrEnum


class GenerationStatus(StrEnum):
    """Status of an episode generation attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not GenerationStatus.IN_PROGRESS


class StageName(StrEnum):
    """Stages recorded in a generation log.

    The values are the keys used in persisted log documents.
    """

    EPISODE_ANALYSIS = "episodeAnalysis"
    INITIAL_SEARCH = "initialSearch"
    CLUSTERING = "clustering"
    PRIORITIZATION = "prioritization"
    DEEP_RESEARCH = "deepResearch"
    CONTENT_GENERATION = "contentGeneration"
    AUDIO_GENERATION = "audioGeneration"


class FailurePolicy(StrEnum):
    """How the orchestrator reacts when a pipeline step fails."""

    FATAL = "fatal"  # Abort the run and fail the log
    RECOVERABLE = "recoverable"  # Record the degradation and continue with a fallback


class Recency(StrEnum):
    """Recency buckets reported by topic providers."""

    BREAKING = "breaking"
    DEVELOPING = "developing"
    TRENDING = "trending"
    RECENT = "recent"
    ONGOING = "ongoing"
    EMERGING = "emerging"


class PodcastType(StrEnum):
    """Kind of podcast, which decides how scripts are written."""

    NEWS = "news"
    NARRATIVE = "narrative"
