"""Domain models and types."""

from podcast_engine.domain.enums import (
    FailurePolicy,
    GenerationStatus,
    PodcastType,
    Recency,
    StageName,
)
from podcast_engine.domain.models import (
    ClusterResult,
    Decision,
    DeepDiveResult,
    DifferentiationResult,
    Episode,
    EpisodeAnalysis,
    EpisodeDraft,
    GenerationLog,
    Podcast,
    PodcastSource,
    ResearchTopic,
    TopicCandidate,
    TopicResearch,
)

__all__ = [
    # Enums
    "FailurePolicy",
    "GenerationStatus",
    "PodcastType",
    "Recency",
    "StageName",
    # Models
    "ClusterResult",
    "Decision",
    "DeepDiveResult",
    "DifferentiationResult",
    "Episode",
    "EpisodeAnalysis",
    "EpisodeDraft",
    "GenerationLog",
    "Podcast",
    "PodcastSource",
    "ResearchTopic",
    "TopicCandidate",
    "TopicResearch",
]
