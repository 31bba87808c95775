"""Domain models - pure Python classes independent of storage."""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from podcast_engine.domain.enums import GenerationStatus, PodcastType, StageName


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    """Opaque unique identifier for documents."""
    return uuid4().hex


def clamp_quality(value: float) -> int:
    """Source quality scores are integers in 1-10; fractions are truncated."""
    return int(max(1, min(10, value)))


# =============================================================================
# Generation log
# =============================================================================


@dataclass(frozen=True)
class Decision:
    """A human-readable record of a choice made during generation."""

    stage: str
    decision: str
    reasoning: str
    alternatives: tuple[str, ...] = ()
    timestamp: str = field(default_factory=utc_now_iso)

    def to_document(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "decision": self.decision,
            "reasoning": self.reasoning,
            "alternatives": list(self.alternatives),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Decision":
        return cls(
            stage=data["stage"],
            decision=data.get("decision", ""),
            reasoning=data.get("reasoning", ""),
            alternatives=tuple(data.get("alternatives") or ()),
            timestamp=data.get("timestamp") or utc_now_iso(),
        )


def _empty_breakdown() -> dict[str, int]:
    return {stage.value: 0 for stage in StageName}


def _empty_stages() -> dict[str, dict[str, Any] | None]:
    return {stage.value: None for stage in StageName}


@dataclass(frozen=True)
class GenerationLog:
    """Audit trail of one episode generation attempt.

    Instances are never mutated; the reducers in services.generation_log
    return new values.
    """

    id: str
    podcast_id: str
    episode_id: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)
    status: GenerationStatus = GenerationStatus.IN_PROGRESS
    error: str | None = None
    total_ms: int = 0
    stage_breakdown: dict[str, int] = field(default_factory=_empty_breakdown)
    stages: dict[str, dict[str, Any] | None] = field(default_factory=_empty_stages)
    decisions: tuple[Decision, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible document."""
        return {
            "id": self.id,
            "podcast_id": self.podcast_id,
            "episode_id": self.episode_id,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "error": self.error,
            "duration": {
                "total_ms": self.total_ms,
                "stage_breakdown": dict(self.stage_breakdown),
            },
            "stages": dict(self.stages),
            "decisions": [d.to_document() for d in self.decisions],
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "GenerationLog":
        """Rebuild a log from a stored document, restoring stripped empty fields."""
        duration = data.get("duration") or {}
        breakdown = _empty_breakdown()
        breakdown.update(duration.get("stage_breakdown") or {})
        stages = _empty_stages()
        stages.update(data.get("stages") or {})
        return cls(
            id=data["id"],
            podcast_id=data["podcast_id"],
            episode_id=data.get("episode_id"),
            timestamp=data.get("timestamp") or utc_now_iso(),
            status=GenerationStatus(data.get("status", GenerationStatus.IN_PROGRESS)),
            error=data.get("error"),
            total_ms=int(duration.get("total_ms", sum(breakdown.values()))),
            stage_breakdown=breakdown,
            stages=stages,
            decisions=tuple(Decision.from_document(d) for d in data.get("decisions") or []),
        )


# =============================================================================
# Podcasts and episodes
# =============================================================================


@dataclass
class PodcastSource:
    """A curated website used to bias searches toward vetted domains."""

    url: str
    name: str
    category: str = "Other"
    topic_relevance: list[str] = field(default_factory=list)
    quality_score: int = 5
    frequency: str | None = None
    perspective: str | None = None

    def to_document(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "PodcastSource":
        return cls(
            url=data["url"],
            name=data.get("name", data["url"]),
            category=data.get("category") or "Other",
            topic_relevance=list(data.get("topic_relevance") or []),
            quality_score=clamp_quality(float(data.get("quality_score", 5))),
            frequency=data.get("frequency"),
            perspective=data.get("perspective"),
        )


@dataclass
class Podcast:
    """A podcast whose episodes the engine generates."""

    id: str
    title: str
    description: str = ""
    prompt: str | None = None
    owner_id: str | None = None
    podcast_type: PodcastType = PodcastType.NEWS
    sources: list[PodcastSource] = field(default_factory=list)
    auto_generate: bool = False
    created_at: str = field(default_factory=utc_now_iso)

    @property
    def theme(self) -> str:
        """The text that best describes what the podcast is about."""
        return self.prompt or self.description or self.title

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "prompt": self.prompt,
            "owner_id": self.owner_id,
            "podcast_type": self.podcast_type.value,
            "sources": [s.to_document() for s in self.sources],
            "auto_generate": self.auto_generate,
            "created_at": self.created_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Podcast":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description") or "",
            prompt=data.get("prompt"),
            owner_id=data.get("owner_id"),
            podcast_type=PodcastType(data.get("podcast_type") or PodcastType.NEWS),
            sources=[PodcastSource.from_document(s) for s in data.get("sources") or []],
            auto_generate=bool(data.get("auto_generate", False)),
            created_at=data.get("created_at") or utc_now_iso(),
        )


@dataclass
class Episode:
    """A persisted episode produced by the generation pipeline."""

    id: str
    podcast_id: str
    title: str
    description: str
    content: str
    sources: list[str] = field(default_factory=list)
    bullet_points: list[str] = field(default_factory=list)
    audio_url: str | None = None
    created_at: str = field(default_factory=utc_now_iso)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    def to_document(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Episode":
        return cls(
            id=data["id"],
            podcast_id=data["podcast_id"],
            title=data.get("title", ""),
            description=data.get("description") or "",
            content=data.get("content") or "",
            sources=list(data.get("sources") or []),
            bullet_points=list(data.get("bullet_points") or []),
            audio_url=data.get("audio_url"),
            created_at=data.get("created_at") or utc_now_iso(),
        )


# =============================================================================
# Pipeline values
# =============================================================================


@dataclass
class EpisodeAnalysis:
    """Digest of a podcast's recent episodes."""

    recent_topics: list[dict[str, Any]] = field(default_factory=list)  # [{topic, frequency}]
    covered_sources: list[str] = field(default_factory=list)
    recurrent_themes: list[str] = field(default_factory=list)
    episode_count: int = 0

    @property
    def recent_topic_titles(self) -> list[str]:
        return [str(t.get("topic", "")) for t in self.recent_topics if t.get("topic")]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TopicCandidate:
    """A provider-sourced suggestion for what an episode could cover."""

    topic: str
    description: str = ""
    relevance: float | None = None
    recency: str | None = None
    sources: list[str] = field(default_factory=list)
    key_questions: list[str] = field(default_factory=list)
    query: str = ""
    provider: str = "unknown"
    reasoning: str = ""
    score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ClusterResult:
    """Assignment of topic ids to similarity clusters."""

    clusters: dict[int, list[str]] = field(default_factory=dict)
    noise: list[str] = field(default_factory=list)
    cluster_assignments: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when clustering was unavailable (not "zero clusters found")."""
        return not self.clusters

    @classmethod
    def empty(cls) -> "ClusterResult":
        return cls(clusters={}, noise=[], cluster_assignments=[])


@dataclass
class ResearchTopic:
    """A topic selected for deep research, with its priority scores."""

    topic: str
    importance: float = 5.0
    newsworthiness: float = 5.0
    depth_potential: float = 5.0
    rationale: str = ""
    key_questions: list[str] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ResearchLayer:
    """One pass of research queries at a given depth."""

    level: int
    queries: list[str]
    content: str
    sources: list[str]
    insights: list[str]


@dataclass
class TopicResearch:
    """Accumulated research for one topic."""

    topic: str
    layers: list[ResearchLayer] = field(default_factory=list)
    synthesized_content: str = ""
    failed: bool = False
    error: str | None = None

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    @property
    def queries(self) -> list[str]:
        return [q for layer in self.layers for q in layer.queries]

    @property
    def sources(self) -> list[str]:
        return list(dict.fromkeys(s for layer in self.layers for s in layer.sources))

    @property
    def insights(self) -> list[str]:
        return [i for layer in self.layers for i in layer.insights]

    def to_log(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "research_queries": self.queries,
            "sources_consulted": self.sources,
            "key_insights": self.insights,
            "layer_count": self.layer_count,
            "failed": self.failed,
            "error": self.error,
        }


@dataclass
class DeepDiveResult:
    """Output of the deep-dive research stage."""

    researched_topics: list[TopicResearch]
    topic_distribution: list[dict[str, Any]]  # [{topic, allocation, target_words}]
    all_sources: list[str]
    narrative: str


@dataclass
class EpisodeDraft:
    """Title, description and script produced by the content writer."""

    title: str
    description: str
    content: str

    @property
    def word_count(self) -> int:
        return len(self.content.split())


@dataclass
class DifferentiationResult:
    """Outcome of comparing a draft against prior episodes."""

    is_passing: bool
    similarity_score: float
    unique_elements: list[str] = field(default_factory=list)
    redundant_elements: list[str] = field(default_factory=list)
    assessment: str = ""
    suggestions: list[str] = field(default_factory=list)
    improved_content: str | None = None

    def to_log(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("improved_content")
        data["rewritten"] = self.improved_content is not None
        return data
