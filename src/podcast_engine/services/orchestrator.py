"""Episode generation orchestrator.

Runs the generation pipeline as a linear sequence of steps. Every step is timed
into one of the log stages, records its data and a decision, and saves the log.
Fatal steps stop the run and fail the log; recoverable steps record the
degradation and continue with a fallback value.
"""

import dataclasses
import time
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from podcast_engine.adapters.docstore import DocumentStore
from podcast_engine.adapters.embeddings import EmbeddingProvider
from podcast_engine.adapters.llm import LLMProvider
from podcast_engine.adapters.search import SearchProvider
from podcast_engine.adapters.storage import BlobStorage
from podcast_engine.adapters.voiceover import VoiceoverProvider
from podcast_engine.domain.enums import FailurePolicy, StageName
from podcast_engine.domain.errors import StageFailedError
from podcast_engine.domain.models import (
    ClusterResult,
    Episode,
    GenerationLog,
    Podcast,
    TopicCandidate,
)
from podcast_engine.logging import bind_generation_context, clear_generation_context, get_logger
from podcast_engine.services.audio import AudioService
from podcast_engine.services.catalog import PodcastCatalog
from podcast_engine.services.clustering import ClusterSummarizer, ClusteringEngine
from podcast_engine.services.content import ContentWriter
from podcast_engine.services.deep_research import DeepResearchService
from podcast_engine.services.differentiation import DifferentiationValidator
from podcast_engine.services.episode_analyzer import EpisodeAnalyzer
from podcast_engine.services.generation_log import (
    GenerationLogRecorder,
    add_decision,
    complete_log,
    create_log,
    fail_log,
    set_episode_id,
    update_stage,
)
from podcast_engine.services.providers import (
    get_blob_storage,
    get_document_store,
    get_embedding_provider,
    get_llm_provider,
    get_search_providers,
    get_voiceover_provider,
)
from podcast_engine.services.source_manager import GuidedSearchResult, SourceManager
from podcast_engine.services.target_length import resolve_target_word_count
from podcast_engine.services.topic_search import TopicSearchService

logger = get_logger(__name__)

# Number of top candidates used to steer the source-guided search
GUIDED_SEARCH_TOPICS = 5


@dataclass
class GenerationOutcome:
    """Result of one orchestrator run."""

    success: bool
    log_id: str
    episode: Episode | None = None
    error: str | None = None
    log: GenerationLog | None = None


@dataclass
class StepStatus:
    """Set by a recoverable step that failed."""

    failed: bool = False
    error: str | None = None


class _Run:
    """Mutable bookkeeping for a single generation run."""

    def __init__(self, log: GenerationLog, recorder: GenerationLogRecorder) -> None:
        self.log = log
        self.recorder = recorder
        self.elapsed: dict[str, int] = defaultdict(int)

    async def record(
        self,
        stage: StageName,
        data: dict[str, Any] | None,
        decision: str | None = None,
        reasoning: str = "",
        alternatives: list[str] | None = None,
    ) -> None:
        """Write stage data, the stage's cumulative time and an optional decision."""
        self.log = update_stage(self.log, stage, data, self.elapsed[stage.value])
        if decision:
            self.log = add_decision(self.log, stage, decision, reasoning, alternatives or [])
        await self.recorder.save(self.log)

    @asynccontextmanager
    async def step(
        self,
        stage: StageName,
        name: str,
        policy: FailurePolicy = FailurePolicy.FATAL,
    ) -> AsyncIterator[StepStatus]:
        """Time a pipeline step and apply its failure policy.

        Fatal failures record the error on the stage and raise StageFailedError.
        Recoverable failures are suppressed and reported through the yielded status.
        """
        status = StepStatus()
        start = time.monotonic()
        try:
            yield status
        except StageFailedError:
            raise
        except Exception as e:
            self.elapsed[stage.value] += int((time.monotonic() - start) * 1000)
            message = f"{name} failed: {e}"
            if policy is FailurePolicy.FATAL:
                logger.error("stage_failed", stage=stage.value, step=name, error=str(e))
                await self.record(stage, {"error": message})
                raise StageFailedError(stage.value, message) from e
            logger.warning("step_degraded", stage=stage.value, step=name, error=str(e))
            status.failed = True
            status.error = str(e)
        else:
            self.elapsed[stage.value] += int((time.monotonic() - start) * 1000)
            logger.info(
                "step_completed",
                stage=stage.value,
                step=name,
                elapsed_ms=self.elapsed[stage.value],
            )


class EpisodeOrchestrator:
    """Generates one episode end to end.

    Collaborators default to the configured providers, so callers normally pass
    only a document store (or nothing).
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        fast_llm: LLMProvider | None = None,
        powerful_llm: LLMProvider | None = None,
        search_providers: list[SearchProvider] | None = None,
        embeddings: EmbeddingProvider | None = None,
        voiceover: VoiceoverProvider | None = None,
        storage: BlobStorage | None = None,
    ) -> None:
        self.store = store or get_document_store()
        fast_llm = fast_llm or get_llm_provider("fast")
        powerful_llm = powerful_llm or get_llm_provider("powerful")
        search_providers = search_providers or get_search_providers()
        primary_search = search_providers[0]

        self.catalog = PodcastCatalog(self.store)
        self.recorder = GenerationLogRecorder(self.store)
        self.analyzer = EpisodeAnalyzer(self.catalog, fast_llm)
        self.source_manager = SourceManager(fast_llm, primary_search)
        self.topic_search = TopicSearchService(search_providers, fast_llm)
        self.clustering = ClusteringEngine(embeddings or get_embedding_provider())
        self.summarizer = ClusterSummarizer(fast_llm)
        self.deep_research = DeepResearchService(primary_search, fast_llm, powerful_llm)
        self.writer = ContentWriter(powerful_llm, fast_llm)
        self.differentiation = DifferentiationValidator(powerful_llm)
        self.audio = AudioService(
            voiceover or get_voiceover_provider(), storage or get_blob_storage()
        )

        logger.info(
            "orchestrator_initialized",
            llm=powerful_llm.name,
            search=[p.name for p in search_providers],
            embeddings=self.clustering.embeddings.name,
            voiceover=self.audio.voiceover.name,
        )

    async def generate(
        self,
        podcast: Podcast,
        target_minutes: float | None = None,
        target_words: int | None = None,
        selected_topic: str | None = None,
        log: GenerationLog | None = None,
    ) -> GenerationOutcome:
        """Run the full pipeline for ``podcast``.

        Args:
            podcast: Podcast to generate for
            target_minutes: Requested episode length in minutes
            target_words: Requested episode length in words (ignored if minutes given)
            selected_topic: Skip topic search and cover this topic
            log: Existing in-progress log (created by the queue), else a new one

        Returns:
            GenerationOutcome; ``success`` is False when a fatal step failed or
            an unexpected error stopped the run, and the log is failed in both cases
        """
        run = _Run(log or create_log(podcast.id), self.recorder)
        bind_generation_context(log_id=run.log.id, podcast_id=podcast.id)
        logger.info("generation_started", podcast_title=podcast.title)

        try:
            await self.recorder.save(run.log)
            episode = await self._run_pipeline(
                run, podcast, target_minutes, target_words, selected_topic
            )
            return GenerationOutcome(
                success=True, log_id=run.log.id, episode=episode, log=run.log
            )
        except StageFailedError as e:
            error = e.message
            logger.error("generation_failed", stage=e.stage, error=error)
        except Exception as e:
            # Store writes and worker time limits fail outside any step
            error = f"Unexpected error: {e}"
            logger.exception("generation_crashed", error=str(e))
        finally:
            clear_generation_context()

        await self._close_failed_run(run, error)
        return GenerationOutcome(
            success=False,
            log_id=run.log.id,
            episode=await self._saved_episode(run),
            error=error,
            log=run.log,
        )

    async def _close_failed_run(self, run: _Run, error: str) -> None:
        """Fail the log and save it, best effort.

        A log that already terminated (completed, then its save failed) is
        saved again unchanged.
        """
        if not run.log.is_terminal:
            run.log = fail_log(run.log, error)
        try:
            await self.recorder.save(run.log)
        except Exception as e:
            logger.error("final_log_save_failed", log_status=run.log.status.value, error=str(e))

    async def _saved_episode(self, run: _Run) -> Episode | None:
        """The episode created before the failure, if any (audio failures keep it)."""
        if not run.log.episode_id:
            return None
        try:
            return await self.catalog.get_episode(run.log.episode_id)
        except Exception as e:
            logger.error("episode_reload_failed", episode_id=run.log.episode_id, error=str(e))
            return None

    async def _run_pipeline(
        self,
        run: _Run,
        podcast: Podcast,
        target_minutes: float | None,
        target_words: int | None,
        selected_topic: str | None,
    ) -> Episode:
        # 1. Target length
        async with run.step(StageName.EPISODE_ANALYSIS, "Target length resolution"):
            word_target = resolve_target_word_count(
                target_minutes=target_minutes,
                target_words=target_words,
                prompt=podcast.prompt,
            )
        await run.record(
            StageName.EPISODE_ANALYSIS,
            {"target_word_count": word_target},
            decision=f"Target length set to {word_target} words",
            reasoning=_length_reasoning(target_minutes, target_words),
        )

        # 2. Source refresh
        podcast = await self._refresh_sources(run, podcast)

        # 3. Episode history
        async with run.step(StageName.EPISODE_ANALYSIS, "Episode history analysis"):
            analysis = await self.analyzer.analyze(podcast.id)
        await run.record(
            StageName.EPISODE_ANALYSIS,
            {"analysis": analysis.to_dict()},
            decision=f"Analysed {analysis.episode_count} previous episodes",
            reasoning=(
                "Recent topics are excluded from search and used for differentiation"
                if analysis.episode_count
                else "No previous episodes; every topic is new"
            ),
        )

        # 4. Initial topic search
        async with run.step(StageName.INITIAL_SEARCH, "Initial topic search"):
            if selected_topic:
                candidates = [
                    TopicCandidate(
                        topic=selected_topic,
                        relevance=10,
                        provider="requested",
                        reasoning="Topic chosen by the requester",
                    )
                ]
            else:
                candidates = await self.topic_search.search(podcast, analysis)
            if not candidates:
                raise ValueError("no topic candidates found")
        await run.record(
            StageName.INITIAL_SEARCH,
            {"candidates": [c.to_dict() for c in candidates]},
            decision=(
                f'Using requested topic "{selected_topic}"'
                if selected_topic
                else f"Found {len(candidates)} topic candidates"
            ),
            reasoning=(
                "Provider search skipped because a topic was selected"
                if selected_topic
                else "Candidates ranked by relevance, recency, sources and provider"
            ),
            alternatives=[c.topic for c in candidates[1:]],
        )

        # 5. Source-guided supplementary search
        guided = await self._guided_search(run, podcast, candidates)

        # 6. Clustering
        candidates = await self._cluster(run, candidates)

        # 7. Prioritization
        async with run.step(StageName.PRIORITIZATION, "Topic prioritization"):
            topics = await self.deep_research.prioritize(
                candidates, analysis, word_target, supplementary_context=guided.content
            )
        chosen = {t.topic for t in topics}
        await run.record(
            StageName.PRIORITIZATION,
            {"topics": [t.to_dict() for t in topics]},
            decision=f"Selected {len(topics)} topics for deep research",
            reasoning="; ".join(f"{t.topic}: {t.rationale}" for t in topics if t.rationale),
            alternatives=[c.topic for c in candidates if c.topic not in chosen],
        )

        # 8. Deep research
        async with run.step(StageName.DEEP_RESEARCH, "Deep-dive research"):
            research = await self.deep_research.research(topics, word_target)
        failed_topics = [r.topic for r in research.researched_topics if r.failed]
        await run.record(
            StageName.DEEP_RESEARCH,
            {
                "topics": [r.to_log() for r in research.researched_topics],
                "topic_distribution": research.topic_distribution,
                "source_count": len(research.all_sources),
                "narrative_word_count": len(research.narrative.split()),
            },
            decision=f"Researched {len(research.researched_topics)} topics",
            reasoning=(
                f"Topics without usable research were dropped: {', '.join(failed_topics)}"
                if failed_topics
                else "All topics produced research"
            ),
        )

        # 9. Draft
        async with run.step(StageName.CONTENT_GENERATION, "Content draft assembly"):
            draft = await self.writer.draft(podcast, research, word_target, analysis)
        await run.record(
            StageName.CONTENT_GENERATION,
            {
                "title": draft.title,
                "word_count": draft.word_count,
                "target_word_count": word_target,
            },
            decision=f'Drafted "{draft.title}"',
            reasoning=f"{draft.word_count} words against a target of {word_target}",
        )

        # 10. Differentiation
        async with run.step(
            StageName.CONTENT_GENERATION, "Differentiation validation", FailurePolicy.RECOVERABLE
        ) as status:
            result = await self.differentiation.validate(draft, analysis)
            if result.improved_content:
                draft = dataclasses.replace(draft, content=result.improved_content)
        if status.failed:
            await run.record(
                StageName.CONTENT_GENERATION,
                {"differentiation": {"error": status.error}},
                decision="Kept the original draft",
                reasoning=f"Differentiation check failed: {status.error}",
            )
        else:
            await run.record(
                StageName.CONTENT_GENERATION,
                {"differentiation": result.to_log(), "word_count": draft.word_count},
                decision=(
                    "Draft passed differentiation"
                    if result.is_passing
                    else "Draft rewritten to reduce overlap"
                ),
                reasoning=f"Similarity score {result.similarity_score}. {result.assessment}",
            )

        # 11. Bullet points
        bullet_points: list[str] = []
        async with run.step(
            StageName.CONTENT_GENERATION, "Bullet point generation", FailurePolicy.RECOVERABLE
        ) as status:
            bullet_points = await self.writer.bullet_points(draft.title, draft.content)
        await run.record(
            StageName.CONTENT_GENERATION,
            {"bullet_points": bullet_points},
            decision=f"Generated {len(bullet_points)} bullet points",
            reasoning=(
                f"Bullet generation failed: {status.error}" if status.failed else "Episode summary"
            ),
        )

        # 12. Persist
        async with run.step(StageName.CONTENT_GENERATION, "Episode persistence"):
            episode = await self.catalog.create_episode(
                podcast_id=podcast.id,
                title=draft.title,
                description=draft.description,
                content=draft.content,
                sources=list(dict.fromkeys([*research.all_sources, *guided.sources])),
                bullet_points=bullet_points,
            )
        run.log = set_episode_id(run.log, episode.id)
        await run.record(
            StageName.CONTENT_GENERATION,
            {"episode_id": episode.id},
            decision="Episode saved",
            reasoning=f"{episode.word_count} words, {len(episode.sources)} sources",
        )
        bind_generation_context(episode_id=episode.id)

        # 13. Audio
        async with run.step(StageName.AUDIO_GENERATION, "Audio synthesis"):
            audio_url = await self.audio.generate_and_store(episode.content, podcast.id, episode.id)
            episode = await self.catalog.attach_audio(episode, audio_url)
        await run.record(
            StageName.AUDIO_GENERATION,
            {"audio_url": audio_url, "provider": self.audio.voiceover.name},
            decision="Audio generated",
            reasoning=f"Synthesized with {self.audio.voiceover.name}",
        )

        run.log = complete_log(run.log)
        await self.recorder.save(run.log)
        logger.info(
            "generation_completed",
            episode_id=episode.id,
            total_ms=run.log.total_ms,
            word_count=episode.word_count,
        )
        return episode

    async def _refresh_sources(self, run: _Run, podcast: Podcast) -> Podcast:
        """Refresh sources; failures keep the existing list."""
        async with run.step(
            StageName.INITIAL_SEARCH, "Source refresh", FailurePolicy.RECOVERABLE
        ) as status:
            refresh = await self.source_manager.refresh_sources(podcast)
            if refresh.changed:
                await self.catalog.update_sources(podcast.id, refresh.sources)
                podcast = dataclasses.replace(podcast, sources=refresh.sources)

        if status.failed:
            await run.record(
                StageName.INITIAL_SEARCH,
                {"source_refresh": {"error": status.error}},
                decision=f"Kept {len(podcast.sources)} existing sources",
                reasoning=f"Source refresh failed: {status.error}",
            )
        else:
            await run.record(
                StageName.INITIAL_SEARCH,
                {
                    "source_refresh": {
                        "kept": refresh.kept,
                        "removed": refresh.removed,
                        "added": refresh.added,
                        "discovered": refresh.discovered,
                    }
                },
                decision=(
                    f"Discovered {len(refresh.sources)} sources"
                    if refresh.discovered
                    else f"Source list now has {len(refresh.sources)} entries"
                ),
                reasoning=(
                    f"Removed {len(refresh.removed)}, added {len(refresh.added)}"
                    if refresh.changed
                    else "No changes needed"
                ),
            )
        return podcast

    async def _guided_search(
        self, run: _Run, podcast: Podcast, candidates: list[TopicCandidate]
    ) -> GuidedSearchResult:
        """Search the podcast's own sources; failures continue with initial results."""
        topics = [c.topic for c in candidates[:GUIDED_SEARCH_TOPICS]]
        guided = GuidedSearchResult(content="", sources=[], queries=[])
        async with run.step(
            StageName.INITIAL_SEARCH, "Source-guided search", FailurePolicy.RECOVERABLE
        ) as status:
            guided = await self.source_manager.source_guided_search(podcast, topics)

        if status.failed:
            await run.record(
                StageName.INITIAL_SEARCH,
                {"guided_search": {"error": status.error}},
                decision="Continuing with initial search results only",
                reasoning=f"Source-guided search failed: {status.error}",
            )
        else:
            await run.record(
                StageName.INITIAL_SEARCH,
                {"guided_search": {"queries": guided.queries, "sources": guided.sources}},
                decision=f"Ran {len(guided.queries)} source-guided queries",
                reasoning=(
                    f"Found {len(guided.sources)} supplementary sources"
                    if guided.queries
                    else "Podcast has no sources to search"
                ),
            )
        return guided

    async def _cluster(
        self, run: _Run, candidates: list[TopicCandidate]
    ) -> list[TopicCandidate]:
        """Merge related candidates; any failure keeps the un-clustered list."""
        result = ClusterResult.empty()
        merged = list(candidates)
        async with run.step(
            StageName.CLUSTERING, "Topic clustering", FailurePolicy.RECOVERABLE
        ) as status:
            if len(candidates) > 1:
                items = [
                    (str(i), f"{c.topic}. {c.description}".strip())
                    for i, c in enumerate(candidates)
                ]
                result = await self.clustering.cluster(items)
                merged = await self.summarizer.summarize(candidates, result)

        if status.failed or result.is_empty:
            if status.failed:
                reason = f"Clustering failed: {status.error}"
            elif len(candidates) <= 1:
                reason = "Too few candidates to cluster"
            else:
                reason = "Embeddings unavailable"
            await run.record(
                StageName.CLUSTERING,
                {"clusters": {}, "candidate_count": len(candidates)},
                decision="Proceeding with un-clustered topic list",
                reasoning=reason,
            )
            return list(candidates)

        await run.record(
            StageName.CLUSTERING,
            {
                "clusters": {str(k): v for k, v in result.clusters.items()},
                "candidate_count": len(candidates),
                "merged_count": len(merged),
            },
            decision=f"Merged {len(candidates)} candidates into {len(merged)} topics",
            reasoning="Related candidates grouped by embedding similarity",
            alternatives=[c.topic for c in candidates],
        )
        return merged


def _length_reasoning(target_minutes: float | None, target_words: int | None) -> str:
    if target_minutes is not None:
        return f"Requested {target_minutes} minutes"
    if target_words is not None:
        return f"Requested {target_words} words"
    return "Derived from the podcast prompt or the default length"
