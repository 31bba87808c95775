"""Semantic clustering of topic candidates.

Candidates from different providers often describe the same story in different
words. Embedding them and grouping with k-means lets the pipeline merge those
duplicates before prioritization.
"""

import asyncio
import math

import numpy as np
from sklearn.cluster import KMeans

from podcast_engine.adapters.embeddings import EmbeddingProvider
from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.config import settings
from podcast_engine.domain.models import ClusterResult, TopicCandidate
from podcast_engine.logging import get_logger
from podcast_engine.services.topic_search import DEFAULT_RECENCY_BONUS, RECENCY_BONUS
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)


def default_cluster_count(n: int) -> int:
    """Rule-of-thumb k for n items: ceil(sqrt(n / 2)), at least 1 and at most n."""
    return max(1, min(n, math.ceil(math.sqrt(n / 2))))


class ClusteringEngine:
    """Embeds texts in batches and groups them with k-means."""

    def __init__(self, embeddings: EmbeddingProvider) -> None:
        self.embeddings = embeddings

    @property
    def batch_size(self) -> int:
        return max(1, min(settings.embedding_batch_size, self.embeddings.max_batch_size))

    async def _embed_all(self, texts: list[str]) -> list[list[float]]:
        truncated = [t[: settings.embedding_max_chars] for t in texts]
        batches = [
            truncated[i : i + self.batch_size] for i in range(0, len(truncated), self.batch_size)
        ]
        # Every batch runs to completion so no call is left unobserved
        results = await asyncio.gather(
            *(with_timeout(self.embeddings.embed(b)) for b in batches),
            return_exceptions=True,
        )
        failures = [(i, r) for i, r in enumerate(results) if isinstance(r, BaseException)]
        for index, error in failures:
            logger.warning(
                "embedding_batch_failed",
                batch=index,
                batch_count=len(batches),
                error=str(error) or type(error).__name__,
            )
        if failures:
            raise failures[0][1]
        return [vector for batch in results for vector in batch]

    async def cluster(
        self,
        items: list[tuple[str, str]],
        num_clusters: int | None = None,
    ) -> ClusterResult:
        """Cluster ``(id, text)`` pairs.

        Returns ``ClusterResult.empty()`` when embedding or k-means fails, which
        callers treat as "clustering unavailable".
        """
        if not items:
            return ClusterResult.empty()

        ids = [item_id for item_id, _ in items]
        texts = [text for _, text in items]

        try:
            vectors = await self._embed_all(texts)
        except Exception as e:
            logger.warning("embedding_failed", error=str(e), item_count=len(items))
            return ClusterResult.empty()

        if len(vectors) != len(items):
            logger.warning(
                "embedding_count_mismatch", expected=len(items), received=len(vectors)
            )
            return ClusterResult.empty()

        k = num_clusters if num_clusters is not None else default_cluster_count(len(items))
        k = max(1, min(k, len(items)))

        try:
            matrix = np.asarray(vectors, dtype=np.float64)
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            matrix = matrix / np.where(norms == 0, 1.0, norms)
            labels = KMeans(n_clusters=k, random_state=42, n_init=10).fit_predict(matrix)
        except Exception as e:
            logger.warning("kmeans_failed", error=str(e), k=k)
            return ClusterResult.empty()

        clusters: dict[int, list[str]] = {}
        for item_id, label in zip(ids, labels, strict=True):
            clusters.setdefault(int(label), []).append(item_id)

        logger.info("clustering_completed", item_count=len(items), cluster_count=len(clusters))
        return ClusterResult(
            clusters=clusters,
            noise=[],
            cluster_assignments=[int(label) for label in labels],
        )


def _recency_rank(recency: str | None) -> int:
    return RECENCY_BONUS.get((recency or "").lower(), DEFAULT_RECENCY_BONUS)


class ClusterSummarizer:
    """Merges each multi-member cluster into one consolidated candidate."""

    def __init__(self, llm: LLMProvider) -> None:
        self.llm = llm

    async def _title_for(self, members: list[TopicCandidate]) -> tuple[str, str]:
        listing = "\n".join(f"TOPIC: {m.topic}\nDETAILS: {m.description}" for m in members)
        prompt = f"""Consolidate these related topic candidates into a single podcast topic.

{listing}

Return JSON: {{"topic": "concise combined title", "description": "one or two sentences"}}"""

        response = await with_timeout(
            self.llm.complete([LLMMessage("user", prompt)], temperature=0.3, json_mode=True)
        )
        data = parse_json_response(response.content, required_fields=["topic", "description"])
        return str(data["topic"]), str(data.get("description") or "")

    async def summarize(
        self, candidates: list[TopicCandidate], result: ClusterResult
    ) -> list[TopicCandidate]:
        """Return one candidate per cluster, in order of each cluster's first member.

        Candidates are referenced by their index in ``candidates`` (as strings).
        A cluster whose summary call fails keeps its most relevant member's title.
        """
        if result.is_empty:
            return list(candidates)

        merged: list[TopicCandidate] = []
        ordered = sorted(result.clusters.values(), key=lambda ids: min(int(i) for i in ids))
        for member_ids in ordered:
            members = [candidates[int(i)] for i in sorted(member_ids, key=int)]
            if len(members) == 1:
                merged.append(members[0])
                continue

            lead = max(members, key=lambda m: m.relevance or 0)
            try:
                title, description = await self._title_for(members)
            except Exception as e:
                logger.warning("cluster_summary_failed", error=str(e), size=len(members))
                title, description = lead.topic, lead.description

            merged.append(
                TopicCandidate(
                    topic=title,
                    description=description,
                    relevance=max((m.relevance or 0) for m in members) or None,
                    recency=max((m.recency for m in members), key=_recency_rank),
                    sources=list(dict.fromkeys(s for m in members for s in m.sources)),
                    key_questions=list(dict.fromkeys(q for m in members for q in m.key_questions)),
                    query=lead.query,
                    provider=lead.provider,
                    reasoning=f"Merged from {len(members)} related candidates",
                    score=max((m.score or 0) for m in members),
                )
            )

        logger.info("clusters_summarized", input_count=len(candidates), output_count=len(merged))
        return merged
