"""Podcast and episode persistence."""

import dataclasses
from typing import Any

from podcast_engine.adapters.docstore import EPISODES, PODCASTS, DocumentStore
from podcast_engine.domain.errors import EpisodeNotFoundError, PodcastNotFoundError
from podcast_engine.domain.models import Episode, Podcast, PodcastSource, new_id
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class PodcastCatalog:
    """Reads and writes podcasts and episodes in the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_podcast(self, podcast_id: str) -> Podcast:
        data = await self.store.get(PODCASTS, podcast_id)
        if data is None:
            raise PodcastNotFoundError(f"Podcast {podcast_id} not found")
        return Podcast.from_document(data)

    async def create_podcast(self, podcast: Podcast) -> Podcast:
        await self.store.set(PODCASTS, podcast.id, podcast.to_document())
        logger.info("podcast_created", podcast_id=podcast.id, title=podcast.title)
        return podcast

    async def list_podcasts(
        self, owner_id: str | None = None, auto_generate: bool | None = None
    ) -> list[Podcast]:
        """Podcasts, newest first, optionally restricted to one owner or to auto-generated ones."""
        filters: dict[str, Any] = {}
        if owner_id is not None:
            filters["owner_id"] = owner_id
        if auto_generate is not None:
            filters["auto_generate"] = auto_generate
        docs = await self.store.query(
            PODCASTS, filters=filters or None, order_by="created_at", descending=True
        )
        return [Podcast.from_document(d) for d in docs]

    async def update_podcast(self, podcast_id: str, fields: dict[str, Any]) -> Podcast:
        """Merge document-form ``fields`` into a podcast and return the result."""
        await self.get_podcast(podcast_id)
        await self.store.update(PODCASTS, podcast_id, fields)
        logger.info("podcast_updated", podcast_id=podcast_id, fields=sorted(fields))
        return await self.get_podcast(podcast_id)

    async def delete_podcast(self, podcast_id: str) -> list[Episode]:
        """Delete a podcast and all of its episodes.

        Returns:
            The deleted episodes, so callers can remove their audio
        """
        await self.get_podcast(podcast_id)
        docs = await self.store.query(EPISODES, filters={"podcast_id": podcast_id})
        episodes = [Episode.from_document(d) for d in docs]
        for episode in episodes:
            await self.store.delete(EPISODES, episode.id)
        await self.store.delete(PODCASTS, podcast_id)
        logger.info("podcast_deleted", podcast_id=podcast_id, episode_count=len(episodes))
        return episodes

    async def update_sources(self, podcast_id: str, sources: list[PodcastSource]) -> None:
        await self.store.update(
            PODCASTS, podcast_id, {"sources": [s.to_document() for s in sources]}
        )
        logger.info("podcast_sources_updated", podcast_id=podcast_id, source_count=len(sources))

    async def list_recent_episodes(self, podcast_id: str, limit: int = 15) -> list[Episode]:
        """Newest episodes of a podcast."""
        docs = await self.store.query(
            EPISODES,
            filters={"podcast_id": podcast_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Episode.from_document(d) for d in docs]

    async def create_episode(
        self,
        podcast_id: str,
        title: str,
        description: str,
        content: str,
        sources: list[str],
        bullet_points: list[str],
    ) -> Episode:
        """Persist a new episode without audio."""
        episode = Episode(
            id=new_id(),
            podcast_id=podcast_id,
            title=title,
            description=description,
            content=content,
            sources=sources,
            bullet_points=bullet_points,
        )
        await self.store.create(EPISODES, episode.to_document(), doc_id=episode.id)
        logger.info(
            "episode_created",
            episode_id=episode.id,
            podcast_id=podcast_id,
            word_count=episode.word_count,
        )
        return episode

    async def get_episode(self, episode_id: str) -> Episode:
        data = await self.store.get(EPISODES, episode_id)
        if data is None:
            raise EpisodeNotFoundError(f"Episode {episode_id} not found")
        return Episode.from_document(data)

    async def delete_episode(self, episode_id: str) -> None:
        if not await self.store.delete(EPISODES, episode_id):
            raise EpisodeNotFoundError(f"Episode {episode_id} not found")
        logger.info("episode_deleted", episode_id=episode_id)

    async def attach_audio(self, episode: Episode, audio_url: str) -> Episode:
        fields: dict[str, Any] = {"audio_url": audio_url}
        await self.store.update(EPISODES, episode.id, fields)
        return dataclasses.replace(episode, audio_url=audio_url)
