"""Tests for EpisodeRecorder."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from retainer.domain.enums import Outcome
from retainer.domain.episode import ActionTaken, EpisodeResolution
from retainer.infrastructure.providers.embedding import HashEmbeddingProvider
from retainer.memory import EpisodeRecorder
from tests.factories import EpisodeFactory, SituationFactory


class TestEpisodeRecorder:
    """Tests for EpisodeRecorder."""

    @pytest.mark.asyncio
    async def test_record_opens_pending_episode(self, episode_recorder, episode_store, embeddings):
        """Should store a pending episode with the situation embedding."""
        situation = SituationFactory.create()

        episode = await episode_recorder.record(
            situation, ActionTaken(type="email", strategy="friendly")
        )

        stored = await episode_store.get_episode(episode.id)
        assert stored.outcome == Outcome.PENDING
        assert stored.subscriber_id == "sub_1"
        assert stored.situation_embedding == embeddings.embed_text(
            situation.describe_for_search()
        )

    @pytest.mark.asyncio
    async def test_record_with_precomputed_embedding(self, episode_recorder):
        embedding = [1.0] + [0.0] * 63
        episode = await episode_recorder.record(
            SituationFactory.create(),
            ActionTaken(type="sms", strategy="urgent"),
            situation_embedding=embedding,
        )
        assert episode.situation_embedding == embedding

    @pytest.mark.asyncio
    async def test_find_similar(self, episode_recorder):
        """Should find past episodes of the same situation."""
        situation = SituationFactory.create()
        recorded = await episode_recorder.record(
            situation, ActionTaken(type="email", strategy="friendly")
        )

        results = await episode_recorder.find_similar(SituationFactory.create())

        assert [ep.id for ep, _ in results] == [recorded.id]
        assert results[0][1] == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_find_similar_embedding_failure(self, episode_store):
        embeddings = AsyncMock()
        embeddings.embed_single.side_effect = RuntimeError("down")
        recorder = EpisodeRecorder("acct_test", "recovery", episode_store, embeddings)

        assert await recorder.find_similar(SituationFactory.create()) == []

    @pytest.mark.asyncio
    async def test_record_survives_embedding_failure(self, episode_store):
        """Should store the hash vector of the provider's width when embedding fails."""
        embeddings = AsyncMock()
        embeddings.dimensions = 32
        embeddings.embed_single.side_effect = RuntimeError("down")
        recorder = EpisodeRecorder("acct_test", "recovery", episode_store, embeddings)
        situation = SituationFactory.create()

        episode = await recorder.record(situation, ActionTaken(type="email", strategy="friendly"))

        assert episode.outcome == Outcome.PENDING
        assert len(episode.situation_embedding) == 32
        assert episode.situation_embedding == HashEmbeddingProvider(dimensions=32).embed_text(
            situation.describe_for_search()
        )
        assert await episode_store.get_episode(episode.id) is not None

    @pytest.mark.asyncio
    async def test_get_is_scoped(self, episode_recorder, episode_store):
        """Should not return episodes of another agent."""
        other = EpisodeFactory.create(agent_type="retention")
        await episode_store.add_episode(other)

        assert await episode_recorder.get(other.id) is None
        assert await episode_recorder.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_latest_pending_and_resolve(self, episode_recorder, episode_store):
        episode = EpisodeFactory.create()
        await episode_store.add_episode(episode)

        assert (await episode_recorder.latest_pending("sub_1")).id == episode.id

        resolved = await episode_recorder.resolve(
            episode.id, EpisodeResolution(outcome=Outcome.FAILURE)
        )
        assert resolved.outcome == Outcome.FAILURE
        assert await episode_recorder.latest_pending("sub_1") is None
        assert await episode_recorder.count(Outcome.FAILURE) == 1
        assert [ep.id for ep in await episode_recorder.list_recent(resolved_only=True)] == [
            episode.id
        ]
