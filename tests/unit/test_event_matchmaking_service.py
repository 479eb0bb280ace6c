"""
Unit tests for EventMatchmakingService scoring.

Repositories are AsyncMock objects; persistence is covered by the
integration tests.
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock, MagicMock

import pytest

from matchengine.models.enums import QuestionType
from matchengine.services.event_compatibility import ParticipantAnswers, QuestionSpec
from matchengine.services.event_matchmaking_service import EventMatchmakingService


def _question() -> QuestionSpec:
    return QuestionSpec(
        id=uuid.uuid4(),
        question_type=QuestionType.SCALE.value,
        question_text="How important is family?",
    )


def _participants(question: QuestionSpec, values: list[str]) -> list[ParticipantAnswers]:
    return [ParticipantAnswers(user_id=uuid.uuid4(), answers={question.id: value}) for value in values]


@pytest.fixture
def thread_executor():
    executor = ThreadPoolExecutor(max_workers=2)
    yield executor
    executor.shutdown(wait=True)


class TestScorePairs:
    async def test_inline_scores_every_pair_once(self):
        q = _question()
        participants = _participants(q, ["1", "2", "3", "4", "5"])
        service = EventMatchmakingService(event_repo=MagicMock(), inline=True)

        candidates = await service.score_pairs("values_alignment", {q.id: q}, participants)

        assert len(candidates) == 10
        assert len({(c.user_a_id, c.user_b_id) for c in candidates}) == 10
        assert all(c.user_a_id < c.user_b_id for c in candidates)

    async def test_executor_chunks_match_inline_results(self, thread_executor):
        q = _question()
        participants = _participants(q, ["1", "3", "3", "5"])
        inline = EventMatchmakingService(event_repo=MagicMock(), inline=True)
        chunked = EventMatchmakingService(event_repo=MagicMock(), executor=thread_executor, chunk_size=1)

        expected = await inline.score_pairs("values_alignment", {q.id: q}, participants)
        actual = await chunked.score_pairs("values_alignment", {q.id: q}, participants)

        assert sorted(actual, key=lambda c: (c.user_a_id, c.user_b_id)) == sorted(
            expected, key=lambda c: (c.user_a_id, c.user_b_id)
        )

    async def test_no_participants(self):
        service = EventMatchmakingService(event_repo=MagicMock(), inline=True)
        assert await service.score_pairs("values_alignment", {}, []) == []


class TestProcessEventMatches:
    async def test_fewer_than_two_completed_participants(self):
        repo = MagicMock()
        repo.get_completed_participations = AsyncMock(return_value=[MagicMock()])
        service = EventMatchmakingService(event_repo=repo, inline=True)
        event = MagicMock(id=uuid.uuid4(), event_type="values_alignment")

        assert await service.process_event_matches(AsyncMock(), event) == []
        repo.get_questions.assert_not_called()

    async def test_missing_event_by_id(self):
        from matchengine.core.exceptions import EventNotFoundError

        repo = MagicMock()
        repo.get = AsyncMock(return_value=None)
        service = EventMatchmakingService(event_repo=repo, inline=True)

        with pytest.raises(EventNotFoundError):
            await service.process_event_by_id(AsyncMock(), uuid.uuid4())


def test_shutdown_without_executor_is_noop():
    service = EventMatchmakingService(event_repo=MagicMock())
    service.shutdown()
    assert service._executor is None
