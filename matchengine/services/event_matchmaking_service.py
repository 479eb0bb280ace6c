"""
Batch matchmaking over an event's completed participants.

Scoring is O(n^2) in the number of participants and embarrassingly parallel,
so pairs are split into chunks and scored on an executor. Persistence is the
only synchronisation point: under a row lock on the event, inside one
savepoint, pairs that already have an EventMatch are skipped, the rest are
inserted and the event moves to ``processing``. Re-running the batch for the
same participants is a no-op.
"""

from __future__ import annotations
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import List, Optional
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.config import settings
from matchengine.core.exceptions import EventNotFoundError
from matchengine.models.enums import EventStatus
from matchengine.models.event import EventMatch, WeeklyEvent
from matchengine.repositories.event_repository import EventRepository
from matchengine.services.event_compatibility import (
    CandidateMatch,
    ParticipantAnswers,
    QuestionSpec,
    all_pairs,
    score_chunk,
)
from matchengine.utils.pairs import MatchKey

logger = structlog.get_logger(__name__)

# Statuses the batch must not move back to processing
FINAL_STATUSES = (EventStatus.COMPLETED, EventStatus.CANCELLED)


class EventMatchmakingService:
    """
    Service computing and persisting an event's candidate matches.

    Args:
        event_repo: EventRepository instance (creates new if None)
        executor: Executor for pair scoring. None creates a process pool
            of ``settings.matchmaking_max_workers`` on first use.
        chunk_size: Pairs per executor task
        inline: Score in the event loop instead of on an executor
    """

    def __init__(
        self,
        event_repo: Optional[EventRepository] = None,
        executor: Optional[Executor] = None,
        chunk_size: Optional[int] = None,
        inline: bool = False
    ):
        self.event_repo = event_repo or EventRepository()
        self._executor = executor
        self.chunk_size = chunk_size or settings.matchmaking_chunk_size
        self.inline = inline

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=settings.matchmaking_max_workers)
        return self._executor

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def score_pairs(
        self,
        event_type: str,
        questions: dict,
        participants: List[ParticipantAnswers]
    ) -> List[CandidateMatch]:
        """
        Score every unordered pair of participants.

        A single chunk is scored in the event loop; spinning up workers for
        one chunk costs more than it saves.
        """
        pairs = all_pairs(len(participants))
        if not pairs:
            return []

        chunks = [pairs[i:i + self.chunk_size] for i in range(0, len(pairs), self.chunk_size)]
        if self.inline or len(chunks) == 1:
            results = [score_chunk(event_type, questions, participants, chunk) for chunk in chunks]
        else:
            loop = asyncio.get_running_loop()
            results = await asyncio.gather(*(
                loop.run_in_executor(self.executor, score_chunk, event_type, questions, participants, chunk)
                for chunk in chunks
            ))

        return [candidate for chunk_result in results for candidate in chunk_result]

    async def process_event_matches(
        self,
        db: AsyncSession,
        event: WeeklyEvent
    ) -> List[CandidateMatch]:
        """
        Pair all completed participants of an event and persist new candidates.

        Args:
            db: Active database session (caller commits)
            event: The event to process

        Returns:
            Every scored candidate, sorted by score descending (including
            pairs that were already persisted by an earlier run). Empty when
            fewer than two participants completed the event.

        Example:
            candidates = await event_matchmaking_service.process_event_matches(db, event)
            await db.commit()
        """
        log = logger.bind(event_id=str(event.id), event_type=event.event_type)

        participations = await self.event_repo.get_completed_participations(db, event.id)
        if len(participations) < 2:
            log.info("event_matchmaking_skipped", completed=len(participations))
            return []

        questions = {
            q.id: QuestionSpec.from_model(q) for q in await self.event_repo.get_questions(db, event.id)
        }
        participants = [ParticipantAnswers.from_model(p) for p in participations]

        candidates = await self.score_pairs(event.event_type, questions, participants)
        candidates.sort(key=lambda c: (-c.compatibility_score, str(c.user_a_id), str(c.user_b_id)))

        inserted = await self._persist(db, event, candidates)
        log.info(
            "event_matchmaking_completed",
            participants=len(participants),
            candidates=len(candidates),
            inserted=inserted,
        )
        return candidates

    async def process_event_by_id(self, db: AsyncSession, event_id) -> List[CandidateMatch]:
        event = await self.event_repo.get(db, event_id)
        if event is None:
            raise EventNotFoundError("Event not found")
        return await self.process_event_matches(db, event)

    async def _persist(
        self,
        db: AsyncSession,
        event: WeeklyEvent,
        candidates: List[CandidateMatch]
    ) -> int:
        """Insert unseen pairs and flip the status, all or nothing."""
        async with db.begin_nested():
            locked = await self.event_repo.get(db, event.id, for_update=True)
            if locked is None:
                raise EventNotFoundError("Event not found")

            existing = await self.event_repo.get_existing_pairs(db, event.id)
            rows = []
            for candidate in candidates:
                key = MatchKey(candidate.user_a_id, candidate.user_b_id)
                if key in existing:
                    continue
                existing.add(key)
                rows.append(EventMatch(
                    event_id=event.id,
                    user_a_id=candidate.user_a_id,
                    user_b_id=candidate.user_b_id,
                    compatibility_score=candidate.compatibility_score,
                    match_reasons=candidate.match_reasons,
                ))

            if rows:
                await self.event_repo.add_event_matches(db, rows)

            if EventStatus(locked.status) not in FINAL_STATUSES:
                locked.status = EventStatus.PROCESSING
            await db.flush()

        return len(rows)


# Create singleton instance
event_matchmaking_service = EventMatchmakingService()
