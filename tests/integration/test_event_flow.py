"""
Integration tests for weekly events: participation, batch matchmaking and
the acceptance state machine.
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from matchengine.core.exceptions import (
    EventNotFoundError,
    EventParticipationError,
    InvalidAcceptanceTransitionError,
    NotMatchParticipantError,
)
from matchengine.models.enums import AcceptanceState, EventStatus, ParticipationStatus
from matchengine.models.event import EventMatch
from matchengine.models.match import Match
from matchengine.repositories.event_repository import EventRepository
from matchengine.services.event_matchmaking_service import EventMatchmakingService
from matchengine.services.event_participation_service import EventParticipationService
from matchengine.services.match_acceptance_service import MatchAcceptanceService
from matchengine.utils.time import utcnow
from tests.factories import (
    EventMatchFactory,
    EventParticipationFactory,
    EventQuestionFactory,
    MatchFactory,
    UserFactory,
    WeeklyEventFactory,
    create_completed_participant,
)


@pytest.fixture
def matchmaking() -> EventMatchmakingService:
    return EventMatchmakingService(inline=True)


@pytest.fixture
def participation_service() -> EventParticipationService:
    return EventParticipationService()


@pytest.fixture
def acceptance() -> MatchAcceptanceService:
    return MatchAcceptanceService()


async def _event_with_questions(db_session, **fields):
    event = await WeeklyEventFactory.create_async(db_session, **fields)
    family = await EventQuestionFactory.create_async(db_session, event_id=event.id, display_order=0)
    kids = await EventQuestionFactory.create_async(
        db_session, event_id=event.id, question_text="Do you want children?", display_order=1
    )
    optional = await EventQuestionFactory.create_async(
        db_session, event_id=event.id, question_text="Favourite season?", is_required=False, display_order=2
    )
    return event, family, kids, optional


async def _event_match_count(db_session, event_id) -> int:
    stmt = select(func.count(EventMatch.id)).where(EventMatch.event_id == event_id)
    return (await db_session.execute(stmt)).scalar_one()


# ---------------------------------------------------------------------------
# Participation
# ---------------------------------------------------------------------------
class TestParticipation:
    async def test_join_and_submit(self, db_session, participation_service):
        event, family, kids, _ = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)

        joined = await participation_service.join(db_session, event.id, user)
        assert joined.status == ParticipationStatus.JOINED

        completed = await participation_service.submit_responses(
            db_session,
            event.id,
            user,
            [
                {"question_id": family.id, "response_value": "5", "response_time_ms": 1200},
                {"question_id": kids.id, "response_value": "4"},
            ],
        )
        assert completed.status == ParticipationStatus.COMPLETED
        assert completed.completed_at is not None

    async def test_join_twice_is_rejected(self, db_session, participation_service):
        event, *_ = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)

        await participation_service.join(db_session, event.id, user)
        with pytest.raises(EventParticipationError, match="already joined"):
            await participation_service.join(db_session, event.id, user)

    async def test_full_event_is_rejected(self, db_session, participation_service):
        event = await WeeklyEventFactory.create_async(db_session, max_participants=1)
        await participation_service.join(db_session, event.id, await UserFactory.create_async(db_session))

        with pytest.raises(EventParticipationError, match="full"):
            await participation_service.join(db_session, event.id, await UserFactory.create_async(db_session))

    async def test_abandoned_seat_is_freed(self, db_session, participation_service):
        event = await WeeklyEventFactory.create_async(db_session, max_participants=1)
        quitter = await UserFactory.create_async(db_session)
        await participation_service.join(db_session, event.id, quitter)
        await participation_service.abandon(db_session, event.id, quitter)

        late = await participation_service.join(db_session, event.id, await UserFactory.create_async(db_session))
        assert late.status == ParticipationStatus.JOINED

    async def test_closed_event_cannot_be_joined(self, db_session, participation_service):
        event = await WeeklyEventFactory.create_async(db_session, status=EventStatus.COMPLETED)
        with pytest.raises(EventParticipationError):
            await participation_service.join(db_session, event.id, await UserFactory.create_async(db_session))

    async def test_unknown_event(self, db_session, participation_service):
        with pytest.raises(EventNotFoundError):
            await participation_service.join(db_session, uuid.uuid4(), await UserFactory.create_async(db_session))

    async def test_missing_required_answers_are_listed(self, db_session, participation_service):
        event, family, kids, optional = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)
        await participation_service.join(db_session, event.id, user)

        with pytest.raises(EventParticipationError) as exc_info:
            await participation_service.submit_responses(
                db_session,
                event.id,
                user,
                [
                    {"question_id": family.id, "response_value": "3"},
                    {"question_id": optional.id, "response_value": "winter"},
                ],
            )
        assert exc_info.value.context["missing_questions"] == [str(kids.id)]

    async def test_foreign_question_is_rejected(self, db_session, participation_service):
        event, family, kids, _ = await _event_with_questions(db_session)
        other_event, other_question, *_ = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)
        await participation_service.join(db_session, event.id, user)

        with pytest.raises(EventParticipationError, match="outside this event"):
            await participation_service.submit_responses(
                db_session,
                event.id,
                user,
                [
                    {"question_id": family.id, "response_value": "3"},
                    {"question_id": kids.id, "response_value": "3"},
                    {"question_id": other_question.id, "response_value": "3"},
                ],
            )

    async def test_completed_participation_cannot_resubmit_or_abandon(self, db_session, participation_service):
        event, family, kids, _ = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)
        await participation_service.join(db_session, event.id, user)
        answers = [
            {"question_id": family.id, "response_value": "3"},
            {"question_id": kids.id, "response_value": "3"},
        ]
        await participation_service.submit_responses(db_session, event.id, user, answers)

        with pytest.raises(EventParticipationError, match="already completed"):
            await participation_service.submit_responses(db_session, event.id, user, answers)
        with pytest.raises(EventParticipationError):
            await participation_service.abandon(db_session, event.id, user)

    async def test_abandoned_user_cannot_submit(self, db_session, participation_service):
        event, family, kids, _ = await _event_with_questions(db_session)
        user = await UserFactory.create_async(db_session)
        await participation_service.join(db_session, event.id, user)
        await participation_service.abandon(db_session, event.id, user)

        with pytest.raises(EventParticipationError, match="left this event"):
            await participation_service.submit_responses(
                db_session, event.id, user, [{"question_id": family.id, "response_value": "3"}]
            )

    async def test_results_only_after_processing(self, db_session, participation_service, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session)
        alice = await create_completed_participant(db_session, event, {family.id: 5, kids.id: 4})
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 5})

        with pytest.raises(EventParticipationError, match="not available yet"):
            await participation_service.list_matches(db_session, event.id, alice)

        await matchmaking.process_event_matches(db_session, event)
        matches = await participation_service.list_matches(db_session, event.id, alice)

        assert len(matches) == 1
        assert matches[0].is_notified is True


# ---------------------------------------------------------------------------
# Batch matchmaking
# ---------------------------------------------------------------------------
class TestBatchMatchmaking:
    async def test_all_pairs_persisted_and_status_moves_to_processing(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session)
        for values in [(5, 5), (5, 4), (1, 2), (3, 3)]:
            await create_completed_participant(db_session, event, {family.id: values[0], kids.id: values[1]})
        # Joined but never finished: left out of pairing
        dropout = await UserFactory.create_async(db_session)
        await EventParticipationFactory.create_async(db_session, event_id=event.id, user_id=dropout.id)

        candidates = await matchmaking.process_event_matches(db_session, event)

        assert len(candidates) == 6
        scores = [c.compatibility_score for c in candidates]
        assert scores == sorted(scores, reverse=True)
        assert all(c.user_a_id < c.user_b_id for c in candidates)
        assert all(dropout.id not in (c.user_a_id, c.user_b_id) for c in candidates)
        assert await _event_match_count(db_session, event.id) == 6
        assert event.status == EventStatus.PROCESSING

    async def test_rerun_is_idempotent(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session)
        for values in [(5, 5), (4, 4), (2, 1)]:
            await create_completed_participant(db_session, event, {family.id: values[0], kids.id: values[1]})

        first = await matchmaking.process_event_matches(db_session, event)
        second = await matchmaking.process_event_matches(db_session, event)

        assert first == second
        assert await _event_match_count(db_session, event.id) == 3

    async def test_late_participant_only_adds_new_pairs(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session)
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 5})
        await create_completed_participant(db_session, event, {family.id: 4, kids.id: 4})
        await matchmaking.process_event_matches(db_session, event)

        await create_completed_participant(db_session, event, {family.id: 3, kids.id: 3})
        await matchmaking.process_event_matches(db_session, event)

        assert await _event_match_count(db_session, event.id) == 3

    async def test_fewer_than_two_participants(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session)
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 5})

        assert await matchmaking.process_event_matches(db_session, event) == []
        assert event.status == EventStatus.ACTIVE

    async def test_completed_event_keeps_its_status(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session, status=EventStatus.COMPLETED)
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 5})
        await create_completed_participant(db_session, event, {family.id: 1, kids.id: 1})

        await matchmaking.process_event_matches(db_session, event)
        assert event.status == EventStatus.COMPLETED

    async def test_executor_path(self, db_session):
        event, family, kids, _ = await _event_with_questions(db_session)
        for value in range(1, 6):
            await create_completed_participant(db_session, event, {family.id: value, kids.id: value})

        with ThreadPoolExecutor(max_workers=2) as executor:
            service = EventMatchmakingService(executor=executor, chunk_size=1)
            candidates = await service.process_event_matches(db_session, event)

        assert len(candidates) == 10
        assert await _event_match_count(db_session, event.id) == 10

    async def test_unknown_event_type_uses_generic_strategy(self, db_session, matchmaking):
        event, family, kids, _ = await _event_with_questions(db_session, event_type="speed_dating")
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 2})
        await create_completed_participant(db_session, event, {family.id: 5, kids.id: 4})

        [candidate] = await matchmaking.process_event_matches(db_session, event)
        assert candidate.compatibility_score == 50.0


# ---------------------------------------------------------------------------
# Acceptance state machine
# ---------------------------------------------------------------------------
async def _event_match(db_session):
    event = await WeeklyEventFactory.create_async(db_session, status=EventStatus.PROCESSING)
    alice = await UserFactory.create_async(db_session)
    bob = await UserFactory.create_async(db_session)
    for user in (alice, bob):
        await EventParticipationFactory.create_async(
            db_session, event_id=event.id, user_id=user.id, status=ParticipationStatus.COMPLETED
        )
    event_match = await EventMatchFactory.create_async(
        db_session,
        event_id=event.id,
        user_a_id=alice.id,
        user_b_id=bob.id,
        compatibility_score=82.4,
        match_reasons=[{"type": "similar", "question": "Q?", "answer": "5"}],
    )
    return event, event_match


class TestAcceptance:
    async def test_both_accept_creates_event_match(self, db_session, acceptance):
        event, event_match = await _event_match(db_session)

        first = await acceptance.accept(db_session, event_match, event_match.user_b_id)
        assert first.state is AcceptanceState.USER_B_ACCEPTED
        assert first.match is None

        second = await acceptance.accept(db_session, event_match, event_match.user_a_id)
        assert second.state is AcceptanceState.BOTH_ACCEPTED
        match = second.match
        assert (match.user_a_id, match.user_b_id) == (event_match.user_a_id, event_match.user_b_id)
        assert match.match_context["source"] == "event"
        assert match.match_context["event_id"] == str(event.id)
        assert match.compatibility_score == pytest.approx(82.4)
        assert event_match.matched_at is not None
        assert event_match.match_id == match.id

        participations = [
            await EventRepository().get_participation(db_session, event.id, user_id)
            for user_id in (event_match.user_a_id, event_match.user_b_id)
        ]
        for participation in participations:
            await db_session.refresh(participation)
            assert participation.status == ParticipationStatus.MATCHED

    async def test_accepting_again_is_idempotent(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        await acceptance.accept(db_session, event_match, event_match.user_a_id)
        done = await acceptance.accept(db_session, event_match, event_match.user_b_id)

        again = await acceptance.accept(db_session, event_match, event_match.user_a_id)

        assert again.state is AcceptanceState.BOTH_ACCEPTED
        assert again.match.id == done.match.id
        assert (await db_session.execute(select(func.count(Match.id)))).scalar_one() == 1

    async def test_existing_mutual_match_is_reused(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        existing = await MatchFactory.create_async(
            db_session, user_a_id=event_match.user_a_id, user_b_id=event_match.user_b_id
        )

        await acceptance.accept(db_session, event_match, event_match.user_a_id)
        outcome = await acceptance.accept(db_session, event_match, event_match.user_b_id)

        assert outcome.match.id == existing.id
        assert (await db_session.execute(select(func.count(Match.id)))).scalar_one() == 1

    async def test_decline_keeps_other_side(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        await acceptance.accept(db_session, event_match, event_match.user_a_id)

        outcome = await acceptance.decline(db_session, event_match, event_match.user_b_id)

        assert outcome.state is AcceptanceState.USER_A_ACCEPTED
        assert event_match.user_b_declined is True

    async def test_decline_withdraws_own_acceptance(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        await acceptance.accept(db_session, event_match, event_match.user_a_id)

        outcome = await acceptance.decline(db_session, event_match, event_match.user_a_id)
        assert outcome.state is AcceptanceState.PENDING

        with pytest.raises(InvalidAcceptanceTransitionError):
            await acceptance.accept(db_session, event_match, event_match.user_a_id)

    async def test_cannot_decline_confirmed_match(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        await acceptance.accept(db_session, event_match, event_match.user_a_id)
        await acceptance.accept(db_session, event_match, event_match.user_b_id)

        with pytest.raises(InvalidAcceptanceTransitionError):
            await acceptance.decline(db_session, event_match, event_match.user_a_id)

    async def test_outsider_cannot_accept(self, db_session, acceptance):
        _, event_match = await _event_match(db_session)
        outsider = await UserFactory.create_async(db_session)

        with pytest.raises(NotMatchParticipantError):
            await acceptance.accept(db_session, event_match, outsider.id)


# ---------------------------------------------------------------------------
# Scheduling query
# ---------------------------------------------------------------------------
async def test_ended_unprocessed_events(db_session):
    now = utcnow()
    ended = await WeeklyEventFactory.create_async(db_session, ends_at=now - timedelta(hours=1))
    await WeeklyEventFactory.create_async(db_session, ends_at=now + timedelta(hours=1))
    await WeeklyEventFactory.create_async(
        db_session, ends_at=now - timedelta(hours=2), status=EventStatus.CANCELLED
    )

    events = await EventRepository().get_ended_unprocessed(db_session, now)
    assert [e.id for e in events] == [ended.id]
