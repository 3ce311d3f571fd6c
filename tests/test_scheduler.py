"""
Unit tests for the out-attempt scheduler.

Tests:
- Water schedules a pee attempt 80 minutes later
- No duplicate attempts until a pee resolves the pending one
- Acknowledgement logs a pee_attempt event exactly once
"""

from tracker.constants import PEE_ATTEMPT_DELAY_MS, AttemptReason, EventType
from tracker.event_log import append_event
from tracker.scheduler import (
    delete_attempt,
    ensure_pee_attempt_after_water,
    last_pee_before,
    mark_attempt_done,
    pending_attempts,
)
from tracker.schemas import Event, OutAttempt


def _log_water(document, event_id, at, now):
    water = append_event(document, Event(id=event_id, type=EventType.WATER, at=at))
    return ensure_pee_attempt_after_water(document, water, now)


class TestEnsurePeeAttempt:

    def test_water_schedules_attempt(self, document, ts):
        attempt = _log_water(document, "w1", ts("08:00"), ts("08:00"))

        assert attempt.id == "out-w1"
        assert attempt.at == ts("08:00") + PEE_ATTEMPT_DELAY_MS
        assert attempt.at == ts("09:20")
        assert attempt.reason == AttemptReason.PEE
        assert attempt.source_event_id == "w1"
        assert attempt.done is False
        assert document.out_attempts == [attempt]

    def test_second_water_does_not_duplicate(self, document, ts):
        _log_water(document, "w1", ts("08:00"), ts("08:00"))

        assert _log_water(document, "w2", ts("08:30"), ts("08:30")) is None
        assert len(document.out_attempts) == 1

    def test_water_after_pee_schedules_again(self, document, ts):
        _log_water(document, "w1", ts("08:00"), ts("08:00"))
        append_event(document, Event(id="p1", type=EventType.PEE, at=ts("09:00")))
        assert document.out_attempts == []

        attempt = _log_water(document, "w2", ts("09:30"), ts("09:30"))

        assert attempt.at == ts("10:50")
        assert len(document.out_attempts) == 1

    def test_stale_attempt_before_last_pee_does_not_block(self, document, ts):
        document.events.append(Event(id="p1", type=EventType.PEE, at=ts("09:00")))
        document.out_attempts.append(
            OutAttempt(id="old", at=ts("08:30"), reason=AttemptReason.PEE)
        )

        attempt = _log_water(document, "w1", ts("10:00"), ts("10:00"))

        assert attempt is not None
        assert {a.id for a in document.out_attempts} == {"old", "out-w1"}

    def test_pees_at_or_after_now_are_ignored(self, document, ts):
        document.events.append(Event(id="p-late", type=EventType.PEE, at=ts("13:00")))
        document.out_attempts.append(
            OutAttempt(id="pending", at=ts("12:30"), reason=AttemptReason.PEE)
        )

        assert last_pee_before(document, ts("12:00")) == float("-inf")
        assert _log_water(document, "w1", ts("12:00"), ts("12:00")) is None

    def test_non_finite_water_time(self, document):
        water = Event.model_construct(id="w-bad", type=EventType.WATER, at=float("nan"), note=None)

        assert ensure_pee_attempt_after_water(document, water) is None
        assert document.out_attempts == []


class TestAcknowledge:

    def test_mark_done_logs_pee_attempt_once(self, document, ts):
        _log_water(document, "w1", ts("08:00"), ts("08:00"))

        event = mark_attempt_done(document, "out-w1", ts("09:25"))
        again = mark_attempt_done(document, "out-w1", ts("09:30"))

        assert event.type == EventType.PEE_ATTEMPT
        assert event.at == ts("09:25")
        assert again is None
        assert document.out_attempts[0].done is True
        assert [e.type for e in document.events] == [EventType.WATER, EventType.PEE_ATTEMPT]

    def test_mark_done_non_pee_reason_logs_nothing(self, document, ts):
        document.out_attempts.append(
            OutAttempt(id="meal-walk", at=ts("10:30"), reason=AttemptReason.MEAL)
        )

        assert mark_attempt_done(document, "meal-walk", ts("10:30")) is None
        assert document.out_attempts[0].done is True
        assert document.events == []

    def test_mark_unknown(self, document, ts):
        assert mark_attempt_done(document, "missing", ts("10:00")) is None

    def test_pending_and_delete(self, document, ts):
        document.out_attempts = [
            OutAttempt(id="b", at=ts("11:00"), reason=AttemptReason.PEE),
            OutAttempt(id="a", at=ts("10:00"), reason=AttemptReason.PEE),
            OutAttempt(id="done", at=ts("09:00"), reason=AttemptReason.PEE, done=True),
        ]

        assert [a.id for a in pending_attempts(document)] == ["a", "b"]
        assert delete_attempt(document, "a").id == "a"
        assert delete_attempt(document, "a") is None
        assert [a.id for a in pending_attempts(document)] == ["b"]
