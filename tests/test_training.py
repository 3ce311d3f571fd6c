"""
Unit tests for training.

Tests:
- Result clamping and the rolling learned rule
- Command add/reorder
- Session state machine transitions and timer
"""

import pytest

from tracker.constants import MINUTE_MS
from tracker.schemas import ActiveSession, TrainingSession
from tracker.training import (
    NoActiveSessionError,
    NoPendingResultError,
    SessionAlreadyActiveError,
    SessionState,
    TrainingSessionMachine,
    UnknownCommandError,
    add_command,
    clamp_results,
    compute_learned,
    move_down,
    move_up,
    summarize_command,
)


def _session(rate, idx=0):
    return TrainingSession(id=f"s{idx}", command_id="c", started_at=0, success_rate=rate)


@pytest.fixture
def machine(clock):
    return TrainingSessionMachine(clock)


@pytest.fixture
def sit(document):
    return document.training_commands[0]


class TestClampResults:

    def test_successes_capped_at_attempts(self):
        assert clamp_results(3, 10) == (3, 3, 1.0)

    def test_rate(self):
        assert clamp_results(4, 1) == (4, 1, 0.25)

    def test_zero_attempts(self):
        assert clamp_results(0, 5) == (0, 0, 0.0)

    def test_junk_input(self):
        assert clamp_results(-2, "many") == (0, 0, 0.0)
        assert clamp_results("5", 2.7) == (5, 2, 0.4)


class TestComputeLearned:

    def test_empty_history_not_learned(self):
        assert compute_learned([], 3, 0.75) is False

    def test_boundary_equality_is_learned(self):
        history = [_session(1.0, 1), _session(0.5, 2)]
        assert compute_learned(history, 2, 0.75) is True

    def test_only_last_window_counts(self):
        history = [_session(0.0, 1), _session(1.0, 2), _session(1.0, 3)]
        assert compute_learned(history, 2, 0.75) is True
        assert compute_learned(history, 3, 0.75) is False

    def test_short_history_uses_all(self):
        assert compute_learned([_session(0.8)], 3, 0.75) is True


class TestCommands:

    def test_default_commands(self, document):
        assert [c.name for c in document.training_commands] == ["Sit", "Down"]

    def test_add_trims_and_ignores_blank(self, document):
        command = add_command(document, "  Leave it ")

        assert command.name == "Leave it"
        assert add_command(document, "   ") is None
        assert len(document.training_commands) == 3

    def test_move_swaps_neighbors(self, document):
        sit, down = document.training_commands

        assert move_up(document, sit.id) is False
        assert move_down(document, down.id) is False
        assert move_down(document, sit.id) is True
        assert [c.name for c in document.training_commands] == ["Down", "Sit"]
        assert move_up(document, "missing") is False


class TestSessionMachine:

    def test_start_sets_active_session(self, machine, document, sit, now):
        active = machine.start(document, sit.id)

        assert document.active_session == active
        assert active.command_id == sit.id
        assert active.started_at == now
        assert machine.state == SessionState.RUNNING

    def test_second_start_rejected(self, machine, document, sit):
        active = machine.start(document, sit.id)
        down = document.training_commands[1]

        with pytest.raises(SessionAlreadyActiveError):
            machine.start(document, down.id)
        assert document.active_session == active

    def test_unknown_command(self, machine, document):
        with pytest.raises(UnknownCommandError):
            machine.start(document, "missing")
        assert document.active_session is None

    def test_elapsed_counts_only_running_time(self, machine, document, sit, clock):
        machine.start(document, sit.id)
        clock.advance(30_000)
        machine.pause()
        clock.advance(5 * MINUTE_MS)
        assert machine.elapsed_seconds == 30

        machine.resume()
        clock.advance(15_000)
        assert machine.elapsed_seconds == 45

    def test_end_then_confirm_records_once(self, machine, document, sit, clock, now):
        machine.start(document, sit.id)
        clock.advance(2 * MINUTE_MS)

        pending = machine.end(document)
        assert document.active_session is None
        assert sit.session_history == []
        assert pending.seconds == 120
        assert pending.ended_at == now + 2 * MINUTE_MS

        session = machine.confirm(document, 4, 3)
        assert machine.state == SessionState.RECORDED
        assert sit.session_history == [session]
        assert sit.total_seconds == 120
        assert session.success_rate == 0.75
        assert sit.learned is True

        with pytest.raises(NoPendingResultError):
            machine.confirm(document, 4, 3)
        assert len(sit.session_history) == 1

    def test_cancel_discards(self, machine, document, sit):
        machine.start(document, sit.id)
        machine.end(document)
        machine.cancel()

        assert machine.state == SessionState.IDLE
        assert sit.session_history == []

    def test_start_blocked_while_result_pending(self, machine, document, sit):
        machine.start(document, sit.id)
        machine.end(document)

        with pytest.raises(SessionAlreadyActiveError):
            machine.start(document, sit.id)

    def test_end_without_session(self, machine, document):
        with pytest.raises(NoActiveSessionError):
            machine.end(document)

    def test_confirm_for_deleted_command(self, machine, document, sit):
        machine.start(document, sit.id)
        machine.end(document)
        document.training_commands = document.training_commands[1:]

        assert machine.confirm(document, 2, 2) is None
        assert machine.state == SessionState.RECORDED

    def test_restore_comes_back_paused(self, machine, document, sit, clock):
        document.active_session = ActiveSession(id="sess-1", command_id=sit.id, started_at=0)

        machine.restore(document)
        clock.advance(60_000)

        assert machine.state == SessionState.PAUSED
        assert machine.elapsed_seconds == 0
        pending = machine.end(document)
        assert pending.id == "sess-1"

    def test_summary(self, machine, document, sit, clock):
        machine.start(document, sit.id)
        clock.advance(3 * MINUTE_MS)
        machine.end(document)
        machine.confirm(document, 5, 4)

        summary = summarize_command(sit)
        assert summary.practice_minutes == 3
        assert summary.last_minutes == 3
        assert summary.last_percent == 80
        assert summary.session_count == 1

    def test_reset_timer_keeps_running(self, machine, document, sit, clock):
        machine.start(document, sit.id)
        clock.advance(40_000)

        machine.reset_timer()
        clock.advance(5_000)

        assert machine.is_running is True
        assert machine.elapsed_seconds == 5
