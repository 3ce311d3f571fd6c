"""
Training - session state machine and rolling "learned" classification.

States:
    IDLE -> RUNNING <-> PAUSED -> ENDED (pending result) -> RECORDED
                                  ENDED -> IDLE (cancel)

Only one session may run across all commands; the document's
active_session field is the "a session is running" flag. Elapsed time
accrues only while RUNNING and never touches the document. A session is
written to the command history only when its results are confirmed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from loguru import logger

from tracker.clock import new_id
from tracker.schemas import ActiveSession, Document, TrainingCommand, TrainingSession


# ---- Errors ----

class TrainingError(Exception):
    """A training transition was requested from the wrong state."""


class SessionAlreadyActiveError(TrainingError):
    pass


class NoActiveSessionError(TrainingError):
    pass


class NoPendingResultError(TrainingError):
    pass


class UnknownCommandError(TrainingError):
    pass


class Clock(Protocol):
    def now(self) -> int: ...


# ---- Pure helpers ----

def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


def clamp_results(attempts: Any, successes: Any) -> tuple[int, int, float]:
    """
    Normalize user-entered results.

    Returns:
        (attempts, successes, success_rate) with 0 <= successes <= attempts
        and success_rate 0 when there were no attempts
    """
    attempts = _non_negative_int(attempts)
    successes = min(_non_negative_int(successes), attempts)
    rate = successes / attempts if attempts > 0 else 0.0
    return attempts, successes, rate


def compute_learned(history: list[TrainingSession], window: int, threshold: float) -> bool:
    """
    Rolling mastery rule.

    Averages successRate over the last `window` sessions (fewer if the
    history is short); learned when the average reaches the threshold.
    Empty history is never learned.
    """
    last = history[-max(1, window):]
    if not last:
        return False
    average = sum(s.success_rate or 0.0 for s in last) / len(last)
    return average >= threshold


def find_command(document: Document, command_id: str) -> Optional[TrainingCommand]:
    return next((c for c in document.training_commands if c.id == command_id), None)


@dataclass(frozen=True)
class PendingResult:
    """An ended session awaiting attempts/successes input."""
    id: str
    command_id: str
    started_at: int
    ended_at: int
    seconds: int


def record_session(
    document: Document,
    pending: PendingResult,
    attempts: Any,
    successes: Any
) -> Optional[TrainingSession]:
    """
    Store a confirmed session on its command (modifies document in place).

    Appends to the history, adds the practice time and recomputes
    `learned` exactly once.

    Returns:
        The recorded session, or None if the command no longer exists
    """
    command = find_command(document, pending.command_id)
    if command is None:
        logger.warning("Command {} no longer exists, session {} dropped",
                       pending.command_id, pending.id)
        return None

    attempts, successes, rate = clamp_results(attempts, successes)
    session = TrainingSession(
        id=pending.id,
        command_id=pending.command_id,
        started_at=pending.started_at,
        ended_at=pending.ended_at,
        seconds=pending.seconds,
        attempts=attempts,
        successes=successes,
        success_rate=rate,
    )

    settings = document.settings
    command.session_history.append(session)
    command.total_seconds += session.seconds
    command.learned = compute_learned(
        command.session_history,
        settings.learned_window,
        settings.learned_threshold,
    )
    return session


# ---- Commands ----

def add_command(
    document: Document,
    name: str,
    command_id: Optional[str] = None
) -> Optional[TrainingCommand]:
    """Append a command; blank names are ignored."""
    name = (name or "").strip()
    if not name:
        return None
    command = TrainingCommand(id=command_id or new_id("cmd"), name=name)
    document.training_commands.append(command)
    return command


def move_command(document: Document, command_id: str, direction: int) -> bool:
    """
    Swap a command with its neighbor (-1 = up, +1 = down).

    Returns:
        True if the order changed; False at the boundaries or for unknown ids
    """
    commands = document.training_commands
    idx = next((i for i, c in enumerate(commands) if c.id == command_id), None)
    if idx is None:
        return False
    target = idx - 1 if direction < 0 else idx + 1
    if target < 0 or target >= len(commands):
        return False
    commands[idx], commands[target] = commands[target], commands[idx]
    return True


def move_up(document: Document, command_id: str) -> bool:
    return move_command(document, command_id, -1)


def move_down(document: Document, command_id: str) -> bool:
    return move_command(document, command_id, +1)


@dataclass(frozen=True)
class CommandSummary:
    """Display data for a command row."""
    id: str
    name: str
    learned: bool
    practice_minutes: int
    session_count: int
    last_minutes: Optional[int] = None
    last_percent: Optional[int] = None


def summarize_command(command: TrainingCommand) -> CommandSummary:
    last = command.session_history[-1] if command.session_history else None
    return CommandSummary(
        id=command.id,
        name=command.name,
        learned=command.learned,
        practice_minutes=round(command.total_seconds / 60),
        session_count=len(command.session_history),
        last_minutes=round((last.seconds or 0) / 60) if last else None,
        last_percent=round((last.success_rate or 0.0) * 100) if last else None,
    )


# ---- State machine ----

class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"
    RECORDED = "recorded"


class TrainingSessionMachine:
    """
    Drives one training session at a time against a document.

    The machine owns only UI-local state (timer and pending result); the
    running-session flag itself lives on the document.
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self.state = SessionState.IDLE
        self.pending: Optional[PendingResult] = None
        self.last_recorded: Optional[TrainingSession] = None
        self._accumulated_ms = 0
        self._running_since: Optional[int] = None

    # -- timer --

    @property
    def elapsed_seconds(self) -> int:
        elapsed = self._accumulated_ms
        if self._running_since is not None:
            elapsed += max(0, self.clock.now() - self._running_since)
        return int(elapsed // 1000)

    @property
    def is_running(self) -> bool:
        return self.state == SessionState.RUNNING

    def _reset_timer_state(self) -> None:
        self._accumulated_ms = 0
        self._running_since = None

    def reset_timer(self) -> None:
        """Zero the elapsed time without changing state."""
        self._accumulated_ms = 0
        if self._running_since is not None:
            self._running_since = self.clock.now()

    # -- transitions --

    def start(
        self,
        document: Document,
        command_id: str,
        session_id: Optional[str] = None
    ) -> ActiveSession:
        """
        IDLE -> RUNNING.

        Raises:
            SessionAlreadyActiveError: a session is running or awaiting results
            UnknownCommandError: no command has that id
        """
        if document.active_session is not None:
            raise SessionAlreadyActiveError(
                "A session is already active. End or pause it first."
            )
        if self.state == SessionState.ENDED:
            raise SessionAlreadyActiveError(
                "Save or cancel the previous session's results first."
            )
        if find_command(document, command_id) is None:
            raise UnknownCommandError(f"Unknown command: {command_id}")

        now = self.clock.now()
        active = ActiveSession(id=session_id or new_id("sess"), command_id=command_id, started_at=now)
        document.active_session = active

        self.pending = None
        self._accumulated_ms = 0
        self._running_since = now
        self.state = SessionState.RUNNING
        logger.debug("Training session {} started for {}", active.id, command_id)
        return active

    def pause(self) -> None:
        """RUNNING -> PAUSED. Timer only, no document change."""
        if self.state != SessionState.RUNNING:
            return
        self._accumulated_ms += max(0, self.clock.now() - self._running_since)
        self._running_since = None
        self.state = SessionState.PAUSED

    def resume(self) -> None:
        """PAUSED -> RUNNING."""
        if self.state != SessionState.PAUSED:
            return
        self._running_since = self.clock.now()
        self.state = SessionState.RUNNING

    def restore(self, document: Document) -> None:
        """
        Re-attach to a session persisted by an earlier run.

        The elapsed time of that run is unknown, so the session comes back
        PAUSED at zero.
        """
        if document.active_session is None:
            return
        if self.state in (SessionState.IDLE, SessionState.RECORDED):
            self._reset_timer_state()
            self.state = SessionState.PAUSED

    def end(self, document: Document) -> PendingResult:
        """
        RUNNING|PAUSED -> ENDED.

        Captures endedAt and elapsed seconds and clears the active session.
        Nothing is recorded yet.

        Raises:
            NoActiveSessionError: no session is active on the document
        """
        active = document.active_session
        if active is None:
            raise NoActiveSessionError("No training session is active.")

        seconds = self.elapsed_seconds
        self.pending = PendingResult(
            id=active.id,
            command_id=active.command_id,
            started_at=active.started_at,
            ended_at=self.clock.now(),
            seconds=seconds,
        )
        document.active_session = None
        self._reset_timer_state()
        self.state = SessionState.ENDED
        logger.debug("Training session {} ended after {}s", active.id, seconds)
        return self.pending

    def confirm(self, document: Document, attempts: Any, successes: Any) -> Optional[TrainingSession]:
        """
        ENDED -> RECORDED.

        Raises:
            NoPendingResultError: no ended session is awaiting results
        """
        if self.state != SessionState.ENDED or self.pending is None:
            raise NoPendingResultError("No ended session is awaiting results.")

        session = record_session(document, self.pending, attempts, successes)
        self.pending = None
        self.last_recorded = session
        self.state = SessionState.RECORDED
        return session

    def cancel(self) -> None:
        """ENDED -> IDLE, discarding the pending result."""
        if self.state != SessionState.ENDED:
            return
        self.pending = None
        self.state = SessionState.IDLE
