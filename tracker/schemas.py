"""
Pydantic models for the tracker document.

The whole application state is one JSON-serializable document with the
top-level keys events, outAttempts, trainingCommands, settings and
activeSession. Keys are camelCase on the wire and snake_case in Python.

Loading is tolerant: malformed entities are dropped, malformed settings
values fall back to their defaults, and an unreadable document resets to
defaults instead of failing.
"""

from __future__ import annotations

import json
import math
from typing import Any, Optional

from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from tracker.clock import new_id
from tracker.constants import (
    AttemptReason,
    DEFAULT_COMMAND_NAMES,
    DEFAULT_LEARNED_THRESHOLD,
    DEFAULT_LEARNED_WINDOW,
    DEFAULT_MEAL_TIMES,
    DEFAULT_SUGGESTION_METHOD,
    DEFAULT_WATER_TO_OUT_MINUTES,
    EventType,
    SuggestionMethod,
)
from tracker.time_utils import is_finite_ts, parse_hhmm


class TrackerModel(BaseModel):
    """Base model: camelCase aliases, unknown keys ignored."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _round_finite(value: Any) -> Any:
    """Accept float timestamps by rounding; NaN/inf are left to fail validation."""
    if isinstance(value, float) and math.isfinite(value):
        return int(round(value))
    return value


def _check_calendar_ts(value: int) -> int:
    if not is_finite_ts(value):
        raise ValueError("timestamp outside the supported calendar range")
    return value


def keep_valid(items: Any, model: type[BaseModel]) -> list:
    """Validate items one by one, dropping the malformed ones."""
    if not isinstance(items, list):
        return []
    kept = []
    for item in items:
        if isinstance(item, model):
            kept.append(item)
            continue
        try:
            kept.append(model.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed {}: {!r}", model.__name__, item)
    return kept


# ---- Event Log ----

class Event(TrackerModel):
    """A timestamped occurrence. Only `at` may change after creation."""
    id: str
    type: EventType
    at: int  # ms epoch
    note: Optional[str] = None

    @field_validator("at", mode="before")
    @classmethod
    def round_at(cls, value: Any) -> Any:
        return _round_finite(value)

    @field_validator("at")
    @classmethod
    def calendar_range(cls, value: int) -> int:
        return _check_calendar_ts(value)


class OutAttempt(TrackerModel):
    """A scheduled reminder to take the dog out."""
    id: str
    at: int
    reason: AttemptReason
    source_event_id: Optional[str] = None
    done: bool = False

    @field_validator("at", mode="before")
    @classmethod
    def round_at(cls, value: Any) -> Any:
        return _round_finite(value)

    @field_validator("at")
    @classmethod
    def calendar_range(cls, value: int) -> int:
        return _check_calendar_ts(value)


# ---- Training ----

class TrainingSession(TrackerModel):
    """A recorded practice session. Immutable once stored."""
    id: str
    command_id: str
    started_at: int
    ended_at: Optional[int] = None
    seconds: int = 0
    attempts: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class TrainingCommand(TrackerModel):
    """A trained behavior. `learned` is derived, never set by the user."""
    id: str
    name: str
    total_seconds: int = 0
    learned: bool = False
    session_history: list[TrainingSession] = Field(default_factory=list)

    @field_validator("session_history", mode="before")
    @classmethod
    def drop_malformed_sessions(cls, value: Any) -> list:
        return keep_valid(value, TrainingSession)


class ActiveSession(TrackerModel):
    """The single in-progress training session, if any."""
    id: str
    command_id: str
    started_at: int


# ---- Settings ----

class MealSchedule(TrackerModel):
    times: list[str] = Field(default_factory=lambda: list(DEFAULT_MEAL_TIMES))

    @field_validator("times", mode="before")
    @classmethod
    def keep_hhmm(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return list(DEFAULT_MEAL_TIMES)
        times: list[str] = []
        for item in value:
            if not isinstance(item, str) or parse_hhmm(item) is None:
                continue
            item = item.strip()
            if item not in times:
                times.append(item)
        return times


class CloudSettings(TrackerModel):
    """Remote replica credentials. Local-only, never synced."""
    enabled: bool = False
    url: str = ""
    family_id: str = ""


class Settings(TrackerModel):
    """Process-wide configuration, changed only through the save action."""
    water_to_out_minutes: int = DEFAULT_WATER_TO_OUT_MINUTES
    pee_suggestion_method: SuggestionMethod = DEFAULT_SUGGESTION_METHOD
    learned_threshold: float = DEFAULT_LEARNED_THRESHOLD
    learned_window: int = DEFAULT_LEARNED_WINDOW
    meal_schedule: MealSchedule = Field(default_factory=MealSchedule)
    cloud: CloudSettings = Field(default_factory=CloudSettings)

    @field_validator("*", mode="wrap")
    @classmethod
    def fallback_to_default(cls, value: Any, handler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            logger.debug("Invalid setting {}={!r}, using default", info.field_name, value)
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)

    @field_validator("learned_threshold")
    @classmethod
    def clamp_threshold(cls, value: float) -> float:
        if not math.isfinite(value):
            return DEFAULT_LEARNED_THRESHOLD
        return min(1.0, max(0.0, value))

    @field_validator("learned_window", "water_to_out_minutes")
    @classmethod
    def at_least_one(cls, value: int) -> int:
        return max(1, value)


# ---- Document ----

def default_commands() -> list[TrainingCommand]:
    return [TrainingCommand(id=new_id("cmd"), name=name) for name in DEFAULT_COMMAND_NAMES]


class Document(TrackerModel):
    """Complete application state, persisted and synced as one unit."""
    events: list[Event] = Field(default_factory=list)
    out_attempts: list[OutAttempt] = Field(default_factory=list)
    training_commands: list[TrainingCommand] = Field(default_factory=default_commands)
    settings: Settings = Field(default_factory=Settings)
    active_session: Optional[ActiveSession] = None

    @field_validator("events", mode="before")
    @classmethod
    def drop_malformed_events(cls, value: Any) -> list:
        return keep_valid(value, Event)

    @field_validator("out_attempts", mode="before")
    @classmethod
    def drop_malformed_attempts(cls, value: Any) -> list:
        return keep_valid(value, OutAttempt)

    @field_validator("training_commands", mode="before")
    @classmethod
    def drop_malformed_commands(cls, value: Any) -> list:
        return keep_valid(value, TrainingCommand)

    @field_validator("settings", mode="before")
    @classmethod
    def settings_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, Settings)) else {}

    @field_validator("active_session", mode="wrap")
    @classmethod
    def active_session_or_none(cls, value: Any, handler) -> Optional[ActiveSession]:
        try:
            return handler(value)
        except ValidationError:
            return None


def default_document() -> Document:
    return Document()


def document_from_dict(raw: Any) -> Document:
    """Build a document from loaded JSON data, falling back to defaults."""
    if not isinstance(raw, dict):
        return default_document()
    try:
        return Document.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Stored document is invalid, resetting to defaults: {}", exc)
        return default_document()


def document_from_json(text: Optional[str]) -> Document:
    if not text:
        return default_document()
    try:
        raw = json.loads(text)
    except ValueError:
        logger.warning("Stored document is not valid JSON, resetting to defaults")
        return default_document()
    return document_from_dict(raw)


def document_to_dict(document: Document) -> dict:
    return document.model_dump(mode="json", by_alias=True)


def document_to_json(document: Document) -> str:
    return json.dumps(document_to_dict(document), ensure_ascii=False)
