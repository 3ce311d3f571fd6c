"""
Unit tests for the document model and tolerant loading.

Tests:
- camelCase wire format
- Malformed entities dropped, malformed settings fall back to defaults
- Unreadable documents reset to defaults
"""

import json

import pytest
from pydantic import ValidationError

from tracker.constants import (
    AttemptReason,
    DEFAULT_LEARNED_THRESHOLD,
    DEFAULT_LEARNED_WINDOW,
    DEFAULT_MEAL_TIMES,
    EventType,
    SuggestionMethod,
)
from tracker.schemas import (
    Event,
    MealSchedule,
    OutAttempt,
    Settings,
    document_from_dict,
    document_from_json,
    document_to_dict,
    document_to_json,
)


class TestWireFormat:

    def test_top_level_keys_are_camel_case(self, document):
        raw = document_to_dict(document)

        assert set(raw) == {"events", "outAttempts", "trainingCommands", "settings", "activeSession"}
        assert "mealSchedule" in raw["settings"]
        assert "peeSuggestionMethod" in raw["settings"]
        assert raw["activeSession"] is None

    def test_json_stores_enum_values(self, document):
        raw = json.loads(document_to_json(document))

        assert raw["settings"]["peeSuggestionMethod"] == "median"
        assert [c["name"] for c in raw["trainingCommands"]] == ["Sit", "Down"]


class TestTolerantLoading:

    def test_malformed_events_dropped(self):
        document = document_from_dict({
            "events": [
                {"id": "ok", "type": "pee", "at": 1760000000000},
                {"id": "bad-type", "type": "bark", "at": 1760000000000},
                {"id": "no-time", "type": "pee"},
                "junk",
            ],
            "outAttempts": [
                {"id": "o1", "at": 1760000000000.4, "reason": "pee", "sourceEventId": "ok"},
                {"id": "o2", "at": "later", "reason": "pee"},
            ],
        })

        assert [e.id for e in document.events] == ["ok"]
        assert document.events[0].type == EventType.PEE
        assert [a.id for a in document.out_attempts] == ["o1"]
        assert document.out_attempts[0].at == 1760000000000
        assert document.out_attempts[0].source_event_id == "ok"

    def test_out_of_calendar_timestamps_dropped(self):
        document = document_from_dict({
            "events": [
                {"id": "far", "type": "pee", "at": 10**17},
                {"id": "ok", "type": "pee", "at": 1760000000000},
            ],
            "outAttempts": [{"id": "o-far", "at": -(10**17), "reason": "pee"}],
        })

        assert [e.id for e in document.events] == ["ok"]
        assert document.out_attempts == []

    def test_event_rejects_out_of_calendar_timestamp(self):
        with pytest.raises(ValidationError):
            Event(id="p", type=EventType.PEE, at=10**17)
        with pytest.raises(ValidationError):
            OutAttempt(id="o", at=10**17, reason=AttemptReason.PEE)

    def test_bad_settings_values_use_defaults(self):
        document = document_from_dict({
            "settings": {
                "peeSuggestionMethod": "mode",
                "learnedThreshold": "high",
                "learnedWindow": 0,
                "mealSchedule": {"times": ["07:00", "25:00", "07:00", 8]},
            }
        })
        settings = document.settings

        assert settings.pee_suggestion_method == SuggestionMethod.MEDIAN
        assert settings.learned_threshold == DEFAULT_LEARNED_THRESHOLD
        assert settings.learned_window == 1
        assert settings.meal_schedule.times == ["07:00"]

    def test_threshold_clamped(self):
        assert Settings(learned_threshold=1.7).learned_threshold == 1.0
        assert Settings(learned_threshold=-0.2).learned_threshold == 0.0

    def test_non_list_meal_times_fall_back(self):
        assert MealSchedule(times="06:00").times == DEFAULT_MEAL_TIMES

    def test_settings_not_a_mapping(self):
        document = document_from_dict({"settings": "nope"})

        assert document.settings.learned_window == DEFAULT_LEARNED_WINDOW

    def test_bad_active_session_is_cleared(self):
        document = document_from_dict({"activeSession": {"id": "s1"}})

        assert document.active_session is None

    def test_missing_commands_get_defaults(self):
        assert [c.name for c in document_from_dict({}).training_commands] == ["Sit", "Down"]

    def test_unreadable_input_resets(self):
        assert document_from_json("{not json").events == []
        assert document_from_json(None).settings.learned_window == DEFAULT_LEARNED_WINDOW
        assert document_from_dict(["not", "a", "dict"]).events == []

    def test_unknown_keys_ignored(self):
        document = document_from_dict({"events": [], "legacyField": 1})

        assert document.events == []
