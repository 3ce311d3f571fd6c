"""
Unit tests for the settings save action.
"""

import pytest

from tracker.constants import DEFAULT_LEARNED_WINDOW, DEFAULT_WATER_TO_OUT_MINUTES, SuggestionMethod
from tracker.settings import parse_meal_times, save_cloud_settings, save_settings


class TestSaveSettings:

    def test_values_applied(self, document):
        settings = save_settings(
            document,
            pee_suggestion_method="mean",
            learned_threshold="0.9",
            learned_window="5",
            water_to_out_minutes=30,
            meal_times="07:00, 12:00\n18:00",
        )

        assert settings.pee_suggestion_method == SuggestionMethod.MEAN
        assert settings.learned_threshold == 0.9
        assert settings.learned_window == 5
        assert settings.water_to_out_minutes == 30
        assert settings.meal_schedule.times == ["07:00", "12:00", "18:00"]

    def test_omitted_values_unchanged(self, document):
        save_settings(document, learned_window=4)

        assert document.settings.pee_suggestion_method == SuggestionMethod.MEDIAN
        assert document.settings.learned_window == 4
        assert len(document.settings.meal_schedule.times) == 5

    @pytest.mark.parametrize("value, expected", [
        ("abc", DEFAULT_LEARNED_WINDOW),
        (0, DEFAULT_LEARNED_WINDOW),
        (-3, 1),
    ])
    def test_window_clamping(self, document, value, expected):
        save_settings(document, learned_window=value)

        assert document.settings.learned_window == expected

    def test_invalid_threshold_keeps_current(self, document):
        save_settings(document, learned_threshold=0.6)
        save_settings(document, learned_threshold="abc")

        assert document.settings.learned_threshold == 0.6

    def test_threshold_clamped(self, document):
        save_settings(document, learned_threshold=3)

        assert document.settings.learned_threshold == 1.0

    def test_invalid_method_falls_back_to_median(self, document):
        save_settings(document, pee_suggestion_method="mean")
        save_settings(document, pee_suggestion_method="mode")

        assert document.settings.pee_suggestion_method == SuggestionMethod.MEDIAN

    def test_bad_water_minutes(self, document):
        save_settings(document, water_to_out_minutes="soon")

        assert document.settings.water_to_out_minutes == DEFAULT_WATER_TO_OUT_MINUTES

    def test_meal_list_input(self, document):
        save_settings(document, meal_times=["09:00", "bad", "09:00"])

        assert document.settings.meal_schedule.times == ["09:00"]


class TestCloudSettings:

    def test_trimmed(self, document):
        cloud = save_cloud_settings(document, True, "  mongodb://host ", " fam ")

        assert cloud.enabled is True
        assert cloud.url == "mongodb://host"
        assert cloud.family_id == "fam"
        assert document.settings.cloud == cloud


def test_parse_meal_times():
    assert parse_meal_times("06:00,,  10:30 \n 24:00, 6:15") == ["06:00", "10:30", "6:15"]
