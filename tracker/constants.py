"""
Tracker Constants

Event types, reminder reasons, display labels and domain constants in one place.
"""

from enum import Enum


# ---- Event Types ----

class EventType(str, Enum):
    """Kinds of occurrences recorded in the event log."""
    PEE = "pee"
    POOP = "poop"
    SLEEP = "sleep"
    FOOD = "food"
    WATER = "water"
    TRAINING = "training"
    PEE_ATTEMPT = "pee_attempt"


class AttemptReason(str, Enum):
    """Why an out attempt was scheduled."""
    MEAL = "meal"
    WATER = "water"
    SUGGESTED = "suggested"
    PEE = "pee"


class SuggestionMethod(str, Enum):
    """Central tendency used for the next-pee suggestion."""
    MEDIAN = "median"
    MEAN = "mean"


# ---- Time ----

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# A pee attempt is due 1h20m after the first water since the last pee
PEE_ATTEMPT_DELAY_MS = 80 * MINUTE_MS


# ---- Display ----

TYPE_ICON = {
    EventType.PEE: "🐕💦",
    EventType.POOP: "💩",
    EventType.SLEEP: "😴",
    EventType.FOOD: "🍽️",
    EventType.WATER: "💧",
    EventType.TRAINING: "🎓",
    EventType.PEE_ATTEMPT: "🚽",
}

TYPE_LABEL = {
    EventType.PEE: "Pee",
    EventType.POOP: "Poop",
    EventType.SLEEP: "Sleep",
    EventType.FOOD: "Meal",
    EventType.WATER: "Water",
    EventType.TRAINING: "Training",
    EventType.PEE_ATTEMPT: "Pee attempt",
}

EXPORT_HEADER = "Rue — Daily Log Export"


# ---- Defaults ----

DEFAULT_WATER_TO_OUT_MINUTES = 25  # Legacy knob, kept for completeness
DEFAULT_SUGGESTION_METHOD = SuggestionMethod.MEDIAN
DEFAULT_LEARNED_THRESHOLD = 0.75   # successRate average needed for "learned"
DEFAULT_LEARNED_WINDOW = 3         # Rolling window of sessions
DEFAULT_MEAL_TIMES = ["06:00", "10:00", "14:00", "17:00", "20:00"]
DEFAULT_COMMAND_NAMES = ["Sit", "Down"]
