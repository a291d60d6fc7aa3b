"""
Map a Wit.ai /message response onto workout entries.

Exercise mentions become entries in order of first mention. Every other
entity (sets, reps, duration, distance, weight, attribute) attaches to the
exercise whose mention is closest in the text, or to the first exercise
when there is only one.
"""

from typing import Any

from liftlog.v1.workouts.schemas import WorkoutEntry

EXERCISE = "exercise:exercise"
ATTRIBUTE = "exercise:attribute"
SETS = "wit$number:implied_sets"
REPS = "wit$number:implied_reps"
DURATION = "wit$duration:duration"
DISTANCE = "wit$distance:distance"
WEIGHT = "wit$quantity:weight"

WORD_NUMBERS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
    "twenty": 20,
    "thirty": 30,
    "forty": 40,
    "fifty": 50,
    "sixty": 60,
    "seventy": 70,
    "eighty": 80,
    "ninety": 90,
    "hundred": 100,
}


def clean_text(text: str) -> str:
    return text.strip().strip(".,;:!?-").strip()


def parse_word_number(text: str) -> float | None:
    """'Five' -> 5. Whole words only, so 'seventeen' is not read as 'seven'."""
    for word in text.lower().replace("-", " ").split():
        if word in WORD_NUMBERS:
            return float(WORD_NUMBERS[word])
    return None


def numeric_value(value: Any) -> float | None:
    """Numbers, numeric strings, number words and {'value': n} dicts."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return parse_word_number(value)
    if isinstance(value, dict):
        return numeric_value(value.get("value"))
    return None


def _midpoint(entity: dict[str, Any]) -> int:
    return (int(entity.get("start", 0)) + int(entity.get("end", 0))) // 2


class _Mentions:
    """Exercise names plus the text positions where each was mentioned."""

    def __init__(self, exercise_entities: list[dict[str, Any]]):
        self.entries: dict[str, WorkoutEntry] = {}
        self.positions: list[tuple[int, str]] = []
        for entity in exercise_entities:
            name = clean_text(str(entity.get("body", "")))
            if not name:
                continue
            key = name.lower()
            if key not in self.entries:
                self.entries[key] = WorkoutEntry(exercise_name=name)
            self.positions.append((_midpoint(entity), key))

    def closest(self, entity: dict[str, Any]) -> WorkoutEntry:
        if len(self.entries) == 1:
            return next(iter(self.entries.values()))
        target = _midpoint(entity)
        _, key = min(self.positions, key=lambda position: abs(position[0] - target))
        return self.entries[key]


def entries_from_wit(response: dict[str, Any]) -> list[WorkoutEntry]:
    """Build workout entries from a Wit.ai message response."""
    entities: dict[str, list[dict[str, Any]]] = response.get("entities") or {}
    mentions = _Mentions(entities.get(EXERCISE, []))
    if not mentions.entries:
        return []

    for entity in entities.get(SETS, []):
        amount = numeric_value(entity.get("value"))
        if amount is not None:
            mentions.closest(entity).sets = amount

    for entity in entities.get(REPS, []):
        amount = numeric_value(entity.get("value"))
        if amount is not None:
            entry = mentions.closest(entity)
            entry.work = amount
            entry.work_type = "repetitions"
            entry.work_unit = "reps"

    for entity in entities.get(DURATION, []):
        # Wit normalizes durations to seconds
        amount = numeric_value(entity.get("normalized") or entity.get("value"))
        if amount is not None:
            entry = mentions.closest(entity)
            entry.work = amount
            entry.work_type = "duration"
            entry.work_unit = "seconds"

    for entity in entities.get(DISTANCE, []):
        amount = numeric_value(entity.get("value"))
        if amount is not None:
            entry = mentions.closest(entity)
            entry.work = amount
            entry.work_type = "distance"
            entry.work_unit = entity.get("unit")

    for entity in entities.get(WEIGHT, []):
        amount = numeric_value(entity.get("value"))
        if amount is not None:
            entry = mentions.closest(entity)
            entry.resistance = amount
            entry.resistance_type = "kg" if entity.get("unit") == "kilogram" else "pounds"

    for entity in entities.get(ATTRIBUTE, []):
        attribute = clean_text(str(entity.get("body", "")))
        if attribute:
            mentions.closest(entity).attributes.append(attribute)

    return list(mentions.entries.values())
