"""
Extractors that turn a free-text workout log into workout entries.

- WitExtractor: Wit.ai /message entity recognition over HTTP
- LLMExtractor: OpenAI chat completion in JSON mode
- RulesExtractor: offline regex rules for development and tests
"""

import re
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import ExtractionError
from liftlog.v1.workouts.postprocessor import entries_from_wit, numeric_value
from liftlog.v1.workouts.schemas import WorkoutEntry

logger = get_logger(__name__)


class WitExtractor:
    """Sends the message to Wit.ai and maps the returned entities."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "WitExtractor":
        if not settings.wit_token:
            raise ValueError("WIT_TOKEN is required for the wit extractor")
        return cls(settings.wit_url, settings.wit_token, settings.wit_timeout_s)

    async def extract(self, text: str) -> list[WorkoutEntry]:
        try:
            response = await self.client.get("message", params={"q": text})
            response.raise_for_status()
            payload: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"Wit.ai returned {e.response.status_code}",
                details={"body": e.response.text[:500]},
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionError(f"Wit.ai request failed: {e}") from e
        except ValueError as e:
            raise ExtractionError(f"Wit.ai returned invalid JSON: {e}") from e

        entries = entries_from_wit(payload)
        logger.debug("Wit.ai extraction", entry_count=len(entries))
        return entries

    async def aclose(self) -> None:
        await self.client.aclose()


LLM_PROMPT = """\
You are a workout analyzer that extracts structured exercises from a \
free-text workout log.

Return ONLY a JSON object of the form {"response": [exercise, ...]} where \
each exercise has these fields:
- exercise_name: name of the exercise (required)
- type: strength, cardio, flexibility, etc.
- sets: number of sets
- work: amount of work per set (reps, seconds or distance)
- work_type: one of "repetitions", "duration", "distance"
- work_unit: unit of work, e.g. "reps", "seconds", "km", "miles"
- resistance: load amount
- resistance_type: one of "pounds", "kg"
- duration: total duration in minutes
- attributes: list of short tags, e.g. ["paused", "warmup"]

Rules:
1. Only fill fields that are explicitly mentioned. Use null for other fields
   and [] for attributes.
2. Return an empty array if no exercises are detected.
3. Convert spelled-out numbers to digits (thirty -> 30).
4. Keep exercises in the order they appear in the message.
"""


class LLMResponse(BaseModel):
    response: list[WorkoutEntry]


class LLMExtractor:
    """Asks an OpenAI chat model for the entries in JSON mode."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4.1-nano",
        base_url: str | None = None,
        timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.model = model
        # Failed attempts are retried by the job queue, not the client
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_s,
            max_retries=0,
            http_client=http_client,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMExtractor":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the llm extractor")
        return cls(
            settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout_s=settings.openai_timeout_s,
        )

    async def extract(self, text: str) -> list[WorkoutEntry]:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": LLM_PROMPT},
                    {"role": "user", "content": text},
                ],
            )
        except openai.APIStatusError as e:
            raise ExtractionError(
                f"OpenAI returned {e.status_code}",
                details={"body": str(e.body)[:500]},
            ) from e
        except openai.APIError as e:
            raise ExtractionError(f"OpenAI request failed: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise ExtractionError("OpenAI returned an empty completion")
        content = completion.choices[0].message.content

        try:
            entries = LLMResponse.model_validate_json(content).response
        except PydanticValidationError as e:
            raise ExtractionError(
                "OpenAI returned entries that do not match the workout schema",
                details={"content": content[:500], "error_count": e.error_count()},
            ) from e

        logger.debug("LLM extraction", model=self.model, entry_count=len(entries))
        return entries

    async def aclose(self) -> None:
        await self.client.close()


CLAUSE_SPLIT = re.compile(r"[,;\n]+|\bthen\b", re.IGNORECASE)
NUMBER = r"\d+(?:\.\d+)?"
WORD = r"[a-z]+"

WEIGHT = re.compile(
    rf"(?:@|\bat\b|\bwith\b)?\s*(?P<amount>{NUMBER})\s*"
    r"(?P<unit>lbs?|pounds?|kgs?|kilos?|kilograms?)\b",
    re.IGNORECASE,
)
DURATION = re.compile(
    rf"(?:\bfor\b)?\s*(?P<amount>{NUMBER})\s*"
    r"(?P<unit>seconds?|secs?|minutes?|mins?|hours?|hrs?)\b",
    re.IGNORECASE,
)
DISTANCE = re.compile(
    rf"(?P<amount>{NUMBER})\s*"
    r"(?P<unit>km|kilometers?|kilometres?|mi|miles?|meters?|metres?|m)\b",
    re.IGNORECASE,
)
SETS_X_REPS = re.compile(rf"(?P<sets>\d+)\s*[x×]\s*(?P<reps>\d+)", re.IGNORECASE)
SETS_OF_REPS = re.compile(
    rf"(?P<sets>\d+|{WORD})\s+sets?\s+of\s+(?P<reps>\d+|{WORD})(?:\s+reps?)?",
    re.IGNORECASE,
)
REPS_ONLY = re.compile(rf"(?P<reps>\d+|{WORD})\s+reps?\b", re.IGNORECASE)
SETS_ONLY = re.compile(rf"(?P<sets>\d+|{WORD})\s+sets?\b", re.IGNORECASE)

FILLER = re.compile(
    r"\b(i|did|do|done|of|for|at|with|a|an|the|some|sets?|reps?|x)\b",
    re.IGNORECASE,
)
ATTRIBUTE_WORDS = ("warmup", "superset", "dropset", "paused", "tempo", "failure")

SECONDS_PER_UNIT = {"s": 1, "m": 60, "h": 3600}
PAST_TENSE = {
    "ran": "run",
    "jogged": "jog",
    "swam": "swim",
    "rowed": "row",
    "biked": "bike",
    "cycled": "cycle",
    "walked": "walk",
    "hiked": "hike",
}


def _distance_unit(unit: str) -> str:
    unit = unit.lower()
    if unit.startswith("k"):
        return "km"
    if unit.startswith("mi"):
        return "mi"
    return "m"


class RulesExtractor:
    """Regex extractor for messages like '3x10 squat at 135 lbs, ran 5 km'."""

    async def extract(self, text: str) -> list[WorkoutEntry]:
        entries = []
        for clause in CLAUSE_SPLIT.split(text):
            entry = self.parse_clause(clause)
            if entry is not None:
                entries.append(entry)
        return entries

    def parse_clause(self, clause: str) -> WorkoutEntry | None:
        fields: dict[str, Any] = {}
        rest = clause

        match = WEIGHT.search(rest)
        if match:
            unit = match["unit"].lower()
            fields["resistance"] = float(match["amount"])
            fields["resistance_type"] = "kg" if unit.startswith("k") else "pounds"
            rest = _cut(rest, match)

        match = DURATION.search(rest)
        if match:
            seconds = float(match["amount"]) * SECONDS_PER_UNIT[match["unit"][0].lower()]
            fields.update(work=seconds, work_type="duration", work_unit="seconds")
            rest = _cut(rest, match)

        match = DISTANCE.search(rest)
        if match and "work" not in fields:
            fields.update(
                work=float(match["amount"]),
                work_type="distance",
                work_unit=_distance_unit(match["unit"]),
            )
            rest = _cut(rest, match)

        for pattern in (SETS_X_REPS, SETS_OF_REPS, REPS_ONLY, SETS_ONLY):
            match = pattern.search(rest)
            if not match:
                continue
            amounts = {key: numeric_value(value) for key, value in match.groupdict().items()}
            if None in amounts.values():
                continue
            sets = amounts.get("sets")
            reps = amounts.get("reps")
            if sets is not None:
                fields.setdefault("sets", sets)
            if reps is not None and "work" not in fields:
                fields.update(work=reps, work_type="repetitions", work_unit="reps")
            rest = _cut(rest, match)

        attributes = [word for word in ATTRIBUTE_WORDS if word in rest.lower()]
        for word in attributes:
            rest = re.sub(word, " ", rest, flags=re.IGNORECASE)

        name = _exercise_name(rest)
        if not name:
            return None
        return WorkoutEntry(exercise_name=name, attributes=attributes, **fields)


def _cut(text: str, match: re.Match) -> str:
    return text[: match.start()] + " " + text[match.end() :]


def _exercise_name(text: str) -> str:
    text = FILLER.sub(" ", text)
    words = re.findall(r"[a-zA-Z][a-zA-Z'\-]*", text)
    words = [PAST_TENSE.get(word.lower(), word) for word in words]
    return " ".join(words).strip().lower()
