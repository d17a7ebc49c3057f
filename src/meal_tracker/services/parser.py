"""Meal parsing via LLMs and sanitization of parsed meals."""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from meal_tracker.domain.foods import (
    DEFAULT_UNIT,
    MAX_QUANTITY,
    MealParse,
    MealPeriod,
    ParsedFoodMention,
)
from meal_tracker.services.retry import RetryPolicy

_logger = logging.getLogger(__name__)

UNKNOWN_FOOD = "unknown"

SYSTEM_PROMPT = """You are a nutrition tracking assistant. Parse the user's message \
and extract meal details.

Return JSON only, no markdown or explanation, with this exact structure:
{
  "meal_time": "breakfast" | "lunch" | "snack" | "dinner",
  "foods": [
    {"name": "food name", "quantity": number, "unit": "n" | "cup" | "serving" | "g" \
| "ml" | "teaspoon" | etc}
  ]
}

Rules:
- Infer meal time from context (morning = breakfast, afternoon = lunch, \
evening = dinner). Default to "snack" if unclear.
- Normalize quantities: "a couple" = 2, "half" = 0.5, "one" = 1. Extract numbers \
from "2 chapatis", "1 cup sambar".
- Extract every food item separated by commas or "and". Ignore restaurant or \
place names; focus on food.
- Use "n" for countable items (eggs, chapatis), "cup" for cups, "serving" for \
servings, "g" for grams, "ml" for ml.
- If the message does not contain any food items (e.g. greeting, "hi", "thanks"), \
return {"meal_time": "snack", "foods": []}.
- Never invent food items that the user did not mention."""

_NON_FOOD_WORDS = frozenset(
    {
        "hi",
        "hello",
        "hey",
        "thanks",
        "thank you",
        "ok",
        "okay",
        "yes",
        "no",
        "lol",
        "cool",
        "nice",
        "k",
        "nope",
        "yep",
        "nah",
        "asdf",
        "asdfghjk",
        "test",
        "unknown",
        "other",
        "none",
        "idk",
        "idc",
        "wtf",
        "omg",
        "good morning",
        "good evening",
        "good afternoon",
        "good night",
        "bye",
        "goodbye",
        "see you",
    }
)
_MIN_FOOD_NAME_LENGTH = 2
_SHORT_WORD = re.compile(r"^[a-z]{1,2}$")


class LlmClient(Protocol):
    """Interface for chat-style LLM inference."""

    async def run(self, messages: list[dict[str, str]]) -> str:
        """Return the model's text response for the prompt messages."""


class MealParseError(ValueError):
    """Raised when an LLM response cannot be decoded into a meal."""


class _RawFood(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: object = None
    quantity: object = None
    unit: object = None


class _RawMeal(BaseModel):
    model_config = ConfigDict(extra="ignore")

    meal_time: object = None
    foods: list[_RawFood] | None = None


def empty_meal() -> MealParse:
    """Return the meal used when nothing could be extracted."""
    return MealParse(meal_period=MealPeriod.SNACK, foods=[])


@dataclass
class MealParser:
    """Extracts structured food mentions from free text."""

    client: LlmClient
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    system_prompt: str = SYSTEM_PROMPT

    async def parse(self, text: str) -> MealParse:
        """Parse a message into a meal; malformed model output yields no foods."""
        messages = [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": f"User message: {text}\n\nReturn JSON only:",
            },
        ]
        response = await self.retry.run(
            lambda: self.client.run(messages), action="llm:parse_meal"
        )
        content = (response or "").strip()
        if not content:
            return empty_meal()
        try:
            return decode_meal(content)
        except MealParseError as exc:
            _logger.warning("Meal parse failed: %s", exc)
            return empty_meal()


def decode_meal(content: str) -> MealParse:
    """Decode the JSON object embedded in an LLM response."""
    raw_json = extract_json(content)
    try:
        raw = _RawMeal.model_validate(json.loads(raw_json))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise MealParseError(str(exc)) from exc
    meal = MealParse(
        meal_period=str(raw.meal_time or MealPeriod.SNACK),
        foods=[
            ParsedFoodMention(
                name=food.name,  # type: ignore[arg-type]
                quantity=food.quantity,  # type: ignore[arg-type]
                unit=food.unit,  # type: ignore[arg-type]
            )
            for food in raw.foods or []
        ],
    )
    return validate_meal(meal)


def extract_json(text: str) -> str:
    """Return the first balanced ``{...}`` object in ``text``."""
    trimmed = text.strip()
    start = trimmed.find("{")
    while start != -1:
        end = _balanced_end(trimmed, start)
        if end is not None:
            return trimmed[start : end + 1]
        start = trimmed.find("{", start + 1)
    return trimmed


def _balanced_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def validate_meal(meal: MealParse) -> MealParse:
    """Sanitize a parsed meal.

    Unrecognized meal periods become ``snack``. Names are trimmed; missing,
    non-positive or out-of-range quantities become 1; missing units become
    ``serving``. Foods with an empty or ``unknown`` name are dropped.
    """
    foods: list[ParsedFoodMention] = []
    for food in meal.foods or []:
        name = _clean_text(getattr(food, "name", None))
        if not name or name.lower() == UNKNOWN_FOOD:
            continue
        foods.append(
            ParsedFoodMention(
                name=name,
                quantity=_coerce_quantity(getattr(food, "quantity", None)),
                unit=_clean_text(getattr(food, "unit", None)) or DEFAULT_UNIT,
            )
        )
    return MealParse(meal_period=_coerce_meal_period(meal.meal_period), foods=foods)


def is_plausible_food(name: str) -> bool:
    """Reject greetings, filler and other obvious non-food names."""
    cleaned = name.strip().lower()
    if len(cleaned) < _MIN_FOOD_NAME_LENGTH:
        return False
    if cleaned in _NON_FOOD_WORDS:
        return False
    if cleaned.isdigit():
        return False
    return not _SHORT_WORD.match(cleaned)


def _coerce_meal_period(value: object) -> MealPeriod:
    cleaned = _clean_text(value).lower()
    try:
        return MealPeriod(cleaned)
    except ValueError:
        return MealPeriod.SNACK


def _coerce_quantity(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 1.0
    try:
        quantity = float(value)
    except OverflowError:
        return 1.0
    if not math.isfinite(quantity) or not 0 < quantity <= MAX_QUANTITY:
        return 1.0
    return quantity


def _clean_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()
