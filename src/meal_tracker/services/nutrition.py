"""External nutrition lookups (FatSecret, USDA FDC) with caching."""

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from meal_tracker.adapters.fatsecret_client import FatSecretClient
from meal_tracker.adapters.fdc_client import FdcClient
from meal_tracker.domain.foods import DEFAULT_UNIT, NutritionFacts
from meal_tracker.services.cache import Cache
from meal_tracker.services.retry import RetryPolicy
from meal_tracker.services.semantic_index import normalize_name

_NUTRIENT_IDS = {
    "calories": 1008,
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,
}

_PER_PATTERN = re.compile(r"Per\s+([\d./]+)\s*([A-Za-z]+)\s*[-–]", re.IGNORECASE)
_CALORIES_PATTERN = re.compile(r"Calories:\s*([\d.]+)\s*kcal", re.IGNORECASE)
_FAT_PATTERN = re.compile(r"Fat:\s*([\d.]+)\s*g", re.IGNORECASE)
_CARBS_PATTERN = re.compile(r"Carbs:\s*([\d.]+)\s*g", re.IGNORECASE)
_PROTEIN_PATTERN = re.compile(r"Protein:\s*([\d.]+)\s*g", re.IGNORECASE)

_logger = logging.getLogger(__name__)


class NutritionProvider(Protocol):
    """Interface for an external nutrition database."""

    name: str

    async def search(self, food_name: str) -> NutritionFacts | None:
        """Return base nutrition for the best match, or None when not found."""


@dataclass
class FatSecretNutritionProvider(NutritionProvider):
    """Nutrition provider backed by the FatSecret platform API."""

    client: FatSecretClient
    name: str = "fatsecret"

    async def search(self, food_name: str) -> NutritionFacts | None:
        """Search FatSecret and parse the top result's description."""
        payload = await self.client.search_foods(food_name, max_results=1)
        foods = payload.get("foods") or {}
        food = foods.get("food") if isinstance(foods, dict) else None
        if isinstance(food, list):
            food = food[0] if food else None
        if not isinstance(food, dict):
            return None
        label = food.get("food_name")
        description = food.get("food_description")
        if not label or not description:
            return None
        parsed = parse_food_description(str(description))
        if parsed is None:
            return None
        return NutritionFacts(name=str(label), **parsed)


@dataclass
class FdcNutritionProvider(NutritionProvider):
    """Nutrition provider backed by USDA FoodData Central."""

    client: FdcClient
    name: str = "fdc"

    async def search(self, food_name: str) -> NutritionFacts | None:
        """Search FDC; macros are per 100 g unless a gram serving is reported."""
        payload = await self.client.search_foods(food_name, page_size=1)
        foods = payload.get("foods") or []
        if not isinstance(foods, list) or not foods:
            return None
        food = foods[0]
        macros = _extract_macros(food.get("foodNutrients") or [])
        serving_size = food.get("servingSize")
        serving_unit = str(food.get("servingSizeUnit") or "").lower()
        has_gram_serving = (
            isinstance(serving_size, int | float)
            and serving_size > 0
            and serving_unit in {"g", "grm"}
        )
        if has_gram_serving:
            factor = float(serving_size) / 100.0
            return NutritionFacts(
                name=str(food.get("description") or food_name),
                base_quantity=1.0,
                unit=DEFAULT_UNIT,
                calories=macros["calories"] * factor,
                protein=macros["protein"] * factor,
                fat=macros["fat"] * factor,
                carbs=macros["carbs"] * factor,
            )
        return NutritionFacts(
            name=str(food.get("description") or food_name),
            base_quantity=100.0,
            unit="g",
            calories=macros["calories"],
            protein=macros["protein"],
            fat=macros["fat"],
            carbs=macros["carbs"],
        )


@dataclass(frozen=True)
class NutritionLookup:
    """Lookup outcome; ``cached`` is set when served from the lookup cache."""

    facts: NutritionFacts | None
    cached: bool = False


@dataclass
class NutritionService:
    """Service for external nutrition lookups with caching."""

    provider: NutritionProvider | None
    cache: Cache
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ttl_seconds: int = 86400

    @property
    def provider_name(self) -> str | None:
        """Name of the configured provider, if any."""
        return self.provider.name if self.provider else None

    async def search(self, food_name: str) -> NutritionFacts | None:
        """Look up base nutrition for a food name.

        Raises when the provider keeps failing after retries; returns None when
        no provider is configured or nothing matched.
        """
        return (await self.lookup(food_name)).facts

    async def lookup(self, food_name: str) -> NutritionLookup:
        """Like :meth:`search`, but reports whether the cache answered."""
        if self.provider is None:
            return NutritionLookup(facts=None)
        provider = self.provider
        cache_key = f"nutrition:{provider.name}:{normalize_name(food_name)}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, NutritionFacts):
            return NutritionLookup(facts=cached, cached=True)

        facts = await self.retry.run(
            lambda: provider.search(food_name), action=f"{provider.name}:search"
        )
        if facts is not None:
            self.cache.set(cache_key, facts, ttl_seconds=self.ttl_seconds)
        _logger.info(
            "Nutrition lookup: provider=%s query=%s found=%s",
            provider.name,
            food_name,
            facts is not None,
        )
        return NutritionLookup(facts=facts)


def parse_food_description(description: str) -> dict[str, object] | None:
    """Parse a FatSecret ``food_description`` summary line.

    Example: ``"Per 100g - Calories: 22kcal | Fat: 0.34g | Carbs: 3.28g |
    Protein: 3.09g"``. Returns None when no calorie figure is present.
    """
    calories_match = _CALORIES_PATTERN.search(description)
    if calories_match is None:
        return None
    per_match = _PER_PATTERN.search(description)
    quantity = 1.0
    unit = DEFAULT_UNIT
    if per_match is not None:
        quantity = _parse_amount(per_match.group(1)) or 1.0
        unit = per_match.group(2).lower()
        if unit.endswith("s"):
            unit = unit[:-1]
        if unit == "gram":
            unit = "g"
    return {
        "base_quantity": quantity,
        "unit": unit,
        "calories": _match_float(calories_match),
        "protein": _match_float(_PROTEIN_PATTERN.search(description)),
        "fat": _match_float(_FAT_PATTERN.search(description)),
        "carbs": _match_float(_CARBS_PATTERN.search(description)),
    }


def _parse_amount(raw: str) -> float:
    if "/" in raw:
        numerator, _, denominator = raw.partition("/")
        try:
            return float(numerator) / float(denominator)
        except (ValueError, ZeroDivisionError):
            return 0.0
    try:
        return float(raw)
    except ValueError:
        return 0.0


def _match_float(match: re.Match[str] | None) -> float:
    if match is None:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def _extract_macros(food_nutrients: list[dict[str, object]]) -> dict[str, float]:
    """Extract calories, protein, fat, carbs from FDC nutrients."""
    values: dict[str, float] = {
        "calories": 0.0,
        "protein": 0.0,
        "fat": 0.0,
        "carbs": 0.0,
    }
    ids_to_keys = {nutrient_id: key for key, nutrient_id in _NUTRIENT_IDS.items()}
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("value", nutrient.get("amount"))
        key = ids_to_keys.get(nutrient_id)
        if key is not None and isinstance(amount, int | float):
            values[key] = float(amount)
    return values
