"""Food mention and reference nutrition domain models."""

from dataclasses import dataclass, field
from enum import StrEnum

DEFAULT_UNIT = "serving"
# Upper bound for a single mention; larger quantities are treated as invalid.
MAX_QUANTITY = 10_000.0


class MealPeriod(StrEnum):
    """Meal period a message is logged against."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACK = "snack"
    DINNER = "dinner"


class ReferenceSource(StrEnum):
    """Origin of a reference nutrition row."""

    CURATED = "curated"
    LEARNED = "learned"


@dataclass(frozen=True)
class ParsedFoodMention:
    """One food item extracted from a user message."""

    name: str
    quantity: float
    unit: str = DEFAULT_UNIT


@dataclass(frozen=True)
class MealParse:
    """Structured meal extracted from a message."""

    meal_period: MealPeriod | str
    foods: list[ParsedFoodMention] = field(default_factory=list)


@dataclass(frozen=True)
class ReferenceFoodRow:
    """Nutrition facts for one base serving of a food."""

    name: str
    unit: str
    base_quantity: float
    calories: float
    protein: float
    fat: float
    carbs: float
    vitamins: str | None = None
    source: ReferenceSource = ReferenceSource.CURATED


@dataclass(frozen=True)
class NutritionFacts:
    """Base nutrition reported by an external lookup provider."""

    name: str
    base_quantity: float
    unit: str
    calories: float
    protein: float
    fat: float
    carbs: float


@dataclass(frozen=True)
class ResolvedFood:
    """Food mention with nutrition scaled to the requested quantity."""

    name: str
    quantity: float
    unit: str
    calories: int
    protein: float
    fat: float
    carbs: float
    estimated: bool = False
