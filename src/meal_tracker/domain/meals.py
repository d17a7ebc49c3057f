"""Domain models for meal logging."""

from dataclasses import dataclass, field
from uuid import UUID

from meal_tracker.domain.foods import MealPeriod, ResolvedFood


@dataclass(frozen=True)
class MealTotals:
    """Summed nutrition for a logged meal."""

    calories: int
    protein: float
    fat: float
    carbs: float


@dataclass(frozen=True)
class MealLogSummary:
    """Outcome of logging one inbound message."""

    meal_id: UUID | None
    meal_period: MealPeriod | str
    items: list[ResolvedFood] = field(default_factory=list)
    totals: MealTotals = MealTotals(0, 0.0, 0.0, 0.0)
