"""Meal logging pipeline: parse, resolve, persist and reply."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from meal_tracker.domain.foods import MealPeriod, ResolvedFood
from meal_tracker.domain.meals import MealLogSummary, MealTotals
from meal_tracker.services.background import BackgroundRunner
from meal_tracker.services.parser import MealParser, is_plausible_food, validate_meal
from meal_tracker.services.resolver import FoodResolver, round_macro
from meal_tracker.services.retry import RetryPolicy, as_async

NOT_UNDERSTOOD_REPLY = "I didn't understand that. Try: 2 eggs for breakfast"
FAILURE_REPLY = "Something went wrong; try again."

_logger = logging.getLogger(__name__)


class MealLogRepository(Protocol):
    """Persistence interface for meal logs."""

    def create_meal_log(
        self,
        logged_on: date,
        meal_period: str,
        totals: MealTotals,
        items: list[ResolvedFood],
    ) -> UUID:
        """Persist a meal with its items and return the meal id."""


class ReplyClient(Protocol):
    """Interface for delivering a reply to the message sender."""

    async def send(self, reply_url: str, text: str) -> None:
        """Deliver ``text`` to ``reply_url``."""


@dataclass
class MealLogService:
    """Turns a free-text meal description into a persisted, resolved meal."""

    parser: MealParser
    resolver: FoodResolver
    repository: MealLogRepository
    reply_client: ReplyClient
    runner: BackgroundRunner
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    async def log_meal(self, text: str) -> MealLogSummary:
        """Parse and resolve a meal, persisting it when any food resolved.

        Mentions are resolved one after another; unresolved mentions are
        dropped. Dependency failures propagate.
        """
        meal = validate_meal(await self.parser.parse(text))
        mentions = [food for food in meal.foods if is_plausible_food(food.name)]
        items: list[ResolvedFood] = []
        for mention in mentions:
            resolved = await self.resolver.resolve(mention)
            if resolved is not None:
                items.append(resolved)
        if not items:
            return MealLogSummary(meal_id=None, meal_period=meal.meal_period)

        totals = sum_totals(items)
        meal_id = await self.retry.run(
            as_async(
                lambda: self.repository.create_meal_log(
                    logged_on=datetime.now(tz=UTC).date(),
                    meal_period=str(meal.meal_period),
                    totals=totals,
                    items=items,
                )
            ),
            action="meal_log:create",
        )
        _logger.info(
            "Meal logged: meal_id=%s period=%s items=%s calories=%s",
            meal_id,
            meal.meal_period,
            len(items),
            totals.calories,
        )
        return MealLogSummary(
            meal_id=meal_id, meal_period=meal.meal_period, items=items, totals=totals
        )

    async def process_message(self, text: str, reply_url: str | None = None) -> None:
        """Log a meal and reply with the outcome; never raises."""
        try:
            summary = await self.log_meal(text)
        except Exception:
            _logger.exception("Meal pipeline failed")
            await self._reply(reply_url, FAILURE_REPLY)
            return
        if not summary.items:
            await self._reply(reply_url, NOT_UNDERSTOOD_REPLY)
            return
        await self._reply(reply_url, format_confirmation(summary))

    def submit(self, text: str, reply_url: str | None = None) -> None:
        """Hand the message to the background runner and return immediately."""
        self.runner.submit(
            lambda: self.process_message(text, reply_url), name="process_message"
        )

    async def _reply(self, reply_url: str | None, text: str) -> None:
        if not reply_url:
            return
        try:
            await self.reply_client.send(reply_url, text)
        except Exception:
            _logger.exception("Reply delivery failed")


def sum_totals(items: list[ResolvedFood]) -> MealTotals:
    """Sum item nutrition; macros rounded to one decimal."""
    return MealTotals(
        calories=sum(item.calories for item in items),
        protein=round_macro(sum(item.protein for item in items)),
        fat=round_macro(sum(item.fat for item in items)),
        carbs=round_macro(sum(item.carbs for item in items)),
    )


def format_confirmation(summary: MealLogSummary) -> str:
    """Render the confirmation message for a logged meal."""
    label = str(summary.meal_period or MealPeriod.SNACK).capitalize()
    lines = [
        f"✅ {label} logged: {summary.totals.calories} kcal, "
        f"{_format_number(summary.totals.protein)}g protein"
    ]
    for item in summary.items:
        estimated = " (estimated)" if item.estimated else ""
        lines.append(
            f"• {_format_number(item.quantity)} {item.name}: "
            f"{item.calories} kcal{estimated}"
        )
    return "\n".join(lines)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
