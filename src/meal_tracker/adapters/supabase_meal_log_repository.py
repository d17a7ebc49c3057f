"""Supabase implementation for meal logs."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from meal_tracker.domain.foods import ResolvedFood
from meal_tracker.domain.meals import MealTotals
from meal_tracker.services.meals import MealLogRepository


@dataclass
class SupabaseMealLogRepository(MealLogRepository):
    """Supabase-backed repository for meal logs and their items."""

    client: Client

    def create_meal_log(
        self,
        logged_on: date,
        meal_period: str,
        totals: MealTotals,
        items: list[ResolvedFood],
    ) -> UUID:
        """Create a meal log with item rows and return its id."""
        response = (
            self.client.table("meal_logs")
            .insert(
                {
                    "logged_on": logged_on.isoformat(),
                    "logged_at": datetime.now(tz=UTC).isoformat(),
                    "meal_period": meal_period,
                    "total_calories": totals.calories,
                    "total_protein": totals.protein,
                    "total_fat": totals.fat,
                    "total_carbs": totals.carbs,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal log")
        meal_id = UUID(str(response.data[0]["id"]))
        if items:
            self.client.table("meal_items").insert(
                [
                    {
                        "meal_log_id": str(meal_id),
                        "name": item.name,
                        "quantity": item.quantity,
                        "unit": item.unit,
                        "calories": item.calories,
                        "protein": item.protein,
                        "fat": item.fat,
                        "carbs": item.carbs,
                        "estimated": item.estimated,
                    }
                    for item in items
                ]
            ).execute()
        return meal_id
