"""Request models for the HTTP API."""

from pydantic import BaseModel, Field

from meal_tracker.domain.foods import ReferenceFoodRow, ReferenceSource


class MealRequest(BaseModel):
    """Inbound free-text meal description."""

    text: str
    reply_url: str | None = None


class ReferenceRowPayload(BaseModel):
    """Curated reference food supplied by an administrator."""

    name: str = Field(min_length=1)
    unit: str = "n"
    quantity: float = Field(default=1.0, gt=0)
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    vitamins: str | None = None

    def to_row(self) -> ReferenceFoodRow:
        """Convert to a curated reference row."""
        return ReferenceFoodRow(
            name=self.name.strip(),
            unit=self.unit.strip() or "n",
            base_quantity=self.quantity,
            calories=self.calories,
            protein=self.protein,
            fat=self.fat,
            carbs=self.carbs,
            vitamins=self.vitamins,
            source=ReferenceSource.CURATED,
        )


class ReferenceRowsRequest(BaseModel):
    """Batch of curated reference rows."""

    rows: list[ReferenceRowPayload]
