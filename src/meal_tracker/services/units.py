"""Unit-aware quantity scaling."""

from collections.abc import Mapping
from dataclasses import dataclass, field

# Cup-equivalent per one unit. Zero means the unit has no cup conversion.
CUP_EQUIVALENTS: Mapping[str, float] = {
    "cup": 1.0,
    "cups": 1.0,
    "serving": 1.0,
    "bowl": 1.5,
    "plate": 2.0,
    "tablespoon": 0.0625,
    "tbsp": 0.0625,
    "teaspoon": 0.0208,
    "tsp": 0.0208,
    "g": 0.0,
    "ml": 0.0,
    "n": 0.0,
}


def normalize_unit(unit: str) -> str:
    """Return the lookup form of a unit token."""
    return unit.strip().lower()


@dataclass(frozen=True)
class UnitConverter:
    """Computes quantity multipliers between user and reference units."""

    cup_equivalents: Mapping[str, float] = field(
        default_factory=lambda: dict(CUP_EQUIVALENTS)
    )

    def cup_equivalent(self, unit: str) -> float:
        """Return the cup-equivalent of a unit, 0 when not convertible."""
        return self.cup_equivalents.get(normalize_unit(unit), 0.0)

    def scale_factor(
        self, user_qty: float, user_unit: str, base_qty: float, base_unit: str
    ) -> float:
        """Return the multiplier applied to base nutrition for the user portion."""
        user_cups = self.cup_equivalent(user_unit)
        base_cups = self.cup_equivalent(base_unit)
        if user_cups > 0 and base_cups > 0 and base_qty:
            return (user_qty * user_cups) / (base_qty * base_cups)
        if not base_qty:
            return user_qty
        return user_qty / base_qty


_DEFAULT_CONVERTER = UnitConverter()


def scale_factor(
    user_qty: float, user_unit: str, base_qty: float, base_unit: str
) -> float:
    """Scale factor using the default cup-equivalent table."""
    return _DEFAULT_CONVERTER.scale_factor(user_qty, user_unit, base_qty, base_unit)
