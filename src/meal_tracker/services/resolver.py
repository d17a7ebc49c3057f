"""Food resolution: mention -> scaled nutrition through an ordered tier ladder.

Tiers are tried in order and the first non-None result wins:

1. :class:`SemanticTier` embeds the food name and accepts the nearest indexed
   reference food when its similarity reaches the threshold.
2. :class:`ReferenceTableTier` matches the normalized name against the curated
   table. An exact match wins; otherwise the first row (in table order) whose
   name contains the mention, or is contained by it, is taken. This is a
   first-match policy, not best-match.
3. :class:`NutritionApiTier` asks the external lookup and falls back to a fixed
   placeholder estimate, so it always produces a result. Fresh lookups (not
   cache hits) are appended to the learned table in the background.

Semantic and external results scale through :class:`UnitConverter`; curated rows
scale by the plain quantity ratio. Calories round half-up to an integer and
macros to one decimal, after scaling.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Protocol

from meal_tracker.domain.foods import (
    DEFAULT_UNIT,
    MAX_QUANTITY,
    NutritionFacts,
    ParsedFoodMention,
    ReferenceFoodRow,
    ReferenceSource,
    ResolvedFood,
)
from meal_tracker.services.background import BackgroundRunner
from meal_tracker.services.nutrition import NutritionLookup, NutritionService
from meal_tracker.services.references import ReferenceService
from meal_tracker.services.retry import RetryPolicy
from meal_tracker.services.semantic_index import (
    EmbeddingClient,
    SemanticIndex,
    normalize_name,
    row_from_metadata,
)
from meal_tracker.services.units import UnitConverter

SIMILARITY_THRESHOLD = 0.85
SEMANTIC_TOP_K = 3

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaceholderEstimate:
    """Generic nutrition used when no external lookup result is available."""

    quantity: float = 1.0
    unit: str = DEFAULT_UNIT
    calories: float = 200.0
    protein: float = 10.0
    fat: float = 5.0
    carbs: float = 25.0

    def facts(self, food_name: str) -> NutritionFacts:
        """Placeholder facts labelled with the requested food name."""
        return NutritionFacts(
            name=food_name,
            base_quantity=self.quantity,
            unit=self.unit,
            calories=self.calories,
            protein=self.protein,
            fat=self.fat,
            carbs=self.carbs,
        )


class ResolutionTier(Protocol):
    """One strategy in the resolution ladder."""

    name: str
    # When False, unexpected errors from the tier become a miss instead of raising.
    propagate_errors: bool

    async def attempt_resolve(self, mention: ParsedFoodMention) -> ResolvedFood | None:
        """Return scaled nutrition for the mention, or None to defer."""


@dataclass
class SemanticTier(ResolutionTier):
    """Nearest-neighbour lookup in the semantic index."""

    embedding_client: EmbeddingClient
    index: SemanticIndex
    converter: UnitConverter = field(default_factory=UnitConverter)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    threshold: float = SIMILARITY_THRESHOLD
    top_k: int = SEMANTIC_TOP_K
    name: str = "semantic"
    propagate_errors: bool = True

    async def attempt_resolve(self, mention: ParsedFoodMention) -> ResolvedFood | None:
        """Accept the closest match if it clears the similarity threshold."""
        vector = await self.retry.run(
            lambda: self.embedding_client.embed(mention.name), action="embed:resolve"
        )
        matches = await self.retry.run(
            lambda: self.index.query(vector, self.top_k), action="index:query"
        )
        if not matches:
            return None
        best = max(matches, key=lambda match: match.score)
        if best.score < self.threshold or not best.metadata:
            return None
        row = row_from_metadata(best.metadata)
        multiplier = self.converter.scale_factor(
            mention.quantity, mention.unit, row.base_quantity, row.unit
        )
        return scale_reference(
            row, mention, multiplier, estimated=row.source == ReferenceSource.LEARNED
        )


@dataclass
class ReferenceTableTier(ResolutionTier):
    """Name matching against the curated reference table."""

    references: ReferenceService
    name: str = "curated"
    propagate_errors: bool = True

    async def attempt_resolve(self, mention: ParsedFoodMention) -> ResolvedFood | None:
        """Match exact name first, else the first containment match.

        Curated rows scale by the plain quantity ratio, whatever the units.
        """
        rows = await self.references.curated_rows()
        row = match_reference_row(mention.name, rows)
        if row is None:
            return None
        multiplier = (
            mention.quantity / row.base_quantity
            if row.base_quantity > 0
            else mention.quantity
        )
        return scale_reference(row, mention, multiplier, estimated=False)


@dataclass
class NutritionApiTier(ResolutionTier):
    """External nutrition lookup with a placeholder floor."""

    nutrition_service: NutritionService
    references: ReferenceService
    runner: BackgroundRunner
    converter: UnitConverter = field(default_factory=UnitConverter)
    placeholder: PlaceholderEstimate = field(default_factory=PlaceholderEstimate)
    name: str = "external"
    propagate_errors: bool = False

    async def attempt_resolve(self, mention: ParsedFoodMention) -> ResolvedFood | None:
        """Resolve through the lookup provider; never defers to another tier."""
        lookup = await self._lookup(mention.name)
        if lookup is None or lookup.facts is None:
            facts = self.placeholder.facts(mention.name)
        else:
            facts = lookup.facts
            if not lookup.cached:
                self._remember(facts)
        multiplier = self.converter.scale_factor(
            mention.quantity, mention.unit, facts.base_quantity, facts.unit
        )
        return ResolvedFood(
            name=facts.name,
            quantity=mention.quantity,
            unit=mention.unit,
            calories=round_calories(facts.calories * multiplier),
            protein=round_macro(facts.protein * multiplier),
            fat=round_macro(facts.fat * multiplier),
            carbs=round_macro(facts.carbs * multiplier),
            estimated=True,
        )

    async def _lookup(self, food_name: str) -> NutritionLookup | None:
        try:
            return await self.nutrition_service.lookup(food_name)
        except Exception as exc:
            _logger.warning("Nutrition lookup failed for %s: %s", food_name, exc)
            return None

    def _remember(self, facts: NutritionFacts) -> None:
        row = ReferenceFoodRow(
            name=facts.name,
            unit=facts.unit,
            base_quantity=facts.base_quantity,
            calories=facts.calories,
            protein=facts.protein,
            fat=facts.fat,
            carbs=facts.carbs,
            source=ReferenceSource.LEARNED,
        )
        provider = self.nutrition_service.provider_name

        async def append() -> None:
            try:
                await self.references.append_learned(row, provider)
            except Exception as exc:
                _logger.warning(
                    "Learned food append failed for %s: %s", row.name, exc
                )

        self.runner.submit(append, name=f"append_learned:{facts.name}")


@dataclass
class FoodResolver:
    """Runs the resolution tiers in order; the first result wins."""

    tiers: list[ResolutionTier]

    async def resolve(self, mention: ParsedFoodMention) -> ResolvedFood | None:
        """Resolve one mention, or None when no tier produced nutrition."""
        if not _quantity_in_range(mention.quantity):
            _logger.warning(
                "Quantity out of range for %s: %s", mention.name, mention.quantity
            )
            return None
        for tier in self.tiers:
            try:
                resolved = await tier.attempt_resolve(mention)
            except Exception:
                if tier.propagate_errors:
                    raise
                _logger.exception("Tier %s failed for %s", tier.name, mention.name)
                continue
            if resolved is not None:
                _logger.info("Resolved %s via %s tier", mention.name, tier.name)
                return resolved
        _logger.warning("No nutrition resolved for %s", mention.name)
        return None


def match_reference_row(
    food_name: str, rows: list[ReferenceFoodRow]
) -> ReferenceFoodRow | None:
    """Exact normalized name match, else the first containment match."""
    wanted = normalize_name(food_name)
    if not wanted:
        return None
    first_partial: ReferenceFoodRow | None = None
    for row in rows:
        candidate = normalize_name(row.name)
        if candidate == wanted:
            return row
        if first_partial is None and candidate and (
            wanted in candidate or candidate in wanted
        ):
            first_partial = row
    return first_partial


def scale_reference(
    row: ReferenceFoodRow,
    mention: ParsedFoodMention,
    multiplier: float,
    *,
    estimated: bool,
) -> ResolvedFood:
    """Apply a multiplier to a reference row's base nutrition."""
    return ResolvedFood(
        name=row.name,
        quantity=mention.quantity,
        unit=mention.unit,
        calories=round_calories(row.calories * multiplier),
        protein=round_macro(row.protein * multiplier),
        fat=round_macro(row.fat * multiplier),
        carbs=round_macro(row.carbs * multiplier),
        estimated=estimated,
    )


def _quantity_in_range(quantity: float) -> bool:
    return math.isfinite(quantity) and 0 < quantity <= MAX_QUANTITY


def round_calories(value: float) -> int:
    """Round half-up to a whole kcal."""
    return math.floor(value + 0.5)


def round_macro(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10
