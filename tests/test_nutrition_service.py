"""Tests for nutrition service."""

import asyncio
from dataclasses import dataclass, field

import pytest

from meal_tracker.adapters.fatsecret_client import FatSecretClient
from meal_tracker.adapters.fdc_client import FdcClient
from meal_tracker.domain.foods import NutritionFacts
from meal_tracker.services.cache import InMemoryCache
from meal_tracker.services.nutrition import (
    FatSecretNutritionProvider,
    FdcNutritionProvider,
    NutritionService,
    parse_food_description,
)
from tests.conftest import FakeNutritionProvider, fast_retry

_QUINOA = NutritionFacts(
    name="Quinoa, cooked",
    base_quantity=100,
    unit="g",
    calories=120,
    protein=4.4,
    fat=1.9,
    carbs=21.3,
)


@dataclass
class StaticFdcClient(FdcClient):
    payload: dict[str, object]
    queries: list[str] = field(default_factory=list)

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        self.queries.append(query)
        return self.payload


@dataclass
class StaticFatSecretClient(FatSecretClient):
    payload: dict[str, object]

    async def search_foods(self, query: str, max_results: int = 1) -> dict[str, object]:
        return self.payload


def _fdc_food(**extra: object) -> dict[str, object]:
    return {
        "description": "Rice, white, cooked",
        "foodNutrients": [
            {"nutrientId": 1008, "value": 130},
            {"nutrient": {"id": 1003}, "amount": 2.7},
            {"nutrientId": 1004, "value": 0.3},
            {"nutrientId": 1005, "value": 28.2},
            {"nutrientId": 1093, "value": 1.0},
        ],
        **extra,
    }


def test_search_uses_cache() -> None:
    provider = FakeNutritionProvider(facts=_QUINOA)
    service = NutritionService(provider, InMemoryCache(), retry=fast_retry())

    first = asyncio.run(service.search("Quinoa"))
    second = asyncio.run(service.search("  quinoa "))

    assert first == _QUINOA
    assert second == _QUINOA
    assert provider.calls == ["Quinoa"]


def test_lookup_reports_cache_hits() -> None:
    provider = FakeNutritionProvider(facts=_QUINOA)
    service = NutritionService(provider, InMemoryCache(), retry=fast_retry())

    first = asyncio.run(service.lookup("quinoa"))
    second = asyncio.run(service.lookup("quinoa"))

    assert first.cached is False
    assert second.cached is True
    assert second.facts == _QUINOA


def test_search_does_not_cache_misses() -> None:
    provider = FakeNutritionProvider(facts=None)
    service = NutritionService(provider, InMemoryCache(), retry=fast_retry())

    asyncio.run(service.search("unobtainium"))
    asyncio.run(service.search("unobtainium"))

    assert len(provider.calls) == 2


def test_search_without_provider_returns_none() -> None:
    service = NutritionService(None, InMemoryCache())

    assert asyncio.run(service.search("rice")) is None
    assert service.provider_name is None


def test_search_raises_after_retries() -> None:
    provider = FakeNutritionProvider(error=RuntimeError("timeout"))
    service = NutritionService(provider, InMemoryCache(), retry=fast_retry(2))

    with pytest.raises(RuntimeError):
        asyncio.run(service.search("rice"))

    assert len(provider.calls) == 2


def test_fdc_provider_returns_per_100g_macros() -> None:
    client = StaticFdcClient(payload={"foods": [_fdc_food()]})

    facts = asyncio.run(FdcNutritionProvider(client).search("rice"))

    assert facts == NutritionFacts(
        name="Rice, white, cooked",
        base_quantity=100.0,
        unit="g",
        calories=130.0,
        protein=2.7,
        fat=0.3,
        carbs=28.2,
    )
    assert client.queries == ["rice"]


def test_fdc_provider_scales_to_gram_serving() -> None:
    food = _fdc_food(servingSize=50, servingSizeUnit="GRM")
    client = StaticFdcClient(payload={"foods": [food]})

    facts = asyncio.run(FdcNutritionProvider(client).search("rice"))

    assert facts is not None
    assert facts.base_quantity == 1.0
    assert facts.unit == "serving"
    assert facts.calories == 65.0


def test_fdc_provider_without_results() -> None:
    client = StaticFdcClient(payload={"foods": []})

    assert asyncio.run(FdcNutritionProvider(client).search("rice")) is None


def test_fatsecret_provider_parses_description() -> None:
    client = StaticFatSecretClient(
        payload={
            "foods": {
                "food": [
                    {
                        "food_name": "Banana",
                        "food_description": "Per 100g - Calories: 89kcal | "
                        "Fat: 0.33g | Carbs: 22.84g | Protein: 1.09g",
                    }
                ]
            }
        }
    )

    facts = asyncio.run(FatSecretNutritionProvider(client).search("banana"))

    assert facts == NutritionFacts(
        name="Banana",
        base_quantity=100.0,
        unit="g",
        calories=89.0,
        protein=1.09,
        fat=0.33,
        carbs=22.84,
    )


def test_fatsecret_provider_accepts_single_food_object() -> None:
    client = StaticFatSecretClient(
        payload={
            "foods": {
                "food": {
                    "food_name": "Idli",
                    "food_description": "Per 1 piece - Calories: 39kcal | "
                    "Fat: 0.2g | Carbs: 8g | Protein: 2g",
                }
            }
        }
    )

    facts = asyncio.run(FatSecretNutritionProvider(client).search("idli"))

    assert facts is not None
    assert facts.unit == "piece"
    assert facts.base_quantity == 1.0


def test_fatsecret_provider_without_results() -> None:
    client = StaticFatSecretClient(payload={"foods": {"total_results": "0"}})

    assert asyncio.run(FatSecretNutritionProvider(client).search("zzz")) is None


def test_parse_food_description_fraction_and_plural_units() -> None:
    parsed = parse_food_description(
        "Per 1/2 cups - Calories: 150kcal | Fat: 5.00g | Carbs: 20.00g | "
        "Protein: 6.00g"
    )

    assert parsed == {
        "base_quantity": 0.5,
        "unit": "cup",
        "calories": 150.0,
        "protein": 6.0,
        "fat": 5.0,
        "carbs": 20.0,
    }


def test_parse_food_description_without_calories() -> None:
    assert parse_food_description("Per 100g - Fat: 1g") is None
