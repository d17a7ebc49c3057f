"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_tracker.adapters.fatsecret_client import HttpxFatSecretClient
from meal_tracker.adapters.fdc_client import HttpxFdcClient
from meal_tracker.adapters.openai_embedding_client import OpenAIEmbeddingClient
from meal_tracker.adapters.openai_llm_client import OpenAILlmClient
from meal_tracker.adapters.reply_client import HttpxReplyClient
from meal_tracker.adapters.supabase_meal_log_repository import (
    SupabaseMealLogRepository,
)
from meal_tracker.adapters.supabase_reference_repository import (
    SupabaseReferenceRepository,
)
from meal_tracker.adapters.supabase_semantic_index import SupabaseSemanticIndex
from meal_tracker.config import Settings
from meal_tracker.services.background import AsyncioBackgroundRunner
from meal_tracker.services.cache import InMemoryCache
from meal_tracker.services.meals import MealLogService
from meal_tracker.services.nutrition import (
    FatSecretNutritionProvider,
    FdcNutritionProvider,
    NutritionProvider,
    NutritionService,
)
from meal_tracker.services.parser import MealParser
from meal_tracker.services.references import ReferenceService
from meal_tracker.services.resolver import (
    FoodResolver,
    NutritionApiTier,
    ReferenceTableTier,
    SemanticTier,
)
from meal_tracker.services.retry import RetryPolicy
from meal_tracker.services.sync import ReferenceSynchronizer
from meal_tracker.services.units import UnitConverter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    reference_service: ReferenceService
    nutrition_service: NutritionService
    meal_parser: MealParser
    food_resolver: FoodResolver
    synchronizer: ReferenceSynchronizer
    meal_log_service: MealLogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    retry = RetryPolicy(
        max_attempts=resolved_settings.retry_attempts,
        initial_delay_seconds=resolved_settings.retry_initial_delay_seconds,
    )
    cache = InMemoryCache()
    runner = AsyncioBackgroundRunner()
    converter = UnitConverter()

    reference_service = ReferenceService(
        repository=SupabaseReferenceRepository(supabase_client),
        cache=cache,
        retry=retry,
        cache_ttl_seconds=resolved_settings.reference_cache_ttl_seconds,
    )
    semantic_index = SupabaseSemanticIndex(supabase_client)
    embedding_client = OpenAIEmbeddingClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_embedding_model,
    )
    llm_client = OpenAILlmClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    reply_client = HttpxReplyClient.create()
    closers: list[Callable[[], Awaitable[None]]] = [
        llm_client.close,
        embedding_client.close,
        reply_client.close,
    ]

    provider: NutritionProvider | None = None
    if resolved_settings.fatsecret_enabled:
        fatsecret_client = HttpxFatSecretClient.create(
            client_id=str(resolved_settings.fatsecret_client_id),
            client_secret=str(resolved_settings.fatsecret_client_secret),
        )
        closers.append(fatsecret_client.close)
        provider = FatSecretNutritionProvider(fatsecret_client)
    elif resolved_settings.fdc_api_key:
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
        )
        closers.append(fdc_client.close)
        provider = FdcNutritionProvider(fdc_client)
    nutrition_service = NutritionService(
        provider=provider,
        cache=cache,
        retry=retry,
        ttl_seconds=resolved_settings.lookup_cache_ttl_seconds,
    )

    food_resolver = FoodResolver(
        tiers=[
            SemanticTier(
                embedding_client=embedding_client,
                index=semantic_index,
                converter=converter,
                retry=retry,
                threshold=resolved_settings.similarity_threshold,
                top_k=resolved_settings.semantic_top_k,
            ),
            ReferenceTableTier(references=reference_service),
            NutritionApiTier(
                nutrition_service=nutrition_service,
                references=reference_service,
                runner=runner,
                converter=converter,
            ),
        ]
    )
    meal_parser = MealParser(client=llm_client, retry=retry)
    synchronizer = ReferenceSynchronizer(
        embedding_client=embedding_client,
        index=semantic_index,
        retry=retry,
        batch_size=resolved_settings.sync_batch_size,
    )
    meal_log_service = MealLogService(
        parser=meal_parser,
        resolver=food_resolver,
        repository=SupabaseMealLogRepository(supabase_client),
        reply_client=reply_client,
        runner=runner,
        retry=retry,
    )

    async def close_resources() -> None:
        await runner.drain()
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        reference_service=reference_service,
        nutrition_service=nutrition_service,
        meal_parser=meal_parser,
        food_resolver=food_resolver,
        synchronizer=synchronizer,
        meal_log_service=meal_log_service,
        close_resources=close_resources,
    )
