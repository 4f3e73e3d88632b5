"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_plan_sync.adapters.meal_plan_client import HttpxMealPlanClient
from meal_plan_sync.adapters.supabase_meal_plan_repository import (
    SupabaseMealPlanRepository,
)
from meal_plan_sync.config import Settings
from meal_plan_sync.services.meal_plan_store import MealPlanStoreService
from meal_plan_sync.services.plan_cache import PlanCache
from meal_plan_sync.services.plan_loader import PlanLoader
from meal_plan_sync.services.plan_mutator import PlanMutator
from meal_plan_sync.services.sync_signal import SyncSignal
from meal_plan_sync.services.view_sync import ViewSynchronizer


@dataclass
class AppContainer:
    """Holds dependencies of the backing store API."""

    settings: Settings
    meal_plan_store: MealPlanStoreService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class PlannerSession:
    """Cache, mutator and synchronizer serving one planner view."""

    owner_id: str
    cache: PlanCache
    sync_signal: SyncSignal
    mutator: PlanMutator
    loader: PlanLoader
    synchronizer: ViewSynchronizer
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the backing store container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_plan_store = MealPlanStoreService(SupabaseMealPlanRepository(supabase_client))

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        meal_plan_store=meal_plan_store,
        close_resources=close_resources,
    )


def build_planner_session(
    settings: Settings,
    owner_id: str | None = None,
    sync_signal: SyncSignal | None = None,
) -> PlannerSession:
    """Create a planner session talking to the meal plans API.

    Sessions built with the same sync signal refresh when another one saves.
    """
    resolved_owner = owner_id or settings.owner_id
    if not resolved_owner:
        raise ValueError("An owner id is required for a planner session")
    client = HttpxMealPlanClient.create(
        base_url=settings.meal_plans_api_url,
        owner_id=resolved_owner,
        timeout=settings.request_timeout_seconds,
    )
    signal = sync_signal or SyncSignal()
    cache = PlanCache(resolved_owner)
    mutator = PlanMutator(
        cache=cache,
        client=client,
        sync_signal=signal,
        retry_attempts=settings.persist_retry_attempts,
        retry_delay_seconds=settings.persist_retry_delay_seconds,
        retry_backoff=settings.persist_retry_backoff,
    )
    loader = PlanLoader(cache=cache, client=client)
    synchronizer = ViewSynchronizer(
        cache=cache,
        loader=loader,
        sync_signal=signal,
        debounce_seconds=settings.sync_debounce_seconds,
    )

    async def close_resources() -> None:
        synchronizer.close()
        await mutator.flush()
        await client.close()

    return PlannerSession(
        owner_id=resolved_owner,
        cache=cache,
        sync_signal=signal,
        mutator=mutator,
        loader=loader,
        synchronizer=synchronizer,
        close_resources=close_resources,
    )
