"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import uuid4

import httpx
import pytest

from meal_plan_sync.adapters.meal_plan_client import MealPlanClient
from meal_plan_sync.config import Settings
from meal_plan_sync.containers import AppContainer
from meal_plan_sync.domain.meal_plans import MealEntry, MealPlan
from meal_plan_sync.services.meal_plan_store import (
    DuplicatePlanError,
    MealPlanRepository,
    MealPlanStoreService,
)
from meal_plan_sync.services.plan_cache import PlanCache
from meal_plan_sync.services.plan_loader import PlanLoader
from meal_plan_sync.services.plan_mutator import PlanMutator
from meal_plan_sync.services.sync_signal import SyncSignal

OWNER_ID = "owner-1"


@dataclass
class InMemoryMealPlanRepository(MealPlanRepository):
    """In-memory meal plan repository for tests."""

    plans: dict[str, MealPlan] = field(default_factory=dict)

    def find_by_owner_and_week(
        self, owner_id: str, week_start_date: date
    ) -> MealPlan | None:
        for plan in self.plans.values():
            if plan.owner_id == owner_id and plan.week_start_date == week_start_date:
                return plan
        return None

    def list_by_owner(self, owner_id: str) -> list[MealPlan]:
        plans = [plan for plan in self.plans.values() if plan.owner_id == owner_id]
        return sorted(plans, key=lambda plan: plan.week_start_date, reverse=True)

    def get(self, owner_id: str, plan_id: str) -> MealPlan | None:
        plan = self.plans.get(plan_id)
        if plan is None or plan.owner_id != owner_id:
            return None
        return plan

    def create(self, plan: MealPlan) -> MealPlan:
        if self.find_by_owner_and_week(plan.owner_id, plan.week_start_date):
            raise DuplicatePlanError(f"Duplicate plan for week {plan.week_key}")
        created = replace(plan, id=str(uuid4()))
        self.plans[created.id] = created
        return created

    def update(
        self, owner_id: str, plan_id: str, fields: dict[str, object]
    ) -> MealPlan | None:
        plan = self.get(owner_id, plan_id)
        if plan is None:
            return None
        updated = replace(plan, **fields)
        self.plans[plan_id] = updated
        return updated

    def delete(self, owner_id: str, plan_id: str) -> bool:
        if self.get(owner_id, plan_id) is None:
            return False
        del self.plans[plan_id]
        return True


@dataclass
class FakeMealPlanClient(MealPlanClient):
    """Fake backing store client that records calls and stores documents."""

    documents: dict[str, dict[str, object]] = field(default_factory=dict)
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    creates: list[dict[str, object]] = field(default_factory=list)
    updates: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    failures: int = 0
    list_failures: int = 0
    delay_seconds: float = 0
    list_delay_seconds: float = 0
    dropped_fields: tuple[str, ...] = ()
    next_id: int = 0

    async def list_meal_plans(
        self, week_start: str | None = None
    ) -> list[dict[str, object]]:
        self.calls.append(("list", week_start))
        if self.list_failures > 0:
            self.list_failures -= 1
            raise _status_error("GET", 503)
        documents = list(self.documents.values())
        if week_start:
            documents = [
                document
                for document in documents
                if document["weekStartDate"] == week_start
            ]
        snapshot = [dict(document) for document in documents]
        if self.list_delay_seconds:
            await asyncio.sleep(self.list_delay_seconds)
        return snapshot

    async def get_meal_plan(self, plan_id: str) -> dict[str, object] | None:
        self.calls.append(("get", plan_id))
        document = self.documents.get(plan_id)
        return dict(document) if document else None

    async def create_meal_plan(self, document: dict[str, object]) -> dict[str, object]:
        self.calls.append(("create", str(document["weekStartDate"])))
        self.creates.append(document)
        await self._settle("POST")
        for stored in self.documents.values():
            if stored["weekStartDate"] == document["weekStartDate"]:
                return dict(stored)
        self.next_id += 1
        stored = {
            name: value
            for name, value in document.items()
            if name not in self.dropped_fields
        }
        stored["id"] = f"plan-{self.next_id}"
        self.documents[str(stored["id"])] = stored
        return dict(stored)

    async def update_meal_plan(
        self, plan_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        self.calls.append(("update", plan_id))
        self.updates.append((plan_id, fields))
        await self._settle("PUT")
        stored = {**self.documents.get(plan_id, {"id": plan_id}), **fields}
        self.documents[plan_id] = stored
        return dict(stored)

    async def delete_meal_plan(self, plan_id: str) -> None:
        self.calls.append(("delete", plan_id))
        self.documents.pop(plan_id, None)

    async def _settle(self, method: str) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.failures > 0:
            self.failures -= 1
            raise _status_error(method, 503)


def _status_error(method: str, status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request(method, "https://plans.test/meal-plans")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(
        "store unavailable", request=request, response=response
    )


def make_entry(name: str = "Oatmeal") -> MealEntry:
    return MealEntry(recipe_id=f"recipe-{name.lower()}", recipe_name=name, servings=1)


def stored_document(
    plan_id: str, week_start: str, days: list[dict[str, object]] | None = None
) -> dict[str, object]:
    return {
        "id": plan_id,
        "ownerId": OWNER_ID,
        "weekStartDate": week_start,
        "title": "Stored plan",
        "days": days or [],
        "tags": [],
        "totalCalories": None,
        "shoppingListGenerated": False,
        "isTemplate": False,
        "createdAt": datetime(2024, 3, 1, tzinfo=UTC).isoformat(),
        "updatedAt": datetime(2024, 3, 1, tzinfo=UTC).isoformat(),
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        meal_plans_api_url="https://plans.test",
        owner_id=OWNER_ID,
        sync_debounce_seconds=0,
        persist_retry_delay_seconds=0,
    )


@pytest.fixture
def cache() -> PlanCache:
    return PlanCache(OWNER_ID)


@pytest.fixture
def client() -> FakeMealPlanClient:
    return FakeMealPlanClient()


@pytest.fixture
def sync_signal() -> SyncSignal:
    return SyncSignal()


@pytest.fixture
def mutator(
    cache: PlanCache, client: FakeMealPlanClient, sync_signal: SyncSignal
) -> PlanMutator:
    return PlanMutator(
        cache=cache,
        client=client,
        sync_signal=sync_signal,
        retry_attempts=2,
        retry_delay_seconds=0,
    )


@pytest.fixture
def loader(cache: PlanCache, client: FakeMealPlanClient) -> PlanLoader:
    return PlanLoader(cache=cache, client=client)


@pytest.fixture
def repository() -> InMemoryMealPlanRepository:
    return InMemoryMealPlanRepository()


@pytest.fixture
def container(
    settings: Settings, repository: InMemoryMealPlanRepository
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        meal_plan_store=MealPlanStoreService(repository),
        close_resources=close_resources,
    )
