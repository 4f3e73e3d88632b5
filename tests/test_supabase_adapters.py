"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest

from meal_plan_sync.adapters.supabase_meal_plan_repository import (
    SupabaseMealPlanRepository,
)
from meal_plan_sync.domain.meal_plans import MealType, add_meal, create_empty_meal_plan
from meal_plan_sync.services.meal_plan_store import DuplicatePlanError
from tests.conftest import OWNER_ID, make_entry


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_order: tuple[str, bool] | None = None
    insert_error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        if action == "insert" and self.insert_error is not None:
            raise self.insert_error
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


class FakeUniqueViolation(Exception):
    code = "23505"


def _row(plan_id: str = "plan-1", **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": plan_id,
        "owner_id": OWNER_ID,
        "week_start_date": "2024-03-11",
        "title": "Week of Mar 11 - Mar 17",
        "days": [
            {
                "date": "2024-03-11",
                "breakfast": [{"recipeId": "r1", "recipeName": "Porridge"}],
                "lunch": [],
                "dinner": [],
                "snacks": [],
            }
        ],
        "tags": ["budget"],
        "total_calories": 1800,
        "shopping_list_generated": False,
        "is_template": False,
        "created_at": "2024-03-01T10:00:00+00:00",
        "updated_at": "2024-03-02T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def test_find_by_owner_and_week_parses_row() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_plans")
    table.queue("select", [_row()])

    repository = SupabaseMealPlanRepository(client)
    plan = repository.find_by_owner_and_week(OWNER_ID, date(2024, 3, 11))

    assert plan is not None
    assert plan.id == "plan-1"
    assert len(plan.days) == 7
    assert plan.days[0].breakfast[0].recipe_name == "Porridge"
    assert plan.total_calories == 1800.0
    assert plan.created_at == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert ("week_start_date", "2024-03-11") in table.last_filters
    assert repository.find_by_owner_and_week(OWNER_ID, date(2024, 3, 18)) is None


def test_list_by_owner_orders_newest_first() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_plans")
    table.queue("select", [_row("plan-2", week_start_date="2024-03-18"), _row()])

    plans = SupabaseMealPlanRepository(client).list_by_owner(OWNER_ID)

    assert [plan.id for plan in plans] == ["plan-2", "plan-1"]
    assert table.last_order == ("week_start_date", True)


def test_create_serializes_days() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_plans")
    table.queue("insert", [_row()])
    plan = add_meal(
        create_empty_meal_plan(OWNER_ID, date(2024, 3, 11)),
        0,
        MealType.BREAKFAST,
        make_entry("Porridge"),
    )

    created = SupabaseMealPlanRepository(client).create(plan)

    assert created.id == "plan-1"
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["week_start_date"] == "2024-03-11"
    assert table.last_payload["days"][0]["breakfast"][0]["recipeName"] == "Porridge"


def test_create_maps_unique_violation() -> None:
    client = FakeSupabaseClient()
    client.table("meal_plans").insert_error = FakeUniqueViolation("duplicate key")

    with pytest.raises(DuplicatePlanError):
        SupabaseMealPlanRepository(client).create(
            create_empty_meal_plan(OWNER_ID, date(2024, 3, 11))
        )


def test_update_converts_values() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_plans")
    table.queue("update", [_row(title="Renamed")])
    plan = create_empty_meal_plan(OWNER_ID, date(2024, 3, 11))
    updated_at = datetime(2024, 3, 5, tzinfo=UTC)

    updated = SupabaseMealPlanRepository(client).update(
        OWNER_ID,
        "plan-1",
        {"title": "Renamed", "days": plan.days, "updated_at": updated_at},
    )

    assert updated is not None
    assert updated.title == "Renamed"
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["updated_at"] == updated_at.isoformat()
    assert len(table.last_payload["days"]) == 7
    assert ("owner_id", OWNER_ID) in table.last_filters


def test_delete_reports_missing_rows() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_plans")
    table.queue("delete", [{"id": "plan-1"}])
    repository = SupabaseMealPlanRepository(client)

    assert repository.delete(OWNER_ID, "plan-1")
    assert not repository.delete(OWNER_ID, "plan-1")
