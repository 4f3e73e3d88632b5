"""Supabase repository for meal plans."""

from dataclasses import dataclass
from datetime import date, datetime

from supabase import Client

from meal_plan_sync.domain.documents import (
    day_from_document,
    day_to_document,
    normalize_days,
)
from meal_plan_sync.domain.meal_plans import DayMeals, MealPlan
from meal_plan_sync.domain.weeks import parse_calendar_date
from meal_plan_sync.services.meal_plan_store import (
    DuplicatePlanError,
    MealPlanRepository,
)

_UNIQUE_VIOLATION = "23505"
_COLUMNS = (
    "id, owner_id, week_start_date, title, days, tags, total_calories, "
    "shopping_list_generated, is_template, created_at, updated_at"
)


@dataclass
class SupabaseMealPlanRepository(MealPlanRepository):
    """Supabase implementation for meal plans."""

    client: Client

    def find_by_owner_and_week(
        self, owner_id: str, week_start_date: date
    ) -> MealPlan | None:
        """Return the owner's plan for a week."""
        response = (
            self.client.table("meal_plans")
            .select(_COLUMNS)
            .eq("owner_id", owner_id)
            .eq("week_start_date", week_start_date.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_plan(response.data[0])

    def list_by_owner(self, owner_id: str) -> list[MealPlan]:
        """Return all plans of an owner, newest week first."""
        response = (
            self.client.table("meal_plans")
            .select(_COLUMNS)
            .eq("owner_id", owner_id)
            .order("week_start_date", desc=True)
            .execute()
        )
        return [_parse_plan(row) for row in response.data or []]

    def get(self, owner_id: str, plan_id: str) -> MealPlan | None:
        """Return a plan by id."""
        response = (
            self.client.table("meal_plans")
            .select(_COLUMNS)
            .eq("id", plan_id)
            .eq("owner_id", owner_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_plan(response.data[0])

    def create(self, plan: MealPlan) -> MealPlan:
        """Insert a plan row and return it with the assigned id."""
        payload = {
            "owner_id": plan.owner_id,
            "week_start_date": plan.week_start_date.isoformat(),
            "title": plan.title,
            "days": _days_payload(plan.days),
            "tags": plan.tags,
            "total_calories": plan.total_calories,
            "shopping_list_generated": plan.shopping_list_generated,
            "is_template": plan.is_template,
        }
        try:
            response = self.client.table("meal_plans").insert(payload).execute()
        except Exception as exc:
            if getattr(exc, "code", None) == _UNIQUE_VIOLATION:
                raise DuplicatePlanError(
                    f"Meal plan already exists for week {plan.week_key}"
                ) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create meal plan")
        return _parse_plan(response.data[0])

    def update(
        self, owner_id: str, plan_id: str, fields: dict[str, object]
    ) -> MealPlan | None:
        """Update plan columns."""
        payload: dict[str, object] = {}
        for name, value in fields.items():
            if name == "days" and isinstance(value, list):
                payload[name] = _days_payload(value)
            elif isinstance(value, datetime):
                payload[name] = value.isoformat()
            else:
                payload[name] = value
        response = (
            self.client.table("meal_plans")
            .update(payload)
            .eq("id", plan_id)
            .eq("owner_id", owner_id)
            .execute()
        )
        if not response.data:
            return None
        return _parse_plan(response.data[0])

    def delete(self, owner_id: str, plan_id: str) -> bool:
        """Delete a plan row."""
        response = (
            self.client.table("meal_plans")
            .delete()
            .eq("id", plan_id)
            .eq("owner_id", owner_id)
            .execute()
        )
        return bool(response.data)


def _days_payload(days: list[DayMeals]) -> list[dict[str, object]]:
    return [day_to_document(day) for day in days]


def _parse_plan(row: dict[str, object]) -> MealPlan:
    raw_days = row.get("days") or []
    start = parse_calendar_date(row["week_start_date"])
    return MealPlan(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        week_start_date=start,
        days=normalize_days(start, [day_from_document(day) for day in raw_days]),
        title=row.get("title"),
        tags=list(row.get("tags") or []),
        total_calories=float(row["total_calories"])
        if row.get("total_calories") is not None
        else None,
        shopping_list_generated=bool(row.get("shopping_list_generated", False)),
        is_template=bool(row.get("is_template", False)),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
