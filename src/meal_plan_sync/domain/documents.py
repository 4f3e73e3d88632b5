"""JSON document codec for meal plans exchanged with the backing store."""

from datetime import date, datetime

from meal_plan_sync.domain.meal_plans import DayMeals, MealEntry, MealPlan, MealType
from meal_plan_sync.domain.weeks import parse_calendar_date, week_dates, week_start

MUTABLE_FIELDS = ("title", "days", "tags", "totalCalories", "shoppingListGenerated")


def entry_to_document(entry: MealEntry) -> dict[str, object]:
    """Serialize a meal entry."""
    return {
        "recipeId": entry.recipe_id,
        "recipeName": entry.recipe_name,
        "servings": entry.servings,
        "prepTime": entry.prep_time,
        "cookingTime": entry.cooking_time,
        "image": entry.image,
        "notes": entry.notes,
        "ingredients": list(entry.ingredients),
        "tags": list(entry.tags),
    }


def day_to_document(day: DayMeals) -> dict[str, object]:
    """Serialize one day of meals."""
    document: dict[str, object] = {"date": day.date.isoformat()}
    for meal_type in MealType:
        document[meal_type.value] = [
            entry_to_document(entry) for entry in day.slot(meal_type)
        ]
    if day.daily_notes is not None:
        document["dailyNotes"] = day.daily_notes
    return document


def plan_to_document(plan: MealPlan) -> dict[str, object]:
    """Serialize a full meal plan."""
    return {
        "id": plan.id,
        "ownerId": plan.owner_id,
        "weekStartDate": plan.week_start_date.isoformat(),
        "weekEndDate": plan.week_end_date.isoformat(),
        "title": plan.title,
        "days": [day_to_document(day) for day in plan.days],
        "tags": list(plan.tags),
        "totalCalories": plan.total_calories,
        "shoppingListGenerated": plan.shopping_list_generated,
        "isTemplate": plan.is_template,
        "createdAt": _format_timestamp(plan.created_at),
        "updatedAt": _format_timestamp(plan.updated_at),
    }


def plan_to_create_document(plan: MealPlan) -> dict[str, object]:
    """Return the body of a create request."""
    return {
        "weekStartDate": plan.week_start_date.isoformat(),
        "title": plan.title,
        "days": [day_to_document(day) for day in plan.days],
        "tags": list(plan.tags),
        "totalCalories": plan.total_calories,
        "shoppingListGenerated": plan.shopping_list_generated,
        "isTemplate": plan.is_template,
    }


def plan_to_update_document(plan: MealPlan) -> dict[str, object]:
    """Return the mutable fields sent with an update request."""
    document = plan_to_document(plan)
    return {name: document[name] for name in MUTABLE_FIELDS}


def entry_from_document(document: dict[str, object]) -> MealEntry:
    """Parse a meal entry, tolerating the legacy 'name' field."""
    ingredients = document.get("ingredients")
    tags = document.get("tags")
    return MealEntry(
        recipe_id=str(document.get("recipeId") or ""),
        recipe_name=str(document.get("recipeName") or document.get("name") or ""),
        servings=_to_int(document.get("servings")),
        prep_time=_to_int(document.get("prepTime")),
        cooking_time=_to_int(document.get("cookingTime")),
        image=_to_str(document.get("image")),
        notes=str(document.get("notes") or ""),
        ingredients=[item for item in ingredients if isinstance(item, dict)]
        if isinstance(ingredients, list)
        else [],
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
    )


def day_from_document(document: dict[str, object]) -> DayMeals:
    """Parse one day of meals."""
    slots: dict[str, list[MealEntry]] = {}
    for meal_type in MealType:
        raw = document.get(meal_type.value)
        slots[meal_type.value] = (
            [entry_from_document(item) for item in raw if isinstance(item, dict)]
            if isinstance(raw, list)
            else []
        )
    notes = document.get("dailyNotes")
    return DayMeals(
        date=parse_calendar_date(document.get("date")),
        daily_notes=str(notes) if notes is not None else None,
        **slots,
    )


def normalize_days(start: date, days: list[DayMeals]) -> list[DayMeals]:
    """Return exactly 7 days for the week, matching parsed days by date."""
    by_date = {day.date: day for day in days}
    return [by_date.get(day) or DayMeals(date=day) for day in week_dates(start)]


def plan_from_document(
    document: dict[str, object], owner_id: str | None = None
) -> MealPlan:
    """Parse a meal plan document returned by the backing store."""
    start = week_start(document.get("weekStartDate"))
    raw_days = document.get("days")
    days = (
        [day_from_document(item) for item in raw_days if isinstance(item, dict)]
        if isinstance(raw_days, list)
        else []
    )
    raw_id = document.get("id") or document.get("_id")
    tags = document.get("tags")
    total_calories = document.get("totalCalories")
    return MealPlan(
        id=str(raw_id) if raw_id else None,
        owner_id=str(
            document.get("ownerId") or document.get("userId") or owner_id or ""
        ),
        week_start_date=start,
        days=normalize_days(start, days),
        title=_to_str(document.get("title")),
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        total_calories=float(total_calories)
        if isinstance(total_calories, int | float)
        else None,
        shopping_list_generated=bool(document.get("shoppingListGenerated", False)),
        is_template=bool(document.get("isTemplate", False)),
        created_at=_parse_timestamp(document.get("createdAt")),
        updated_at=_parse_timestamp(document.get("updatedAt")),
    )


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


def _to_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
