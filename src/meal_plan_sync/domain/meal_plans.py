"""Domain models for weekly meal plans."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from meal_plan_sync.domain.weeks import (
    DAYS_PER_WEEK,
    format_week_range,
    week_dates,
    week_key,
    week_start,
)

UNSAVED_PLAN_ID = "temp-id"


class InvalidPlanError(ValueError):
    """Raised when an edit does not fit the shape of a meal plan."""


class MealType(Enum):
    """Meal slots available on every day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACKS = "snacks"


@dataclass(frozen=True)
class MealEntry:
    """Snapshot of a recipe planned into a meal slot."""

    recipe_id: str = ""
    recipe_name: str = ""
    servings: int | None = None
    prep_time: int | None = None
    cooking_time: int | None = None
    image: str | None = None
    notes: str = ""
    ingredients: list[dict[str, object]] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DayMeals:
    """All planned meals for one calendar day."""

    date: date
    breakfast: list[MealEntry] = field(default_factory=list)
    lunch: list[MealEntry] = field(default_factory=list)
    dinner: list[MealEntry] = field(default_factory=list)
    snacks: list[MealEntry] = field(default_factory=list)
    daily_notes: str | None = None

    def slot(self, meal_type: MealType) -> list[MealEntry]:
        """Return the entries for a meal slot."""
        return getattr(self, meal_type.value)

    def meal_count(self) -> int:
        """Return the number of entries across all slots."""
        return sum(len(self.slot(meal_type)) for meal_type in MealType)


@dataclass(frozen=True)
class MealPlan:
    """One owner's plan for a Monday-starting week."""

    owner_id: str
    week_start_date: date
    days: list[DayMeals]
    id: str | None = None
    title: str | None = None
    tags: list[str] = field(default_factory=list)
    total_calories: float | None = None
    shopping_list_generated: bool = False
    is_template: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def week_key(self) -> str:
        """Cache key of the week this plan covers."""
        return week_key(self.week_start_date)

    @property
    def week_end_date(self) -> date:
        """Last day (Sunday) covered by the plan."""
        return self.week_start_date + timedelta(days=DAYS_PER_WEEK - 1)

    @property
    def is_persisted(self) -> bool:
        """Return True when the backing store has assigned an id."""
        return bool(self.id) and self.id != UNSAVED_PLAN_ID

    def meal_count(self) -> int:
        """Return the number of entries across the week."""
        return sum(day.meal_count() for day in self.days)

    def day_index(self, value: date) -> int:
        """Return the index of a date within this plan's week."""
        offset = (value - self.week_start_date).days
        if offset < 0 or offset >= DAYS_PER_WEEK:
            raise InvalidPlanError(
                f"{value.isoformat()} is outside week {self.week_key}"
            )
        return offset


def create_empty_meal_plan(
    owner_id: str, start: date, now: datetime | None = None
) -> MealPlan:
    """Create a plan with 7 empty days for the week containing start."""
    monday = week_start(start)
    timestamp = now or datetime.now(tz=UTC)
    return MealPlan(
        owner_id=owner_id,
        week_start_date=monday,
        days=[DayMeals(date=day) for day in week_dates(monday)],
        title=f"Week of {format_week_range(monday)}",
        created_at=timestamp,
        updated_at=timestamp,
    )


def validate_days(plan: MealPlan) -> None:
    """Ensure a plan holds 7 contiguous days starting at its week start."""
    if len(plan.days) != DAYS_PER_WEEK:
        raise InvalidPlanError(
            f"Plan for week {plan.week_key} has {len(plan.days)} days"
        )
    for index, (day, expected) in enumerate(
        zip(plan.days, week_dates(plan.week_start_date), strict=True)
    ):
        if day.date != expected:
            raise InvalidPlanError(
                f"Day {index} of week {plan.week_key} is {day.date.isoformat()}, "
                f"expected {expected.isoformat()}"
            )


def add_meal(
    plan: MealPlan, day_index: int, meal_type: MealType, entry: MealEntry
) -> MealPlan:
    """Return a copy of the plan with entry appended to a slot."""
    day = _day_at(plan, day_index)
    entries = [*day.slot(meal_type), entry]
    return _with_day(plan, day_index, replace(day, **{meal_type.value: entries}))


def remove_meal(
    plan: MealPlan, day_index: int, meal_type: MealType, index: int
) -> tuple[MealPlan, MealEntry]:
    """Return a copy of the plan without the entry, and the removed entry."""
    day = _day_at(plan, day_index)
    entries = list(day.slot(meal_type))
    if index < 0 or index >= len(entries):
        raise InvalidPlanError(
            f"No {meal_type.value} entry at index {index} on day {day_index}"
        )
    removed = entries.pop(index)
    updated = _with_day(plan, day_index, replace(day, **{meal_type.value: entries}))
    return updated, removed


def move_meal(  # noqa: PLR0913
    plan: MealPlan,
    from_day: int,
    from_type: MealType,
    index: int,
    to_day: int,
    to_type: MealType,
) -> MealPlan:
    """Return a copy of the plan with one entry moved between slots."""
    without, entry = remove_meal(plan, from_day, from_type, index)
    return add_meal(without, to_day, to_type, entry)


def _day_at(plan: MealPlan, day_index: int) -> DayMeals:
    if day_index < 0 or day_index >= len(plan.days):
        raise InvalidPlanError(f"Day index {day_index} out of range")
    return plan.days[day_index]


def _with_day(plan: MealPlan, day_index: int, day: DayMeals) -> MealPlan:
    days = list(plan.days)
    days[day_index] = day
    return replace(plan, days=days)
