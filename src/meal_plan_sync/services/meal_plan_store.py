"""Backing store rules for owner-scoped weekly meal plans."""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from typing import Protocol

from meal_plan_sync.domain.meal_plans import (
    DayMeals,
    MealPlan,
    create_empty_meal_plan,
)
from meal_plan_sync.domain.weeks import week_dates, week_start

_logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = frozenset({"title", "total_calories"})


class DuplicatePlanError(RuntimeError):
    """Raised when an owner already has a plan for the week."""


class MealPlanRepository(Protocol):
    """Persistence interface for meal plans."""

    def find_by_owner_and_week(
        self, owner_id: str, week_start_date: date
    ) -> MealPlan | None:
        """Return the owner's plan for a week, if present."""

    def list_by_owner(self, owner_id: str) -> list[MealPlan]:
        """Return all plans of an owner."""

    def get(self, owner_id: str, plan_id: str) -> MealPlan | None:
        """Return one of the owner's plans by id."""

    def create(self, plan: MealPlan) -> MealPlan:
        """Insert a plan and return it with its assigned id."""

    def update(
        self, owner_id: str, plan_id: str, fields: dict[str, object]
    ) -> MealPlan | None:
        """Update plan columns and return the stored plan."""

    def delete(self, owner_id: str, plan_id: str) -> bool:
        """Delete a plan, returning False when it did not exist."""


@dataclass(frozen=True)
class PlanChanges:
    """Mutable fields accepted by an update; None means unchanged.

    Nullable fields named in ``cleared`` are set to null instead.
    """

    title: str | None = None
    days: list[DayMeals] | None = None
    tags: list[str] | None = None
    total_calories: float | None = None
    shopping_list_generated: bool | None = None
    cleared: frozenset[str] = frozenset()


@dataclass
class MealPlanStoreService:
    """Service enforcing one plan per owner and week."""

    repository: MealPlanRepository

    def list_plans(
        self, owner_id: str, week_start_date: date | None = None
    ) -> list[MealPlan]:
        """Return all of an owner's plans, or the one for a given week."""
        if week_start_date is None:
            return self.repository.list_by_owner(owner_id)
        plan = self.repository.find_by_owner_and_week(
            owner_id, week_start(week_start_date)
        )
        return [plan] if plan else []

    def get_plan(self, owner_id: str, plan_id: str) -> MealPlan | None:
        """Return a single plan."""
        return self.repository.get(owner_id, plan_id)

    def create_plan(  # noqa: PLR0913
        self,
        owner_id: str,
        week_start_date: date,
        title: str | None = None,
        days: list[DayMeals] | None = None,
        tags: list[str] | None = None,
        total_calories: float | None = None,
        shopping_list_generated: bool = False,
        is_template: bool = False,
        copy_from_week: date | None = None,
    ) -> tuple[MealPlan, bool]:
        """Create a plan for the week, or return the existing one.

        Returns the plan and whether it was newly created.
        """
        monday = week_start(week_start_date)
        existing = self.repository.find_by_owner_and_week(owner_id, monday)
        if existing:
            _logger.info("Returning existing meal plan for week %s", monday)
            return existing, False

        plan = create_empty_meal_plan(owner_id, monday)
        plan = replace(
            plan,
            title=title or plan.title,
            tags=list(tags or []),
            total_calories=total_calories,
            shopping_list_generated=shopping_list_generated,
            is_template=is_template,
        )
        if copy_from_week is not None:
            source = self.repository.find_by_owner_and_week(
                owner_id, week_start(copy_from_week)
            )
            if source:
                plan = replace(plan, days=_redate_days(source.days, monday))
        elif days:
            plan = replace(plan, days=_redate_days(days, monday))
        created = self.repository.create(plan)
        _logger.info("Created meal plan %s for week %s", created.id, monday)
        return created, True

    def update_plan(
        self, owner_id: str, plan_id: str, changes: PlanChanges
    ) -> MealPlan | None:
        """Apply changes to a plan's mutable fields."""
        existing = self.repository.get(owner_id, plan_id)
        if existing is None:
            return None
        fields: dict[str, object] = {"updated_at": datetime.now(tz=UTC)}
        if changes.title is not None:
            fields["title"] = changes.title
        if changes.days is not None:
            fields["days"] = _redate_days(changes.days, existing.week_start_date)
        if changes.tags is not None:
            fields["tags"] = changes.tags
        if changes.total_calories is not None:
            fields["total_calories"] = changes.total_calories
        if changes.shopping_list_generated is not None:
            fields["shopping_list_generated"] = changes.shopping_list_generated
        for name in _NULLABLE_FIELDS & changes.cleared:
            fields[name] = None
        return self.repository.update(owner_id, plan_id, fields)

    def delete_plan(self, owner_id: str, plan_id: str) -> bool:
        """Delete a plan."""
        return self.repository.delete(owner_id, plan_id)


def _redate_days(days: list[DayMeals], monday: date) -> list[DayMeals]:
    """Place days onto the target week by weekday, filling gaps with empty days."""
    by_weekday = {day.date.weekday(): day for day in days}
    result: list[DayMeals] = []
    for target in week_dates(monday):
        source = by_weekday.get(target.weekday())
        result.append(replace(source, date=target) if source else DayMeals(date=target))
    return result
