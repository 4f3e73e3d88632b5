"""Owner-scoped meal plan endpoints."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Depends,
    Header,
    HTTPException,
    Query,
    Request,
    status,
)
from fastapi.responses import JSONResponse

from meal_plan_sync.api.meal_plan_models import (
    MealPlanCreateRequest,
    MealPlanUpdateRequest,
)
from meal_plan_sync.config import parse_owner_id
from meal_plan_sync.domain.documents import day_from_document, plan_to_document
from meal_plan_sync.domain.weeks import InvalidPlanDateError, parse_calendar_date
from meal_plan_sync.services.meal_plan_store import DuplicatePlanError, PlanChanges

if TYPE_CHECKING:
    from meal_plan_sync.containers import AppContainer
    from meal_plan_sync.domain.meal_plans import DayMeals
    from meal_plan_sync.services.meal_plan_store import MealPlanStoreService

router = APIRouter(prefix="/meal-plans", tags=["meal-plans"])


async def require_owner(x_owner_id: str | None = Header(default=None)) -> str:
    """Resolve the owner identity of the request."""
    owner_id = parse_owner_id(x_owner_id)
    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return owner_id


def _store(request: Request) -> MealPlanStoreService:
    container: AppContainer = request.app.state.container
    return container.meal_plan_store


@router.get("")
async def list_meal_plans(
    request: Request,
    owner_id: str = Depends(require_owner),
    week_start: str | None = Query(default=None, alias="weekStart"),
) -> dict[str, object]:
    """Return the owner's plans, or the plan of one week."""
    week = _parse_date(week_start) if week_start else None
    plans = _store(request).list_plans(owner_id, week)
    return {
        "success": True,
        "data": [plan_to_document(plan) for plan in plans],
        "count": len(plans),
    }


@router.get("/{plan_id}")
async def get_meal_plan(
    plan_id: str, request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Return a single plan."""
    plan = _store(request).get_plan(owner_id, plan_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return {"success": True, "data": plan_to_document(plan)}


@router.post("")
async def create_meal_plan(
    body: MealPlanCreateRequest,
    request: Request,
    owner_id: str = Depends(require_owner),
) -> JSONResponse:
    """Create the plan for a week, returning the existing one if present."""
    try:
        plan, created = _store(request).create_plan(
            owner_id=owner_id,
            week_start_date=_parse_date(body.week_start_date),
            title=body.title,
            days=_parse_days(body.days) if body.days else None,
            tags=body.tags,
            total_calories=body.total_calories,
            shopping_list_generated=body.shopping_list_generated,
            is_template=body.is_template,
            copy_from_week=_parse_date(body.copy_from_week)
            if body.copy_from_week
            else None,
        )
    except DuplicatePlanError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You can only have one meal plan per week.",
        ) from exc
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={
            "success": True,
            "data": plan_to_document(plan),
            "message": "Meal plan created successfully"
            if created
            else "Existing meal plan found for this week",
        },
    )


@router.put("/{plan_id}")
async def update_meal_plan(
    plan_id: str,
    body: MealPlanUpdateRequest,
    request: Request,
    owner_id: str = Depends(require_owner),
) -> dict[str, object]:
    """Update the mutable fields of a plan."""
    changes = PlanChanges(
        title=body.title,
        days=_parse_days(body.days) if body.days is not None else None,
        tags=body.tags,
        total_calories=body.total_calories,
        shopping_list_generated=body.shopping_list_generated,
        cleared=body.cleared_fields(),
    )
    plan = _store(request).update_plan(owner_id, plan_id, changes)
    if plan is None:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return {
        "success": True,
        "data": plan_to_document(plan),
        "message": "Meal plan updated successfully",
    }


@router.delete("/{plan_id}")
async def delete_meal_plan(
    plan_id: str, request: Request, owner_id: str = Depends(require_owner)
) -> dict[str, object]:
    """Delete a plan."""
    if not _store(request).delete_plan(owner_id, plan_id):
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return {"success": True, "data": {"id": plan_id}}


def _parse_date(value: str | None) -> date:
    try:
        return parse_calendar_date(value)
    except InvalidPlanDateError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _parse_days(days: list[dict[str, object]]) -> list[DayMeals]:
    try:
        return [day_from_document(day) for day in days]
    except InvalidPlanDateError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
