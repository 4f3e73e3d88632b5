"""Pydantic models for meal plan API payloads."""

from pydantic import BaseModel, Field


class MealPlanCreateRequest(BaseModel):
    """Body of POST /meal-plans."""

    week_start_date: str = Field(alias="weekStartDate")
    title: str | None = None
    days: list[dict[str, object]] | None = None
    tags: list[str] = Field(default_factory=list)
    total_calories: float | None = Field(default=None, alias="totalCalories")
    shopping_list_generated: bool = Field(
        default=False, alias="shoppingListGenerated"
    )
    is_template: bool = Field(default=False, alias="isTemplate")
    copy_from_week: str | None = Field(default=None, alias="copyFromWeek")


class MealPlanUpdateRequest(BaseModel):
    """Body of PUT /meal-plans/{id}; only mutable fields are read.

    Fields left out of the body are unchanged. ``title`` and ``totalCalories``
    may be sent as null to clear them.
    """

    title: str | None = None
    days: list[dict[str, object]] | None = None
    tags: list[str] | None = None
    total_calories: float | None = Field(default=None, alias="totalCalories")
    shopping_list_generated: bool | None = Field(
        default=None, alias="shoppingListGenerated"
    )

    def cleared_fields(self) -> frozenset[str]:
        """Return the fields explicitly sent as null."""
        return frozenset(
            name for name in self.model_fields_set if getattr(self, name) is None
        )
