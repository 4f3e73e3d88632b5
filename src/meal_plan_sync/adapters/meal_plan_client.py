"""Meal plan backing store API client."""

from dataclasses import dataclass, field
from typing import Protocol

import httpx


class MealPlanClient(Protocol):
    """Interface for the meal plan backing store."""

    async def list_meal_plans(
        self, week_start: str | None = None
    ) -> list[dict[str, object]]:
        """Return plan documents, optionally only the given week."""

    async def get_meal_plan(self, plan_id: str) -> dict[str, object] | None:
        """Return a plan document by id, or None when it does not exist."""

    async def create_meal_plan(self, document: dict[str, object]) -> dict[str, object]:
        """Create a plan and return the stored document."""

    async def update_meal_plan(
        self, plan_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Update mutable plan fields and return the stored document."""

    async def delete_meal_plan(self, plan_id: str) -> None:
        """Delete a plan."""


@dataclass
class HttpxMealPlanClient(MealPlanClient):
    """HTTPX-backed meal plan client scoped to one owner."""

    base_url: str
    owner_id: str
    http_client: httpx.AsyncClient
    timeout: float = 10
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls, base_url: str, owner_id: str, timeout: float = 10
    ) -> "HttpxMealPlanClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            owner_id=owner_id,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def list_meal_plans(
        self, week_start: str | None = None
    ) -> list[dict[str, object]]:
        """Fetch the owner's plans, filtered to a week when given."""
        params = {"weekStart": week_start} if week_start else None
        response = await self.http_client.get(
            f"{self.base_url}/meal-plans",
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json().get("data")
        return data if isinstance(data, list) else []

    async def get_meal_plan(self, plan_id: str) -> dict[str, object] | None:
        """Fetch one plan by id."""
        response = await self.http_client.get(
            f"{self.base_url}/meal-plans/{plan_id}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.json().get("data")

    async def create_meal_plan(self, document: dict[str, object]) -> dict[str, object]:
        """Create a plan for the owner."""
        response = await self.http_client.post(
            f"{self.base_url}/meal-plans",
            json=document,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()["data"]

    async def update_meal_plan(
        self, plan_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Update the mutable fields of a plan."""
        response = await self.http_client.put(
            f"{self.base_url}/meal-plans/{plan_id}",
            json=fields,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()["data"]

    async def delete_meal_plan(self, plan_id: str) -> None:
        """Delete a plan."""
        response = await self.http_client.delete(
            f"{self.base_url}/meal-plans/{plan_id}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {**self.headers, "X-Owner-Id": self.owner_id}
