"""Loads meal plans from the backing store into the cache."""

import logging
from dataclasses import dataclass
from datetime import date

from meal_plan_sync.adapters.meal_plan_client import MealPlanClient
from meal_plan_sync.domain.documents import plan_from_document
from meal_plan_sync.domain.meal_plans import MealPlan
from meal_plan_sync.domain.sync import FetchState
from meal_plan_sync.domain.weeks import week_key
from meal_plan_sync.services.plan_cache import PlanCache

_logger = logging.getLogger(__name__)


@dataclass
class PlanLoader:
    """Fetches weeks from the backing store and records what was found."""

    cache: PlanCache
    client: MealPlanClient

    async def load_week(self, value: date | str) -> MealPlan | None:
        """Fetch the plan for the week containing value.

        Returns the plan the cache holds for the week afterwards. Fetch
        failures leave the week unknown so a later call can try again.
        """
        key = week_key(value)
        since = self.cache.mark_loading(key)
        try:
            documents = await self.client.list_meal_plans(week_start=key)
        except Exception:
            _logger.exception("Failed to load meal plan for week %s", key)
            self.cache.forget_fetch(key)
            return self.cache.get(key)
        plan = (
            plan_from_document(documents[0], owner_id=self.cache.owner_id)
            if documents
            else None
        )
        self.cache.mark_fetched(key, plan, since=since)
        return self.cache.get(key)

    async def load_all(self) -> int:
        """Fetch every plan the owner has and cache the ones safe to adopt."""
        since = self.cache.edit_token()
        documents = await self.client.list_meal_plans()
        loaded = 0
        for document in documents:
            plan = plan_from_document(document, owner_id=self.cache.owner_id)
            if self.cache.mark_fetched(plan.week_key, plan, since=since):
                loaded += 1
        _logger.info("Loaded %s meal plans into cache", loaded)
        return loaded

    def needs_fetch(self, key: str) -> bool:
        """Return True when the week has never been fetched."""
        return self.cache.fetch_state(key) is FetchState.UNKNOWN
