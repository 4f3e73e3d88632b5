"""Single entry point for meal plan edits and their persistence."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from meal_plan_sync.adapters.meal_plan_client import MealPlanClient
from meal_plan_sync.domain.documents import (
    MUTABLE_FIELDS,
    plan_to_create_document,
    plan_to_update_document,
)
from meal_plan_sync.domain.meal_plans import (
    MealEntry,
    MealPlan,
    MealType,
    validate_days,
)
from meal_plan_sync.domain.meal_plans import add_meal as add_entry
from meal_plan_sync.domain.meal_plans import move_meal as move_entry
from meal_plan_sync.domain.meal_plans import remove_meal as remove_entry
from meal_plan_sync.domain.sync import SyncStatus
from meal_plan_sync.domain.weeks import parse_calendar_date, week_start
from meal_plan_sync.services.plan_cache import PlanCache
from meal_plan_sync.services.sync_signal import SyncSignal

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


@dataclass
class PlanMutator:
    """Applies edited plans to the cache and persists them in the background.

    The cache is updated before any network call is made. Writes are queued
    per week and coalesced to the latest plan, so a week's writes never land
    out of order. Failed writes are retried with exponential backoff and then
    left as ``SyncStatus.FAILED`` without touching the cached plan.
    """

    cache: PlanCache
    client: MealPlanClient
    sync_signal: SyncSignal
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.5
    retry_backoff: float = 2.0
    _pending: dict[str, MealPlan] = field(default_factory=dict, init=False)
    _workers: dict[str, asyncio.Task[None]] = field(default_factory=dict, init=False)
    _statuses: dict[str, SyncStatus] = field(default_factory=dict, init=False)
    _assigned_ids: dict[str, str] = field(default_factory=dict, init=False)

    async def update_plan(self, plan: MealPlan) -> MealPlan:
        """Cache an edited plan immediately and schedule its persistence."""
        start = parse_calendar_date(plan.week_start_date)
        normalized = replace(
            plan,
            week_start_date=week_start(start),
            updated_at=datetime.now(tz=UTC),
        )
        validate_days(normalized)
        key = normalized.week_key
        if not normalized.is_persisted and key in self._assigned_ids:
            normalized = replace(normalized, id=self._assigned_ids[key])
        self.cache.put(normalized)
        self.cache.mark_dirty(key)
        self._enqueue(key, normalized)
        return normalized

    async def add_meal(
        self,
        target: date | str,
        meal_type: MealType,
        entry: MealEntry,
        active_plan: MealPlan | None = None,
    ) -> MealPlan:
        """Append an entry to a slot on the given date."""
        day = parse_calendar_date(target)
        plan = self.cache.get_or_create(day, active_plan)
        return await self.update_plan(
            add_entry(plan, plan.day_index(day), meal_type, entry)
        )

    async def remove_meal(
        self, target: date | str, meal_type: MealType, index: int
    ) -> MealPlan:
        """Remove the entry at index from a slot on the given date."""
        day = parse_calendar_date(target)
        plan = self.cache.get_or_create(day)
        updated, _ = remove_entry(plan, plan.day_index(day), meal_type, index)
        return await self.update_plan(updated)

    async def move_meal(  # noqa: PLR0913
        self,
        from_date: date | str,
        from_type: MealType,
        index: int,
        to_date: date | str,
        to_type: MealType,
    ) -> MealPlan:
        """Move an entry between slots, across weeks if needed.

        Returns the plan that received the entry.
        """
        source_day = parse_calendar_date(from_date)
        target_day = parse_calendar_date(to_date)
        source = self.cache.get_or_create(source_day)
        if week_start(source_day) == week_start(target_day):
            updated = move_entry(
                source,
                source.day_index(source_day),
                from_type,
                index,
                source.day_index(target_day),
                to_type,
            )
            return await self.update_plan(updated)
        without, entry = remove_entry(
            source, source.day_index(source_day), from_type, index
        )
        target = self.cache.get_or_create(target_day)
        with_entry = add_entry(target, target.day_index(target_day), to_type, entry)
        await self.update_plan(without)
        return await self.update_plan(with_entry)

    def status(self, key: str) -> SyncStatus:
        """Return the persistence status of a week."""
        return self._statuses.get(key, SyncStatus.SYNCED)

    def failed_keys(self) -> list[str]:
        """Return the weeks whose latest write failed."""
        return sorted(
            key
            for key, status in self._statuses.items()
            if status is SyncStatus.FAILED
        )

    def retry_failed(self) -> int:
        """Queue the cached plan of every failed week again."""
        retried = 0
        for key in self.failed_keys():
            plan = self.cache.get(key)
            if plan is None:
                continue
            self._enqueue(key, plan)
            retried += 1
        return retried

    async def flush(self) -> None:
        """Wait until every queued write has finished."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()))

    def _enqueue(self, key: str, plan: MealPlan) -> None:
        self._pending[key] = plan
        self._statuses[key] = SyncStatus.PENDING
        if key not in self._workers:
            loop = asyncio.get_running_loop()
            self._workers[key] = loop.create_task(self._drain(key))

    async def _drain(self, key: str) -> None:
        try:
            while key in self._pending:
                plan = self._pending.pop(key)
                await self._persist(key, plan)
        finally:
            self._workers.pop(key, None)

    async def _persist(self, key: str, plan: MealPlan) -> None:
        plan_id = plan.id if plan.is_persisted else self._assigned_ids.get(key)
        try:
            if plan_id:
                fields = plan_to_update_document(plan)
                await self._call_with_retry(
                    lambda: self.client.update_meal_plan(plan_id, fields),
                    action=f"update:{key}",
                )
            else:
                await self._create(key, plan)
        except Exception:
            _logger.exception("Failed to persist meal plan for week %s", key)
            if key not in self._pending:
                self._statuses[key] = SyncStatus.FAILED
            return
        if key not in self._pending:
            self._statuses[key] = SyncStatus.SYNCED
            self.cache.mark_clean(key)
        _logger.info("Meal plan saved for week %s", key)
        self.sync_signal.trigger()

    async def _create(self, key: str, plan: MealPlan) -> None:
        payload = plan_to_create_document(plan)
        document = await self._call_with_retry(
            lambda: self.client.create_meal_plan(payload),
            action=f"create:{key}",
        )
        new_id = self._adopt_assigned_id(key, document)
        mismatched = [
            name for name in MUTABLE_FIELDS if document.get(name) != payload.get(name)
        ]
        if mismatched:
            # The stored plan differs from ours; overwrite it with ours.
            _logger.warning(
                "Store returned plan %s for week %s with different %s, overwriting",
                new_id,
                key,
                ", ".join(mismatched),
            )
            fields = plan_to_update_document(plan)
            await self._call_with_retry(
                lambda: self.client.update_meal_plan(new_id, fields),
                action=f"update:{key}",
            )

    def _adopt_assigned_id(self, key: str, document: dict[str, object]) -> str:
        raw_id = document.get("id") or document.get("_id")
        if not raw_id:
            raise RuntimeError(f"Backing store returned no id for week {key}")
        new_id = str(raw_id)
        self._assigned_ids[key] = new_id
        current = self.cache.get(key)
        if current is not None and not current.is_persisted:
            self.cache.put(replace(current, id=new_id))
        pending = self._pending.get(key)
        if pending is not None and not pending.is_persisted:
            self._pending[key] = replace(pending, id=new_id)
        return new_id

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function, backing off exponentially between attempts."""
        attempt = 0
        delay = self.retry_delay_seconds
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Meal plan %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(delay)
                delay *= self.retry_backoff


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
