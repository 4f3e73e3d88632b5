"""Keeps the displayed plan in line with the cache as the calendar view changes."""

import asyncio
import calendar
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta

from meal_plan_sync.domain.meal_plans import MealPlan
from meal_plan_sync.domain.sync import ViewMode
from meal_plan_sync.domain.weeks import DAYS_PER_WEEK, parse_calendar_date, week_key
from meal_plan_sync.services.plan_cache import PlanCache
from meal_plan_sync.services.plan_loader import PlanLoader
from meal_plan_sync.services.sync_signal import SyncSignal

_logger = logging.getLogger(__name__)

DIRECTIONS = ("previous", "next", "today")


@dataclass
class ViewSynchronizer:
    """Reconciles the active plan with the cache after view or date changes.

    View changes and navigation schedule a single settle step after
    ``debounce_seconds``. Triggering again before it runs cancels the pending
    step, so pending edits reach the cache before the view reads it.
    """

    cache: PlanCache
    loader: PlanLoader | None = None
    sync_signal: SyncSignal | None = None
    debounce_seconds: float = 0.15
    view_mode: ViewMode = ViewMode.WEEK
    current_date: date = field(default_factory=date.today)
    active_plan: MealPlan | None = None
    settle_count: int = 0
    _pending: asyncio.Task[MealPlan] | None = field(default=None, init=False)
    _refresh: asyncio.Task[None] | None = field(default=None, init=False)
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.sync_signal is not None:
            self._unsubscribe = self.sync_signal.subscribe(self._on_sync)

    def set_view_mode(self, mode: ViewMode) -> None:
        """Switch the calendar view and schedule a settle step."""
        if mode is self.view_mode:
            return
        self.view_mode = mode
        self._schedule_settle()

    def navigate(self, target: date | str) -> None:
        """Move the calendar to a date and schedule a settle step."""
        self.current_date = parse_calendar_date(target)
        self._schedule_settle()

    def step(self, direction: str, today: date | None = None) -> date:
        """Navigate one view-sized step backwards, forwards or to today."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown navigation direction: {direction}")
        if direction == "today":
            target = today or date.today()
        else:
            sign = -1 if direction == "previous" else 1
            target = _shift(self.current_date, self.view_mode, sign)
        self.navigate(target)
        return target

    def reconcile(self, target: date | str | None = None) -> MealPlan:
        """Pick the plan to display for a date and make it active.

        A cached plan wins. Next comes the active plan when it covers the same
        week, which is also written to the cache. Otherwise an empty plan is
        created for the week.
        """
        day = parse_calendar_date(target) if target is not None else self.current_date
        key = week_key(day)
        cached = self.cache.get(key)
        if cached is not None:
            plan = cached
        elif self.active_plan is not None and self.active_plan.week_key == key:
            self.cache.put(self.active_plan)
            plan = self.active_plan
        else:
            plan = self.cache.get_or_create(day)
        self.active_plan = plan
        return plan

    async def settle(self) -> MealPlan:
        """Reconcile now and load the week if it was never fetched."""
        self.settle_count += 1
        plan = self.reconcile()
        key = plan.week_key
        if self.loader is not None and self.loader.needs_fetch(key):
            # Shielded so a re-trigger never abandons a fetch half way.
            await asyncio.shield(self.loader.load_week(key))
            if week_key(self.current_date) == key:
                plan = self.reconcile()
        return plan

    async def wait_settled(self) -> MealPlan | None:
        """Wait for pending settle and refresh work, returning the active plan."""
        while self._pending is not None and not self._pending.done():
            await asyncio.wait({self._pending})
        if self._refresh is not None and not self._refresh.done():
            await asyncio.wait({self._refresh})
        return self.active_plan

    def close(self) -> None:
        """Cancel scheduled work and stop listening for sync signals."""
        for task in (self._pending, self._refresh):
            if task is not None and not task.done():
                task.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _schedule_settle(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._settle_after_delay())

    async def _settle_after_delay(self) -> MealPlan:
        await asyncio.sleep(self.debounce_seconds)
        return await self.settle()

    def _on_sync(self) -> None:
        if self.loader is None or self.active_plan is None:
            return
        key = self.active_plan.week_key
        if self.cache.is_dirty(key):
            return
        if self._refresh is not None and not self._refresh.done():
            return
        self.cache.forget_fetch(key)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running loop, skipping refresh of week %s", key)
            return
        self._refresh = loop.create_task(self._refresh_week(key))

    async def _refresh_week(self, key: str) -> None:
        if self.loader is None:
            return
        plan = await self.loader.load_week(key)
        if (
            plan is not None
            and self.active_plan is not None
            and self.active_plan.week_key == key
        ):
            self.active_plan = plan


def _shift(current: date, mode: ViewMode, sign: int) -> date:
    if mode is ViewMode.DAY:
        return current + timedelta(days=sign)
    if mode is ViewMode.WEEK:
        return current + timedelta(days=sign * DAYS_PER_WEEK)
    month_index = current.year * 12 + current.month - 1 + sign
    year, month = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(current.day, last_day))
