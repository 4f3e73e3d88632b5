"""In-memory cache of meal plans keyed by week."""

import logging
from dataclasses import dataclass
from datetime import date

from meal_plan_sync.domain.meal_plans import MealPlan, create_empty_meal_plan
from meal_plan_sync.domain.sync import FetchState
from meal_plan_sync.domain.weeks import week_key

_logger = logging.getLogger(__name__)


@dataclass
class PlanCache:
    """Holds the plans a planner session knows about, one per week key."""

    owner_id: str
    _plans: dict[str, MealPlan]
    _fetch_states: dict[str, FetchState]
    _dirty: set[str]
    _edits: int
    _edited_at: dict[str, int]

    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id
        self._plans = {}
        self._fetch_states = {}
        self._dirty = set()
        self._edits = 0
        self._edited_at = {}

    def get(self, key: str) -> MealPlan | None:
        """Return the cached plan for a week key, if any."""
        return self._plans.get(key)

    def get_or_create(
        self, value: date, active_plan: MealPlan | None = None
    ) -> MealPlan:
        """Return the plan for the week containing value, creating it if needed.

        Falls back to the active plan when it covers the same week, and to a
        new empty plan otherwise.
        """
        key = week_key(value)
        cached = self._plans.get(key)
        if cached is not None:
            return cached
        if active_plan is not None and active_plan.week_key == key:
            self._plans[key] = active_plan
            return active_plan
        if self.fetch_state(key) is FetchState.UNKNOWN:
            _logger.warning(
                "Creating empty plan for week %s before it was fetched", key
            )
        plan = create_empty_meal_plan(self.owner_id, value)
        self._plans[key] = plan
        return plan

    def put(self, plan: MealPlan) -> None:
        """Store a plan at its week key, replacing any previous entry."""
        self._plans[plan.week_key] = plan

    def keys(self) -> list[str]:
        """Return the cached week keys in ascending order."""
        return sorted(self._plans)

    def plans(self) -> list[MealPlan]:
        """Return cached plans ordered by week."""
        return [self._plans[key] for key in self.keys()]

    def fetch_state(self, key: str) -> FetchState:
        """Return whether the week has been fetched from the backing store."""
        return self._fetch_states.get(key, FetchState.UNKNOWN)

    def edit_token(self) -> int:
        """Return a token ordering fetches against local edits."""
        return self._edits

    def mark_loading(self, key: str) -> int:
        """Record that a fetch for the week is in flight and return its token."""
        self._fetch_states[key] = FetchState.LOADING
        return self._edits

    def mark_fetched(
        self, key: str, plan: MealPlan | None, since: int | None = None
    ) -> bool:
        """Record a fetch result and adopt the fetched plan when safe.

        Returns True when the fetched plan was written to the cache. Entries
        holding unsynced local edits are kept, as are entries edited after
        the fetch identified by ``since`` was issued.
        """
        if plan is None:
            self._fetch_states[key] = FetchState.NOT_FOUND
            return False
        self._fetch_states[key] = FetchState.FOUND
        if self.is_dirty(key):
            _logger.info("Keeping unsynced local plan for week %s", key)
            return False
        if since is not None and self._edited_at.get(key, 0) > since:
            _logger.info("Ignoring stale fetch for week %s", key)
            return False
        self._plans[key] = plan
        return True

    def forget_fetch(self, key: str) -> None:
        """Mark the week as needing a fresh fetch."""
        self._fetch_states.pop(key, None)

    def mark_dirty(self, key: str) -> None:
        """Record that the week holds edits not yet persisted."""
        self._dirty.add(key)
        self._edits += 1
        self._edited_at[key] = self._edits

    def mark_clean(self, key: str) -> None:
        """Record that the week's latest edit has been persisted."""
        self._dirty.discard(key)

    def is_dirty(self, key: str) -> bool:
        """Return True when the week holds unsynced edits."""
        return key in self._dirty
