"""Week key derivation and calendar helpers."""

from datetime import date, datetime, timedelta

DAYS_PER_WEEK = 7


class InvalidPlanDateError(ValueError):
    """Raised when a value cannot be read as a calendar date."""


def parse_calendar_date(value: object) -> date:
    """Return the calendar date for a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        # ISO timestamps keep only their date part so offsets never shift the day.
        date_part = cleaned.split("T", 1)[0].split(" ", 1)[0]
        try:
            return date.fromisoformat(date_part)
        except ValueError as exc:
            raise InvalidPlanDateError(f"Invalid date: {value!r}") from exc
    raise InvalidPlanDateError(f"Invalid date: {value!r}")


def week_start(value: object) -> date:
    """Return the Monday of the week containing the value."""
    day = parse_calendar_date(value)
    return day - timedelta(days=(day.isoweekday() - 1) % DAYS_PER_WEEK)


def week_key(value: object) -> str:
    """Return the canonical cache key for the week containing the value."""
    return week_start(value).isoformat()


def week_dates(start: date) -> list[date]:
    """Return the 7 dates of the week beginning at start."""
    return [start + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def current_week_start(today: date | None = None) -> date:
    """Return the Monday of the current week."""
    return week_start(today or date.today())


def format_week_range(start: date) -> str:
    """Format a week as e.g. 'Mar 11 - Mar 17'."""
    end = start + timedelta(days=DAYS_PER_WEEK - 1)
    return f"{_short(start)} - {_short(end)}"


def _short(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"
