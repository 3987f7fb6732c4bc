# ==============================================================================
# staffscore/calculator/streak.py
# ------------------------------------------------------------------------------
# Consecutive-activity ("streak") detection over calendar dates.
# ==============================================================================

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

ONE_DAY = 1


@dataclass(frozen=True)
class StreakResult:
    current_streak: int = 0
    max_streak: int = 0
    last_activity_date: Optional[date] = None

    def to_dict(self):
        return {
            'current_streak': self.current_streak,
            'max_streak': self.max_streak,
            'last_activity_date': self.last_activity_date.isoformat() if self.last_activity_date else None,
        }


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _max_streak(ascending):
    if not ascending:
        return 0
    best = running = 1
    for previous, current in zip(ascending, ascending[1:]):
        if (current - previous).days == ONE_DAY:
            running += 1
            best = max(best, running)
        else:
            running = 1
    return best


def _current_streak(ascending, reference_date):
    last = ascending[-1]
    if (reference_date - last).days > ONE_DAY:
        return 0
    streak = 1
    expected = last
    for day in reversed(ascending[:-1]):
        if (expected - day).days != ONE_DAY:
            break
        streak += 1
        expected = day
    return streak


def calculate_streak(activity_dates, reference_date):
    """
    Computes the current and best run of consecutive activity days.

    Args:
        activity_dates (Iterable[date | str]): Days with at least one sale.
            Duplicates are ignored; ISO strings are accepted.
        reference_date (date | str): The "today" the current streak is
            measured against. Always supplied by the caller.

    Returns:
        StreakResult: current_streak is 0 once the latest activity is more
        than one day before the reference date. Activity dated after the
        reference date is not dropped: the run ending on the latest activity
        still counts as current. Callers cap the reference at the period end.
    """
    ascending = sorted({_as_date(d) for d in activity_dates})
    if not ascending:
        return StreakResult()

    return StreakResult(
        current_streak=_current_streak(ascending, _as_date(reference_date)),
        max_streak=_max_streak(ascending),
        last_activity_date=ascending[-1],
    )


def calculate_streaks_for_employees(dates_by_employee, reference_date):
    """Runs `calculate_streak` for every employee in a {id: dates} mapping."""
    return {
        employee_id: calculate_streak(dates, reference_date)
        for employee_id, dates in dates_by_employee.items()
    }
