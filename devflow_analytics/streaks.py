"""Current and longest commit streaks.

A streak is a run of consecutive calendar days with at least one commit.
The current streak is alive only if the latest active day is *today* or
yesterday. The longest streak is scanned independently over the whole
history, so an inactive user can still have a non-zero ``longest``.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from devflow_analytics.models import DailyAggregate, StreakInfo

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


def _active_dates_desc(aggregates: Iterable[DailyAggregate]) -> list[date]:
    """Distinct dates with commits, newest first."""
    return sorted({day.date for day in aggregates if day.total_commits > 0}, reverse=True)


def _current_run(dates: list[date], today: date) -> int:
    latest = dates[0]
    if latest not in (today, today - _ONE_DAY):
        return 0

    run = 1
    expected = latest
    for d in dates[1:]:
        expected -= _ONE_DAY
        if d != expected:
            break
        run += 1
    return run


def _longest_run(dates: list[date]) -> int:
    longest = 0
    run = 1
    for prev, d in zip(dates, dates[1:]):
        if prev - d == _ONE_DAY:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return max(longest, run)


def calculate_streak_info(
    aggregates: Iterable[DailyAggregate],
    today: date,
) -> StreakInfo:
    """Compute ``StreakInfo`` from days in any order.

    Returns ``StreakInfo(0, 0, None)`` when no day has commits.
    """
    dates = _active_dates_desc(aggregates)
    if not dates:
        return StreakInfo(current=0, longest=0, last_commit_date=None)

    current = _current_run(dates, today)
    longest = max(_longest_run(dates), current)

    logger.debug("Streak as of %s: current=%d longest=%d", today, current, longest)
    return StreakInfo(current=current, longest=longest, last_commit_date=dates[0])
