"""Tests for the streak calculator."""

from __future__ import annotations

import random
from datetime import date, timedelta

from devflow_analytics.models import DailyAggregate, StreakInfo
from devflow_analytics.streaks import calculate_streak_info

# ── Helpers ─────────────────────────────────────────────────────────────────


def _days(*pairs: tuple[str, int]) -> list[DailyAggregate]:
    """Build aggregates from ``(iso_date, commits)`` pairs."""
    return [DailyAggregate(date=date.fromisoformat(d), total_commits=c) for d, c in pairs]


# ── Current streak ──────────────────────────────────────────────────────────


def test_streak_counts_back_from_yesterday() -> None:
    days = _days(("2024-01-01", 1), ("2024-01-02", 1), ("2024-01-03", 0))
    info = calculate_streak_info(days, today=date(2024, 1, 3))
    assert info == StreakInfo(current=2, longest=2, last_commit_date=date(2024, 1, 2))


def test_streak_counts_today() -> None:
    days = _days(("2024-01-02", 3), ("2024-01-03", 1))
    info = calculate_streak_info(days, today=date(2024, 1, 3))
    assert info.current == 2


def test_streak_broken_by_gap_before_yesterday() -> None:
    days = _days(("2024-01-01", 1), ("2024-01-02", 1), ("2024-01-03", 1))
    info = calculate_streak_info(days, today=date(2024, 1, 5))
    assert info.current == 0
    assert info.longest == 3
    assert info.last_commit_date == date(2024, 1, 3)


def test_current_streak_stops_at_first_gap() -> None:
    days = _days(
        ("2024-01-10", 1),
        ("2024-01-09", 2),
        ("2024-01-07", 1),
        ("2024-01-06", 1),
        ("2024-01-05", 1),
        ("2024-01-04", 1),
    )
    info = calculate_streak_info(days, today=date(2024, 1, 10))
    assert info.current == 2
    assert info.longest == 4


# ── Edge cases ──────────────────────────────────────────────────────────────


def test_streak_empty_history() -> None:
    assert calculate_streak_info([], today=date(2024, 1, 1)) == StreakInfo(0, 0, None)


def test_streak_only_zero_commit_days() -> None:
    days = _days(("2024-01-01", 0), ("2024-01-02", 0))
    assert calculate_streak_info(days, today=date(2024, 1, 2)) == StreakInfo(0, 0, None)


def test_single_active_day_long_ago() -> None:
    info = calculate_streak_info(_days(("2023-06-01", 4)), today=date(2024, 1, 1))
    assert info == StreakInfo(current=0, longest=1, last_commit_date=date(2023, 6, 1))


def test_streak_ignores_input_order() -> None:
    days = _days(
        ("2024-01-03", 1),
        ("2024-01-01", 1),
        ("2024-01-04", 2),
        ("2024-01-02", 1),
    )
    today = date(2024, 1, 4)
    assert calculate_streak_info(days, today) == calculate_streak_info(list(reversed(days)), today)
    assert calculate_streak_info(days, today).current == 4


# ── Properties ──────────────────────────────────────────────────────────────


def test_longest_never_below_current() -> None:
    rng = random.Random(42)
    today = date(2024, 3, 1)
    for _ in range(200):
        days = [
            DailyAggregate(date=today - timedelta(days=i), total_commits=rng.choice([0, 0, 1, 3]))
            for i in range(rng.randint(0, 40))
        ]
        rng.shuffle(days)
        info = calculate_streak_info(days, today)
        assert info.longest >= info.current
        assert info.current >= 0
