"""Tests for XP awards and levels."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from devflow_analytics.models import DailyAggregate, SyncActivity
from devflow_analytics.xp import (
    calculate_level,
    calculate_sync_xp,
    format_xp,
    next_milestone,
    sync_activity,
)

# ── Levels ──────────────────────────────────────────────────────────────────


def test_new_user_is_newcomer() -> None:
    info = calculate_level(0)
    assert (info.level, info.title, info.progress) == (1, "Newcomer", 0)
    assert info.xp_for_next_level == 500


def test_level_progress_rounds() -> None:
    info = calculate_level(1250)  # halfway from 500 to 2000
    assert info.title == "Contributor"
    assert info.xp_for_current_level == 500
    assert info.progress == 50


def test_exact_threshold_reaches_level() -> None:
    assert calculate_level(2000).title == "Shipper"
    assert calculate_level(1999).title == "Contributor"


def test_top_level_is_full() -> None:
    info = calculate_level(750_000)
    assert info.title == "Immortal"
    assert info.progress == 100
    assert info.xp_for_next_level == 500_000


@pytest.mark.parametrize(
    ("xp", "expected"),
    [(0, (5, 500)), (499, (5, 1)), (500, (10, 1500)), (99_999, (50, 1))],
)
def test_next_milestone(xp: int, expected: tuple[int, int]) -> None:
    milestone = next_milestone(xp)
    assert (milestone.level, milestone.xp_remaining) == expected


def test_no_milestone_after_top_level() -> None:
    assert next_milestone(500_000) is None


def test_format_xp() -> None:
    assert format_xp(950) == "950"
    assert format_xp(12_500) == "12.5K"
    assert format_xp(2_000_000) == "2.0M"


# ── Sync awards ─────────────────────────────────────────────────────────────


def test_sync_xp_breakdown() -> None:
    award = calculate_sync_xp(SyncActivity(
        new_commits_today=14,
        current_streak=3,
        new_prs_merged=2,
        days_active_this_week=7,
        previous_days_active_this_week=6,
    ))
    assert [(a.source, a.amount) for a in award.breakdown] == [
        ("daily_commit", 100),  # capped at 10 commits
        ("streak_bonus", 15),
        ("pr_merged", 100),
        ("week_shipped", 200),
    ]
    assert award.total == 415
    assert award.breakdown[0].description == "14 commits today"
    assert award.breakdown[2].description == "2 PRs merged"


def test_singular_descriptions() -> None:
    award = calculate_sync_xp(SyncActivity(new_commits_today=1, new_prs_merged=1))
    assert [a.description for a in award.breakdown] == ["1 commit today", "1 PR merged"]


def test_week_bonus_only_once() -> None:
    award = calculate_sync_xp(SyncActivity(days_active_this_week=7, previous_days_active_this_week=7))
    assert award.total == 0
    assert award.breakdown == []


def test_sync_activity_from_aggregates() -> None:
    sunday = date(2024, 1, 14)
    days = [
        DailyAggregate(date=sunday - timedelta(days=i), total_commits=2, prs_merged=1 if i == 0 else 0)
        for i in range(9)
    ]
    activity = sync_activity(days, sunday, current_streak=9)
    assert activity.new_commits_today == 2
    assert activity.new_prs_merged == 1
    assert activity.days_active_this_week == 7
    assert activity.previous_days_active_this_week == 6
    assert calculate_sync_xp(activity).total == 20 + 45 + 50 + 200
