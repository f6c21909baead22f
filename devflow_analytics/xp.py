"""XP awards and level progression.

XP is earned per sync:
    - 10 per commit today (first 10 commits only)
    - 5 per day of the current streak
    - 50 per merged PR
    - 200 once a calendar week reaches 7/7 active days

Levels are a fixed table from Newcomer (0 XP) to Immortal (500,000 XP).
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from devflow_analytics.config import LEVELS, XP_DAILY_COMMIT_CAP, XP_REWARDS
from devflow_analytics.metrics import round_half_up
from devflow_analytics.models import (
    DailyAggregate,
    LevelInfo,
    Milestone,
    SyncActivity,
    SyncXp,
    XpAward,
)

logger = logging.getLogger(__name__)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count > 1 else ''}"


# ── Levels ──────────────────────────────────────────────────────────────────

def calculate_level(total_xp: int) -> LevelInfo:
    """Current level and progress towards the next one; 100% at the top level."""
    index = 0
    for i, (_, _, required, _) in enumerate(LEVELS):
        if total_xp >= required:
            index = i
    level, title, required, color = LEVELS[index]
    next_required = LEVELS[min(index + 1, len(LEVELS) - 1)][2]

    if index == len(LEVELS) - 1:
        progress = 100
    else:
        progress = min(100, round_half_up((total_xp - required) / (next_required - required) * 100))

    return LevelInfo(
        level=level,
        title=title,
        xp=total_xp,
        xp_for_current_level=required,
        xp_for_next_level=next_required,
        progress=progress,
        color=color,
    )


def next_milestone(current_xp: int) -> Milestone | None:
    """First level not yet reached, or ``None`` at the top level."""
    for level, title, required, _ in LEVELS:
        if current_xp < required:
            return Milestone(
                level=level,
                title=title,
                xp_required=required,
                xp_remaining=required - current_xp,
            )
    return None


def format_xp(xp: int) -> str:
    if xp >= 1_000_000:
        return f"{xp / 1_000_000:.1f}M"
    if xp >= 1_000:
        return f"{xp / 1_000:.1f}K"
    return str(xp)


# ── Sync awards ─────────────────────────────────────────────────────────────

def calculate_sync_xp(activity: SyncActivity) -> SyncXp:
    """XP earned by one sync, itemised by source."""
    breakdown: list[XpAward] = []

    if activity.new_commits_today > 0:
        breakdown.append(XpAward(
            source="daily_commit",
            amount=XP_REWARDS["daily_commit"] * min(activity.new_commits_today, XP_DAILY_COMMIT_CAP),
            description=f"{_plural(activity.new_commits_today, 'commit')} today",
        ))

    if activity.current_streak > 0:
        breakdown.append(XpAward(
            source="streak_bonus",
            amount=XP_REWARDS["streak_multiplier"] * activity.current_streak,
            description=f"{activity.current_streak}-day streak bonus",
        ))

    if activity.new_prs_merged > 0:
        breakdown.append(XpAward(
            source="pr_merged",
            amount=XP_REWARDS["pr_merged"] * activity.new_prs_merged,
            description=f"{_plural(activity.new_prs_merged, 'PR')} merged",
        ))

    # Only the sync that completes the week earns the bonus.
    if activity.days_active_this_week == 7 and activity.previous_days_active_this_week < 7:
        breakdown.append(XpAward(
            source="week_shipped",
            amount=XP_REWARDS["week_shipped"],
            description="Perfect week! 7/7 days shipped",
        ))

    return SyncXp(total=sum(a.amount for a in breakdown), breakdown=breakdown)


def sync_activity(
    aggregates: list[DailyAggregate],
    today: date,
    current_streak: int,
) -> SyncActivity:
    """Derive a sync's activity from daily aggregates.

    Today's commits and merged PRs count as new. The week is the Monday-based
    calendar week containing *today*; "previous" excludes today.
    """
    week_start = today - timedelta(days=today.weekday())
    this_week = {d.date for d in aggregates if week_start <= d.date <= today and d.is_active}
    todays = [d for d in aggregates if d.date == today]
    return SyncActivity(
        new_commits_today=sum(d.total_commits for d in todays),
        current_streak=current_streak,
        new_prs_merged=sum(d.prs_merged for d in todays),
        days_active_this_week=len(this_week),
        previous_days_active_this_week=len(this_week - {today}),
    )
