"""Metric calculators over daily activity aggregates.

Implements the productivity score:
    raw   = (10*commits + 25*prs_merged + 10*prs_opened + 15*issues_closed
             + 20*reviews + 5*log10(lines_changed + 1)) * consistency
    consistency = min(active_days / 7, 1.5)
    score = clamp(round(raw / 50), 0, 100)

plus the grouping helpers behind the dashboard charts (hour of day, day of
week, languages, repositories, code volume, heatmap, trend) and the
personal-best records.

Every function here is pure: same input, same output, no I/O.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from devflow_analytics.config import (
    BEST_WEEK_DAYS,
    COMMIT_POINTS,
    CONSISTENCY_DAYS,
    DAILY_COMMIT_POINTS,
    DEFAULT_PRODUCTIVE_HOUR,
    DEFAULT_TOP_REPOS,
    HEATMAP_DAYS,
    ISSUE_CLOSED_POINTS,
    MAX_CONSISTENCY_MULTIPLIER,
    PR_MERGED_POINTS,
    PR_OPENED_POINTS,
    REVIEW_POINTS,
    SCORE_NORMALIZER,
    TREND_DOWN_RATIO,
    TREND_UP_RATIO,
    VOLUME_COEFF,
)
from devflow_analytics.models import (
    CodeVolume,
    DailyAggregate,
    DayOfWeekBucket,
    HeatmapCell,
    HourBucket,
    LanguageShare,
    PeriodSummary,
    PersonalBests,
    ProductivityStats,
    RepoCount,
    TrendPoint,
)
from devflow_analytics.streaks import calculate_streak_info

logger = logging.getLogger(__name__)

DAY_NAMES: list[str] = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (``round`` is banker's)."""
    return math.floor(value + 0.5)


def sunday_index(day: date) -> int:
    """Day-of-week index with Sunday as 0."""
    return (day.weekday() + 1) % 7


# ── Productivity score ──────────────────────────────────────────────────────

def calculate_productivity_score(stats: ProductivityStats) -> int:
    """Weighted activity score on a 0-100 scale.

    Monotonically non-decreasing in every count. ``active_days`` only feeds
    the consistency multiplier, which caps at 1.5 (10.5 active days).
    """
    volume = VOLUME_COEFF * math.log10(stats.lines_added + stats.lines_deleted + 1)
    base = (
        COMMIT_POINTS * stats.total_commits
        + PR_MERGED_POINTS * stats.prs_merged
        + PR_OPENED_POINTS * stats.prs_opened
        + ISSUE_CLOSED_POINTS * stats.issues_closed
        + REVIEW_POINTS * stats.code_reviews
        + volume
    )
    multiplier = min(stats.active_days / CONSISTENCY_DAYS, MAX_CONSISTENCY_MULTIPLIER)
    raw = base * multiplier
    return max(0, min(round_half_up(raw / SCORE_NORMALIZER), 100))


def daily_productivity_score(total_commits: int) -> int:
    """Score persisted on each day's aggregate: ``min(commits * 10, 100)``."""
    return min(total_commits * DAILY_COMMIT_POINTS, 100)


def period_stats(aggregates: Iterable[DailyAggregate]) -> ProductivityStats:
    """Fold a run of days into ``ProductivityStats``.

    ``active_days`` counts days with at least one commit, floored at 1 so the
    result is always a valid score input.
    """
    stats = ProductivityStats()
    active = 0
    for day in aggregates:
        stats.total_commits += day.total_commits
        stats.prs_merged += day.prs_merged
        stats.prs_opened += day.prs_opened
        stats.issues_closed += day.issues_closed
        stats.code_reviews += day.code_reviews
        stats.lines_added += day.lines_added
        stats.lines_deleted += day.lines_deleted
        if day.is_active:
            active += 1
    stats.active_days = max(active, 1)
    return stats


def calculate_average_score(aggregates: list[DailyAggregate]) -> int:
    if not aggregates:
        return 0
    total = sum(day.productivity_score for day in aggregates)
    return round_half_up(total / len(aggregates))


# ── Time distributions ──────────────────────────────────────────────────────

def format_hour(hour: int) -> str:
    """``0 -> '12 AM'``, ``13 -> '1 PM'``."""
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def analyze_commit_times(aggregates: Iterable[DailyAggregate]) -> list[HourBucket]:
    """Commits per hour of day, always 24 buckets ordered 0..23."""
    counts = [0] * 24
    for day in aggregates:
        for hour, count in day.commits_by_hour.items():
            if 0 <= hour < 24:
                counts[hour] += count
    return [HourBucket(hour=h, count=c, label=format_hour(h)) for h, c in enumerate(counts)]


def analyze_day_of_week(aggregates: Iterable[DailyAggregate]) -> list[DayOfWeekBucket]:
    """Commits per weekday, Sunday first."""
    counts = [0] * 7
    for day in aggregates:
        counts[sunday_index(day.date)] += day.total_commits
    return [
        DayOfWeekBucket(day=DAY_NAMES[i], count=c, day_index=i)
        for i, c in enumerate(counts)
    ]


# ── Grouping ────────────────────────────────────────────────────────────────

def calculate_language_distribution(
    aggregates: Iterable[DailyAggregate],
) -> list[LanguageShare]:
    """Language totals sorted by count, with integer percentages.

    Percentages are rounded individually, so they sum to roughly 100.
    """
    totals: dict[str, int] = defaultdict(int)
    for day in aggregates:
        for language, count in day.languages.items():
            totals[language] += count

    grand_total = sum(totals.values())
    if grand_total <= 0:
        return []

    shares = [
        LanguageShare(
            language=language,
            count=count,
            percentage=round_half_up(count / grand_total * 100),
        )
        for language, count in totals.items()
    ]
    shares.sort(key=lambda s: s.count, reverse=True)
    return shares


def get_top_repositories(
    aggregates: Iterable[DailyAggregate],
    limit: int = DEFAULT_TOP_REPOS,
) -> list[RepoCount]:
    """Repositories ranked by commits over the period."""
    totals: dict[str, int] = defaultdict(int)
    for day in aggregates:
        for repo, commits in day.repos.items():
            totals[repo] += commits

    ranked = sorted(totals.items(), key=lambda x: x[1], reverse=True)
    return [RepoCount(repo=repo, commits=commits) for repo, commits in ranked[:limit]]


def calculate_code_volume(aggregates: Iterable[DailyAggregate]) -> CodeVolume:
    added = 0
    deleted = 0
    for day in aggregates:
        added += day.lines_added
        deleted += day.lines_deleted
    return CodeVolume(
        total_lines=added + deleted,
        lines_added=added,
        lines_deleted=deleted,
        net_change=added - deleted,
    )


# ── Trend & heatmap ─────────────────────────────────────────────────────────

def generate_productivity_trend(aggregates: Iterable[DailyAggregate]) -> list[TrendPoint]:
    return [
        TrendPoint(
            date=day.date,
            score=day.productivity_score,
            commits=day.total_commits,
            prs=day.prs_merged,
            issues=day.issues_closed,
            reviews=day.code_reviews,
        )
        for day in aggregates
    ]


def heatmap_level(count: int) -> int:
    """Contribution-graph intensity: 0, 1-2, 3-5, 6-8, 9+."""
    if count <= 0:
        return 0
    if count < 3:
        return 1
    if count < 6:
        return 2
    if count < 9:
        return 3
    return 4


def generate_commit_heatmap(
    aggregates: Iterable[DailyAggregate],
    today: date,
    days: int = HEATMAP_DAYS,
) -> list[HeatmapCell]:
    """One cell per calendar day, oldest first, ending on *today*.

    Days without an aggregate are filled with zero.
    """
    by_date = {day.date: day.total_commits for day in aggregates}
    cells: list[HeatmapCell] = []
    for offset in range(days - 1, -1, -1):
        d = today - timedelta(days=offset)
        count = by_date.get(d, 0)
        cells.append(HeatmapCell(date=d, count=count, level=heatmap_level(count)))
    return cells


# ── Period summary ──────────────────────────────────────────────────────────

def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def score_trend(scores: list[int]) -> str:
    """Compare second-half vs first-half mean: ``up``, ``down`` or ``stable``."""
    if len(scores) < 2:
        return "stable"
    midpoint = len(scores) // 2
    first_avg = _mean(scores[:midpoint])
    second_avg = _mean(scores[midpoint:])
    if second_avg > first_avg * TREND_UP_RATIO:
        return "up"
    if second_avg < first_avg * TREND_DOWN_RATIO:
        return "down"
    return "stable"


def summarize_period(
    aggregates: list[DailyAggregate],
    period_days: int,
) -> PeriodSummary:
    """Roll a date-ordered list of days up into a ``PeriodSummary``.

    PR totals count both opened and merged pull requests.
    """
    summary = PeriodSummary(period_days=period_days)
    if not aggregates:
        summary.most_productive_hour = DEFAULT_PRODUCTIVE_HOUR
        return summary

    ordered = sorted(aggregates, key=lambda d: d.date)
    languages: dict[str, int] = defaultdict(int)
    for day in ordered:
        summary.total_commits += day.total_commits
        summary.total_prs += day.prs_opened + day.prs_merged
        summary.total_issues += day.issues_closed
        summary.total_lines_added += day.lines_added
        summary.total_lines_deleted += day.lines_deleted
        for language, count in day.languages.items():
            languages[language] += count
        if day.is_weekend:
            summary.weekend_commits += day.total_commits
        else:
            summary.weekday_commits += day.total_commits

    summary.active_days = sum(1 for day in ordered if day.is_active)
    summary.top_languages = dict(languages)

    scores = [day.productivity_score for day in ordered]
    summary.average_score = round_half_up(_mean(scores))
    summary.trend = score_trend(scores)

    hours = analyze_commit_times(ordered)
    busiest = max(hours, key=lambda b: b.count)
    summary.most_productive_hour = (
        busiest.hour if busiest.count > 0 else DEFAULT_PRODUCTIVE_HOUR
    )

    logger.debug(
        "Summarised %d days: commits=%d active=%d trend=%s",
        len(ordered),
        summary.total_commits,
        summary.active_days,
        summary.trend,
    )
    return summary


# ── Personal bests ──────────────────────────────────────────────────────────

def best_week_commits(aggregates: Iterable[DailyAggregate], days: int = BEST_WEEK_DAYS) -> int:
    """Most commits in any run of *days* calendar days.

    Windows are calendar-based, so missing dates count as zero-commit days.
    """
    ordered = sorted(aggregates, key=lambda d: d.date)
    best = 0
    running = 0
    start = 0
    for day in ordered:
        running += day.total_commits
        while ordered[start].date <= day.date - timedelta(days=days):
            running -= ordered[start].total_commits
            start += 1
        best = max(best, running)
    return best


def personal_bests(aggregates: list[DailyAggregate], today: date) -> PersonalBests:
    """All-time records: best day and week, first commit, active months, streaks."""
    ordered = sorted(aggregates, key=lambda d: d.date)
    active = [d for d in ordered if d.is_active]
    streak = calculate_streak_info(ordered, today)
    return PersonalBests(
        longest_streak=streak.longest,
        current_streak=streak.current,
        most_commits_in_day=max((d.total_commits for d in ordered), default=0),
        most_commits_in_week=best_week_commits(ordered),
        total_commits=sum(d.total_commits for d in ordered),
        total_prs=sum(d.prs_merged for d in ordered),
        first_commit_date=active[0].date if active else None,
        active_months=len({(d.date.year, d.date.month) for d in active}),
    )
