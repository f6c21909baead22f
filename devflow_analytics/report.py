"""Assemble every calculator's output into one JSON-ready report."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any

from devflow_analytics.burnout import assess_burnout, assessment_record
from devflow_analytics.config import DEFAULT_LOOKBACK_DAYS
from devflow_analytics.flow_score import calculate_flow_score
from devflow_analytics.metrics import (
    analyze_commit_times,
    analyze_day_of_week,
    calculate_average_score,
    calculate_code_volume,
    calculate_language_distribution,
    calculate_productivity_score,
    generate_commit_heatmap,
    generate_productivity_trend,
    get_top_repositories,
    period_stats,
    personal_bests,
    summarize_period,
)
from devflow_analytics.models import DailyAggregate
from devflow_analytics.streaks import calculate_streak_info
from devflow_analytics.xp import calculate_sync_xp, sync_activity


def _jsonable(value: Any) -> Any:
    """Dataclasses to dicts, dates to ISO strings."""
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    return value


def build_report(
    user_id: str,
    aggregates: list[DailyAggregate],
    today: date,
    period_days: int = DEFAULT_LOOKBACK_DAYS,
) -> dict[str, Any]:
    """Run every calculator for one user and return a JSON-ready dict.

    ``xp_earned`` is the award a sync on *today* would grant.
    """
    ordered = sorted(aggregates, key=lambda d: d.date)
    streak = calculate_streak_info(ordered, today)
    burnout = assess_burnout(ordered, today)

    report = {
        "user_id": user_id,
        "as_of": today,
        "productivity_score": calculate_productivity_score(period_stats(ordered)),
        "average_daily_score": calculate_average_score(ordered),
        "summary": summarize_period(ordered, period_days),
        "streak": streak,
        "code_volume": calculate_code_volume(ordered),
        "languages": calculate_language_distribution(ordered),
        "top_repositories": get_top_repositories(ordered),
        "commit_times": analyze_commit_times(ordered),
        "day_of_week": analyze_day_of_week(ordered),
        "trend": generate_productivity_trend(ordered),
        "heatmap": generate_commit_heatmap(ordered, today),
        "flow_score": calculate_flow_score(ordered, today),
        "personal_bests": personal_bests(ordered, today),
        "xp_earned": calculate_sync_xp(sync_activity(ordered, today, streak.current)),
        "burnout": assessment_record(burnout, user_id) if burnout.has_data else {
            "user_id": user_id,
            "burnout_risk_score": burnout.risk_score,
            "risk_level": burnout.risk_level,
            "message": burnout.message,
        },
    }
    return _jsonable(report)
