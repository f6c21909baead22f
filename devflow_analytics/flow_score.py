"""Dev Flow Score: a 0-100 composite over the last 14 days.

    total = 0.30*building_ratio + 0.25*consistency + 0.20*shipping
          + 0.15*focus + 0.10*recovery

minus an anti-gaming penalty for long idle sessions (10) and for commit
batching on burst days (5).
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from devflow_analytics.config import (
    FLOW_WEIGHTS,
    FLOW_WINDOW_DAYS,
    IDEAL_REST_DAYS,
    TARGET_DAILY_HOURS,
    TARGET_WEEKLY_PRS,
)
from devflow_analytics.metrics import round_half_up
from devflow_analytics.models import (
    AntiGaming,
    DailyAggregate,
    FlowScore,
    FlowScoreComponents,
)

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def score_components(days: list[DailyAggregate]) -> FlowScoreComponents:
    """Five sub-scores, each 0-100, for a window of days."""
    active_days = sum(1 for d in days if d.is_active)
    commits = sum(d.total_commits for d in days)
    prs = sum(d.prs_merged for d in days)
    hours = sum(d.coding_duration_minutes for d in days) / 60

    shipping_raw = min(100, prs * 20 + commits * 2)
    consuming_penalty = 30 if hours > 50 and commits < 20 else 0
    building_ratio = _clamp(shipping_raw - consuming_penalty)

    consistency = min(100, round_half_up(active_days / FLOW_WINDOW_DAYS * 100 * 1.2))

    weeks = FLOW_WINDOW_DAYS / 7
    shipping = min(100, round_half_up(prs / weeks / TARGET_WEEKLY_PRS * 100))

    avg_hours = hours / active_days if active_days else 0.0
    focus = min(100, round_half_up(avg_hours / TARGET_DAILY_HOURS * 100))

    rest_days = FLOW_WINDOW_DAYS - active_days
    balance = 1 - abs(rest_days - IDEAL_REST_DAYS) / IDEAL_REST_DAYS
    recovery = _clamp(round_half_up(balance * 100))

    return FlowScoreComponents(
        building_ratio=int(building_ratio),
        consistency=consistency,
        shipping=shipping,
        focus=focus,
        recovery=int(recovery),
    )


def detect_gaming(days: list[DailyAggregate]) -> AntiGaming:
    """Flag long sessions with little output, and batched commit bursts."""
    result = AntiGaming()
    commits = sum(d.total_commits for d in days)
    hours = sum(d.coding_duration_minutes for d in days) / 60

    if hours > 40 and commits < 10:
        result.detected = True
        result.penalty = 10
        result.reason = "Long sessions with minimal output detected"

    burst = next((d for d in days if d.total_commits > 20), None)
    if burst is not None:
        peak = max(burst.commits_by_hour.values(), default=0)
        if peak > 15:
            result.detected = True
            result.penalty += 5
            result.reason = "Commit batching detected"

    return result


def calculate_flow_score(
    aggregates: list[DailyAggregate],
    today: date,
    previous_score: int | None = None,
    peer_scores: list[int] | None = None,
) -> FlowScore:
    """Score the 14 days ending on *today*.

    *previous_score* is yesterday's total, used for ``score_change``.
    *peer_scores* are other users' current totals, used for the percentile
    and global average; both default to 50 without peers.
    """
    start = today - timedelta(days=FLOW_WINDOW_DAYS)
    days = sorted(
        (d for d in aggregates if start <= d.date <= today),
        key=lambda d: d.date,
        reverse=True,
    )

    components = score_components(days)
    weighted = sum(
        FLOW_WEIGHTS[name] * getattr(components, name) for name in FLOW_WEIGHTS
    )
    gaming = detect_gaming(days)
    final = int(_clamp(round_half_up(weighted) - gaming.penalty))

    recent = days[:7]
    weekly_avg = round_half_up(
        sum(d.productivity_score for d in recent) / max(1, len(recent))
    )

    peers = sorted(peer_scores or [])
    if peers:
        below = sum(1 for s in peers if s < final)
        percentile = round_half_up(below / len(peers) * 100)
        global_avg = round_half_up(sum(peers) / len(peers))
    else:
        percentile = 50
        global_avg = 50

    logger.debug("Flow score %d (components=%s penalty=%d)", final, components, gaming.penalty)

    return FlowScore(
        total_score=final,
        breakdown=components,
        anti_gaming=gaming,
        score_change=final - previous_score if previous_score is not None else 0,
        weekly_avg=weekly_avg,
        global_avg=global_avg,
        percentile=percentile,
    )
