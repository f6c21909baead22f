"""Burnout risk model.

    risk = 0.25*long_hours + 0.15*weekend_work + 0.20*late_night
         + 0.20*no_breaks + 0.15*productivity_decline + 0.05*inconsistency

Each factor is normalised to [0, 1]. Tiers start strictly above their
threshold: 0.3 is still ``low``, 0.5 ``medium``, 0.75 ``high``.

Windows with fewer than 7 days get a fixed no-data assessment instead of a
score.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import Any

from devflow_analytics.config import (
    BURNOUT_CONFIDENCE,
    BURNOUT_LATE_NIGHT_HOURS,
    BURNOUT_MIN_DAYS,
    BURNOUT_MODEL_VERSION,
    BURNOUT_TIERS,
    BURNOUT_TOP_TIER,
    BURNOUT_WEIGHTS,
    BURNOUT_WINDOW_DAYS,
    DECLINE_MIN_DAYS,
    INCONSISTENCY_STDDEV,
    LONG_DAY_HOURS,
    NO_BREAK_DAYS,
)
from devflow_analytics.models import (
    BurnoutAssessment,
    BurnoutFactors,
    DailyAggregate,
    Recommendation,
)

logger = logging.getLogger(__name__)

NOT_ENOUGH_DATA = "Not enough data for burnout analysis"


# ── Factors ─────────────────────────────────────────────────────────────────

def long_hours_factor(days: list[DailyAggregate]) -> float:
    """Fraction of days with more than 10 active hours."""
    if not days:
        return 0.0
    long_days = sum(1 for d in days if d.active_hours > LONG_DAY_HOURS)
    return min(long_days / len(days), 1.0)


def count_weekend_days(start: date, end: date) -> int:
    """Saturdays and Sundays in ``[start, end]``."""
    if end < start:
        return 0
    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 2
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() >= 5:
            count += 1
    return count


def weekend_factor(days: list[DailyAggregate]) -> float:
    """Active weekend days over the weekend days the window spans, capped at 1."""
    if not days:
        return 0.0
    expected = count_weekend_days(min(d.date for d in days), max(d.date for d in days))
    if expected <= 0:
        return 0.0
    worked = sum(1 for d in days if d.is_weekend and d.is_active)
    return min(worked / expected, 1.0)


def late_night_factor(days: list[DailyAggregate]) -> float:
    """Share of commits made between 22:00 and 03:00, capped at 1."""
    late = 0
    total = 0
    for d in days:
        late += sum(d.commits_by_hour.get(h, 0) for h in BURNOUT_LATE_NIGHT_HOURS)
        total += d.total_commits
    if total <= 0:
        return 0.0
    return min(late / total, 1.0)


def longest_active_run(days: list[DailyAggregate]) -> int:
    """Longest run of consecutive calendar days that all have commits."""
    best = 0
    run = 0
    prev: date | None = None
    for d in sorted(days, key=lambda x: x.date):
        if not d.is_active:
            run = 0
        elif prev is not None and run and d.date - prev == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        prev = d.date
    return best


def no_breaks_factor(days: list[DailyAggregate]) -> float:
    """Longest active run relative to two weeks, capped at 1."""
    return min(longest_active_run(days) / NO_BREAK_DAYS, 1.0)


def productivity_decline_factor(days: list[DailyAggregate]) -> float:
    """Relative drop in mean daily score from first to second half.

    Needs at least 14 days; a zero first-half mean yields 0.
    """
    if len(days) < DECLINE_MIN_DAYS:
        return 0.0
    midpoint = len(days) // 2
    first = [d.productivity_score for d in days[:midpoint]]
    second = [d.productivity_score for d in days[midpoint:]]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)
    if first_avg <= 0:
        return 0.0
    decline = (first_avg - second_avg) / first_avg
    return max(min(decline, 1.0), 0.0)


def inconsistency_factor(days: list[DailyAggregate]) -> float:
    """Population standard deviation of daily scores over 30, capped at 1."""
    if not days:
        return 0.0
    scores = [d.productivity_score for d in days]
    mean = sum(scores) / len(scores)
    variance = sum((s - mean) ** 2 for s in scores) / len(scores)
    return min(math.sqrt(variance) / INCONSISTENCY_STDDEV, 1.0)


def compute_factors(days: list[DailyAggregate]) -> BurnoutFactors:
    return BurnoutFactors(
        long_hours=long_hours_factor(days),
        weekend_work=weekend_factor(days),
        late_night=late_night_factor(days),
        no_breaks=no_breaks_factor(days),
        productivity_decline=productivity_decline_factor(days),
        inconsistency=inconsistency_factor(days),
    )


# ── Scoring ─────────────────────────────────────────────────────────────────

def risk_score(factors: BurnoutFactors) -> float:
    """Weighted factor sum, rounded so tier boundaries compare exactly."""
    values = factors.as_dict()
    return round(sum(BURNOUT_WEIGHTS[name] * values[name] for name in BURNOUT_WEIGHTS), 9)


def risk_level(score: float) -> str:
    for threshold, level in BURNOUT_TIERS:
        if score <= threshold:
            return level
    return BURNOUT_TOP_TIER


def generate_recommendations(factors: BurnoutFactors) -> list[Recommendation]:
    """Independent threshold checks; several may fire, in check order."""
    recs: list[Recommendation] = []
    if factors.long_hours > 0.5:
        recs.append(Recommendation(
            action="Reduce daily coding hours",
            priority="high",
            description="Try to limit active coding to 8-9 hours per day",
        ))
    if factors.weekend_work > 0.6:
        recs.append(Recommendation(
            action="Take weekends off",
            priority="high",
            description="Reserve at least one full weekend day for rest",
        ))
    if factors.late_night > 0.4:
        recs.append(Recommendation(
            action="Establish a coding cutoff time",
            priority="medium",
            description="Avoid coding after 10pm to improve sleep quality",
        ))
    if factors.no_breaks > 0.7:
        recs.append(Recommendation(
            action="Schedule regular breaks",
            priority="critical",
            description="Take at least one full rest day per week",
        ))
    if factors.productivity_decline > 0.3:
        recs.append(Recommendation(
            action="Address declining productivity",
            priority="high",
            description="Consider taking a short break to recharge",
        ))
    return recs


def describe_factor(name: str, value: float) -> str:
    """Human-readable sentence for one factor value."""
    pct = math.floor(value * 100 + 0.5)
    descriptions = {
        "long_hours": f"You're coding for extended hours {pct}% of the time",
        "weekend_work": f"You work on weekends {pct}% of the time",
        "late_night": f"{pct}% of your commits are late at night",
        "no_breaks": f"You've gone {math.floor(value * NO_BREAK_DAYS + 0.5)} days without a break",
        "productivity_decline": f"Your productivity has declined {pct}%",
        "inconsistency": f"Your coding patterns show {pct}% inconsistency",
    }
    return descriptions.get(name, "")


# ── Entry point ─────────────────────────────────────────────────────────────

def burnout_window(
    aggregates: list[DailyAggregate],
    today: date,
    window_days: int = BURNOUT_WINDOW_DAYS,
) -> list[DailyAggregate]:
    """Days in ``[today - window_days, today]``, oldest first."""
    start = today - timedelta(days=window_days)
    return sorted(
        (d for d in aggregates if start <= d.date <= today),
        key=lambda d: d.date,
    )


def assess_burnout(
    aggregates: list[DailyAggregate],
    today: date,
    window_days: int = BURNOUT_WINDOW_DAYS,
) -> BurnoutAssessment:
    """Run the burnout model over the trailing window ending on *today*."""
    days = burnout_window(aggregates, today, window_days)
    if len(days) < BURNOUT_MIN_DAYS:
        logger.debug("Burnout: only %d days in window, skipping", len(days))
        return BurnoutAssessment(risk_score=0.0, risk_level="low", message=NOT_ENOUGH_DATA)

    factors = compute_factors(days)
    score = risk_score(factors)
    level = risk_level(score)
    logger.debug("Burnout: score=%.3f level=%s factors=%s", score, level, factors)

    return BurnoutAssessment(
        risk_score=score,
        risk_level=level,
        factors=factors,
        recommendations=generate_recommendations(factors),
    )


def assessment_record(assessment: BurnoutAssessment, user_id: str) -> dict[str, Any]:
    """Shape an assessment as an audit row for a persistence collaborator."""
    factors = assessment.factors.as_dict() if assessment.factors else {}
    return {
        "user_id": user_id,
        "burnout_risk_score": assessment.risk_score,
        "risk_level": assessment.risk_level,
        "factors": [
            {"factor": name, "weight": value, "description": describe_factor(name, value)}
            for name, value in factors.items()
        ],
        "recommendations": [
            {"action": r.action, "priority": r.priority, "description": r.description}
            for r in assessment.recommendations
        ],
        "model_version": BURNOUT_MODEL_VERSION,
        "confidence": BURNOUT_CONFIDENCE,
    }
