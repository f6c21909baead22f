"""Developer archetype classifier.

Each archetype collects points from a declarative rule table evaluated
against a feature vector built from the last 14 days. Rules are additive
and independent, so one user can score toward several archetypes at once.

Selection is the highest score; ties go to the archetype declared first in
``ARCHETYPE_KEYS``. A winning score of 20 or less falls back to
``silent_builder``. Confidence is ``min(0.95, winning_score / 100)``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from devflow_analytics.config import (
    ARCHETYPE_FALLBACK,
    ARCHETYPE_LATE_NIGHT_HOURS,
    ARCHETYPE_MAX_CONFIDENCE,
    ARCHETYPE_MIN_DAYS,
    ARCHETYPE_MIN_WINNING_SCORE,
    ARCHETYPE_WINDOW_DAYS,
)
from devflow_analytics.history import ArchetypeHistoryStore
from devflow_analytics.models import (
    ArchetypeAssignment,
    ArchetypeClassification,
    ArchetypeDefinition,
    ArchetypeFeatureVector,
    DailyAggregate,
    RevealStatus,
)

logger = logging.getLogger(__name__)

# Declaration order is the tie-break order.
ARCHETYPE_KEYS: tuple[str, ...] = (
    "tutorial_addict",
    "chaos_coder",
    "burnout_sprinter",
    "silent_builder",
    "momentum_machine",
    "consistent_operator",
    "overnight_architect",
    "weekend_warrior",
)

ARCHETYPES: dict[str, ArchetypeDefinition] = {
    "tutorial_addict": ArchetypeDefinition(
        key="tutorial_addict",
        name="Tutorial Addict",
        emoji="📚",
        description=(
            "You consume. You learn. But you rarely build. "
            "Ideas stay in your head, not in production."
        ),
        strengths=("Quick learner", "Broad knowledge", "Curious mind"),
        weaknesses=("Analysis paralysis", "Never ships", "Comfort zone trap"),
        trigger_conditions="High learning activity, low shipping ratio, < 3 PRs/month",
    ),
    "chaos_coder": ArchetypeDefinition(
        key="chaos_coder",
        name="Chaos Coder",
        emoji="🌪️",
        description=(
            "Bursts of genius separated by silence. "
            "Unpredictable but powerful when you show up."
        ),
        strengths=("High output spikes", "Creative solutions", "Thrives under pressure"),
        weaknesses=("Inconsistent", "Burnout risk", "Hard to plan around"),
        trigger_conditions="High variance in daily activity, 3+ inactive days followed by 50+ commits",
    ),
    "burnout_sprinter": ArchetypeDefinition(
        key="burnout_sprinter",
        name="Burnout Sprinter",
        emoji="🔥",
        description=(
            "You push hard. Too hard. "
            "Your productivity is borrowed from your future self."
        ),
        strengths=("Intense focus", "Ships fast", "High ambition"),
        weaknesses=("Unsustainable pace", "Will crash", "Ignores recovery"),
        trigger_conditions="10+ hour days consistently, declining commit quality, no rest days",
    ),
    "silent_builder": ArchetypeDefinition(
        key="silent_builder",
        name="Silent Builder",
        emoji="🏗️",
        description="You ship in silence. Consistent, reliable, but flying under the radar.",
        strengths=("Ships consistently", "Low ego", "Reliable output"),
        weaknesses=("Underappreciated", "Low visibility", "Easily overlooked"),
        trigger_conditions="Consistent daily activity, low social engagement, private repos dominant",
    ),
    "momentum_machine": ArchetypeDefinition(
        key="momentum_machine",
        name="Momentum Machine",
        emoji="🚀",
        description=(
            "You are the goal. 7+ day streaks. "
            "Balanced output. Unstoppable when rolling."
        ),
        strengths=("Unstoppable focus", "Self-sustaining habits", "Peak developer"),
        weaknesses=("None detected", "Keep going", "Don't stop"),
        trigger_conditions="7+ day streak, balanced build/learn ratio, 5+ PRs merged",
    ),
    "consistent_operator": ArchetypeDefinition(
        key="consistent_operator",
        name="Consistent Operator",
        emoji="⚙️",
        description="Clockwork consistency. You show up every day, same output, no surprises.",
        strengths=("Reliable", "Predictable", "Steady growth"),
        weaknesses=("Slow scaling", "Risk averse", "Plateau risk"),
        trigger_conditions="Low variance, 5+ commits/day average, 80%+ weekday activity",
    ),
    "overnight_architect": ArchetypeDefinition(
        key="overnight_architect",
        name="Overnight Architect",
        emoji="🌙",
        description="The midnight coder. Your best work happens when the world sleeps.",
        strengths=("Deep work mastery", "Focused sessions", "Quality code"),
        weaknesses=("Poor work-life balance", "Health risks", "Team sync issues"),
        trigger_conditions="60%+ commits after 10 PM, high quality scores, long sessions",
    ),
    "weekend_warrior": ArchetypeDefinition(
        key="weekend_warrior",
        name="Weekend Warrior",
        emoji="⚔️",
        description="Weekdays are for the job. Weekends are for your passion projects.",
        strengths=("Side project master", "Passion-driven", "Balance attempts"),
        weaknesses=("Day job suffers", "Fragmented focus", "Limited time"),
        trigger_conditions="60%+ weekend activity, different repos on weekends, low weekday commits",
    ),
}


# ── Rule table ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ArchetypeRule:
    archetype: str
    points: int
    predicate: Callable[[ArchetypeFeatureVector], bool]
    label: str


ARCHETYPE_RULES: tuple[ArchetypeRule, ...] = (
    ArchetypeRule("tutorial_addict", 40,
                  lambda f: f.avg_hours > 3 and f.total_prs < 2,
                  "high hours, fewer than 2 PRs"),
    ArchetypeRule("tutorial_addict", 30,
                  lambda f: f.total_commits < 20 and f.active_days < 7,
                  "low commit count on few days"),
    ArchetypeRule("chaos_coder", 40,
                  lambda f: f.variance > 50,
                  "very uneven daily commits"),
    ArchetypeRule("chaos_coder", 30,
                  lambda f: f.max_daily_commits > 30 and f.active_days < 7,
                  "single-day spike"),
    ArchetypeRule("burnout_sprinter", 50,
                  lambda f: f.avg_hours > 6 and f.active_days >= 10,
                  "long hours on most days"),
    ArchetypeRule("silent_builder", 40,
                  lambda f: f.variance < 20 and f.active_days >= 10,
                  "steady, frequent activity"),
    ArchetypeRule("silent_builder", 20,
                  lambda f: f.total_prs < 3 and f.total_commits > 30,
                  "commits without PRs"),
    ArchetypeRule("momentum_machine", 50,
                  lambda f: f.current_streak >= 7,
                  "streak of 7+ days"),
    ArchetypeRule("momentum_machine", 30,
                  lambda f: f.total_prs >= 3 and f.active_days >= 10,
                  "regular PR throughput"),
    ArchetypeRule("consistent_operator", 40,
                  lambda f: f.variance < 15 and f.active_days >= 10,
                  "very low variance"),
    ArchetypeRule("consistent_operator", 20,
                  lambda f: 30 <= f.total_commits <= 80,
                  "moderate commit volume"),
    ArchetypeRule("overnight_architect", 60,
                  lambda f: f.late_night_ratio > 0.5,
                  "majority of commits late at night"),
    ArchetypeRule("overnight_architect", 30,
                  lambda f: 0.3 < f.late_night_ratio <= 0.5,
                  "many commits late at night"),
    ArchetypeRule("weekend_warrior", 60,
                  lambda f: f.weekend_ratio > 0.5,
                  "majority of commits on weekends"),
    ArchetypeRule("weekend_warrior", 30,
                  lambda f: 0.3 < f.weekend_ratio <= 0.5,
                  "many commits on weekends"),
)


# ── Features ────────────────────────────────────────────────────────────────

def _population_stddev(values: list[int]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def extract_features(
    aggregates: list[DailyAggregate],
    current_streak: int = 0,
) -> ArchetypeFeatureVector:
    """Build the feature vector for a window of days.

    Weekend membership comes from each day's ``is_weekend`` flag. Average
    hours divide total coding time by the number of records, active or not.
    """
    commits = [d.total_commits for d in aggregates]
    late_night = sum(
        d.commits_by_hour.get(h, 0)
        for d in aggregates
        for h in ARCHETYPE_LATE_NIGHT_HOURS
    )
    total_minutes = sum(d.coding_duration_minutes for d in aggregates)
    return ArchetypeFeatureVector(
        total_commits=sum(commits),
        total_prs=sum(d.prs_merged for d in aggregates),
        active_days=sum(1 for d in aggregates if d.is_active),
        weekend_commits=sum(d.total_commits for d in aggregates if d.is_weekend),
        weekday_commits=sum(d.total_commits for d in aggregates if not d.is_weekend),
        late_night_commits=late_night,
        max_daily_commits=max(commits, default=0),
        variance=_population_stddev(commits),
        avg_hours=total_minutes / 60 / len(aggregates) if aggregates else 0.0,
        current_streak=current_streak,
    )


# ── Scoring ─────────────────────────────────────────────────────────────────

def score_archetypes(
    features: ArchetypeFeatureVector,
    rules: tuple[ArchetypeRule, ...] = ARCHETYPE_RULES,
) -> dict[str, int]:
    """Sum the points of every matching rule, per archetype."""
    scores = {key: 0 for key in ARCHETYPE_KEYS}
    for rule in rules:
        if rule.predicate(features):
            scores[rule.archetype] += rule.points
    return scores


def select_archetype(scores: dict[str, int]) -> tuple[str, int]:
    """Return ``(archetype_key, winning_score)``.

    The winning score is reported even when the fallback archetype is chosen.
    """
    best_key = ARCHETYPE_KEYS[0]
    best_score = scores.get(best_key, 0)
    for key in ARCHETYPE_KEYS[1:]:
        if scores.get(key, 0) > best_score:
            best_key, best_score = key, scores[key]

    if best_score <= ARCHETYPE_MIN_WINNING_SCORE:
        return ARCHETYPE_FALLBACK, best_score
    return best_key, best_score


def archetype_window(
    aggregates: list[DailyAggregate],
    today: date,
    window_days: int = ARCHETYPE_WINDOW_DAYS,
) -> list[DailyAggregate]:
    """Days on or after ``today - window_days``, newest first."""
    start = today - timedelta(days=window_days)
    return sorted(
        (d for d in aggregates if start <= d.date <= today),
        key=lambda d: d.date,
        reverse=True,
    )


def classify(
    aggregates: list[DailyAggregate],
    current_streak: int,
    today: date,
) -> ArchetypeClassification | None:
    """Classify the trailing window, or ``None`` with fewer than 5 days."""
    window = archetype_window(aggregates, today)
    if len(window) < ARCHETYPE_MIN_DAYS:
        logger.debug("Archetype: %d days in window, need %d", len(window), ARCHETYPE_MIN_DAYS)
        return None

    features = extract_features(window, current_streak)
    scores = score_archetypes(features)
    key, winning = select_archetype(scores)
    confidence = min(ARCHETYPE_MAX_CONFIDENCE, winning / 100)
    logger.debug("Archetype scores %s -> %s (%.2f)", scores, key, confidence)

    return ArchetypeClassification(
        archetype_key=key,
        confidence_score=confidence,
        features=features,
        scores=scores,
    )


# ── History ─────────────────────────────────────────────────────────────────

def reveal_status(
    store: ArchetypeHistoryStore,
    user_id: str,
    aggregate_count: int,
) -> RevealStatus:
    """Current archetype, or how many more days of data until one can be computed."""
    current = store.current(user_id)
    if current is not None:
        return RevealStatus(
            assignment=current,
            definition=ARCHETYPES[current.archetype_key],
            can_reveal=False,
        )

    enough = aggregate_count >= ARCHETYPE_MIN_DAYS
    return RevealStatus(
        assignment=None,
        definition=None,
        can_reveal=enough,
        days_until_reveal=0 if enough else ARCHETYPE_MIN_DAYS - aggregate_count,
    )


def assign_archetype(
    store: ArchetypeHistoryStore,
    user_id: str,
    aggregates: list[DailyAggregate],
    current_streak: int,
    now: datetime,
) -> ArchetypeAssignment | None:
    """Classify and record a new assignment, superseding the current one.

    Returns ``None`` without touching the store when there is not enough data.
    """
    result = classify(aggregates, current_streak, now.date())
    if result is None:
        return None

    assignment = ArchetypeAssignment(
        user_id=user_id,
        archetype_key=result.archetype_key,
        confidence_score=result.confidence_score,
        trigger_metrics=result.features.as_dict(),
        scores=result.scores,
        assigned_at=now,
    )
    return store.supersede_and_insert(assignment)
