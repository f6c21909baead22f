"""Smoke tests for the DevFlow analytics package."""

from __future__ import annotations

import json
import subprocess
import sys
from datetime import date, timedelta

import pytest

from devflow_analytics.config import PROJECT_ROOT
from devflow_analytics.models import DailyAggregate, ProductivityStats
from devflow_analytics.report import build_report


def test_module_entry_point() -> None:
    """``python -m devflow_analytics`` exits 0 and prints version info."""
    result = subprocess.run(
        [sys.executable, "-m", "devflow_analytics"],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
    )
    assert result.returncode == 0
    assert "devflow_analytics" in result.stdout


def test_imports() -> None:
    """All package modules are importable."""
    from devflow_analytics import __version__
    from devflow_analytics.archetypes import ARCHETYPES, assign_archetype  # noqa: F401
    from devflow_analytics.burnout import assess_burnout  # noqa: F401
    from devflow_analytics.config import BURNOUT_WEIGHTS, GITHUB_API_BASE
    from devflow_analytics.fetcher import fetch_daily_aggregates  # noqa: F401
    from devflow_analytics.flow_score import calculate_flow_score  # noqa: F401
    from devflow_analytics.github_client import GitHubClient  # noqa: F401
    from devflow_analytics.history import InMemoryArchetypeStore, SQLArchetypeStore  # noqa: F401
    from devflow_analytics.streaks import calculate_streak_info  # noqa: F401
    from devflow_analytics.xp import calculate_level  # noqa: F401

    assert isinstance(__version__, str)
    assert PROJECT_ROOT.exists()
    assert GITHUB_API_BASE.startswith("https://")
    assert sum(BURNOUT_WEIGHTS.values()) == pytest.approx(1.0)
    assert len(ARCHETYPES) == 8


# ── Model validation ────────────────────────────────────────────────────────


def test_daily_aggregate_derives_weekend() -> None:
    assert DailyAggregate(date(2024, 1, 6)).is_weekend is True   # Saturday
    assert DailyAggregate(date(2024, 1, 8)).is_weekend is False  # Monday


def test_daily_aggregate_explicit_weekend_flag_kept() -> None:
    day = DailyAggregate(date(2024, 1, 8), is_weekend=True)
    assert day.is_weekend is True


def test_daily_aggregate_rejects_negative_counts() -> None:
    with pytest.raises(ValueError):
        DailyAggregate(date(2024, 1, 8), total_commits=-1)


def test_daily_aggregate_rejects_invalid_hour() -> None:
    with pytest.raises(ValueError):
        DailyAggregate(date(2024, 1, 8), commits_by_hour={24: 1})


def test_daily_aggregate_lines_changed() -> None:
    day = DailyAggregate(date(2024, 1, 8), lines_added=30, lines_deleted=12)
    assert day.lines_changed == 42


def test_productivity_stats_requires_active_day() -> None:
    with pytest.raises(ValueError):
        ProductivityStats(active_days=0)


# ── Full report ─────────────────────────────────────────────────────────────


def test_build_report_is_json_serialisable() -> None:
    today = date(2024, 1, 20)
    days = [
        DailyAggregate(
            date=today - timedelta(days=i),
            total_commits=3,
            commits_by_hour={10: 2, 14: 1},
            languages={"Python": 3},
            repos={"me/app": 3},
            active_hours=2,
            coding_duration_minutes=90,
            productivity_score=30,
        )
        for i in range(10)
    ]
    report = build_report("alice", days, today)

    encoded = json.dumps(report)
    assert "alice" in encoded
    assert report["as_of"] == "2024-01-20"
    assert report["streak"]["current"] == 10
    assert report["streak"]["last_commit_date"] == "2024-01-20"
    assert report["languages"][0]["language"] == "Python"
    assert len(report["heatmap"]) == 365
    assert report["burnout"]["risk_level"] in {"low", "medium", "high", "critical"}
    assert 0 <= report["flow_score"]["total_score"] <= 100
    assert report["personal_bests"]["most_commits_in_week"] == 21
    assert report["personal_bests"]["first_commit_date"] == "2024-01-11"
    assert report["xp_earned"]["total"] == 30 + 50  # 3 commits, 10-day streak


def test_build_report_with_no_data() -> None:
    report = build_report("nobody", [], date(2024, 1, 20))
    assert report["productivity_score"] == 0
    assert report["streak"] == {"current": 0, "longest": 0, "last_commit_date": None}
    assert report["burnout"]["burnout_risk_score"] == 0
    assert report["burnout"]["risk_level"] == "low"
