"""Centralised configuration and constants."""

from __future__ import annotations

import os
from pathlib import Path

# ── Paths ───────────────────────────────────────────────────────────────────
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
DATA_DIR: Path = PROJECT_ROOT / "data"
RAW_DIR: Path = DATA_DIR / "raw"
PROCESSED_DIR: Path = DATA_DIR / "processed"

# ── GitHub API ──────────────────────────────────────────────────────────────
GITHUB_TOKEN: str | None = os.getenv("GITHUB_TOKEN")
GITHUB_API_BASE: str = "https://api.github.com"
REQUEST_TIMEOUT: int = 30  # seconds
SEARCH_PER_PAGE: int = 100
SEARCH_MAX_PAGES: int = 20
RATE_LIMIT_BUFFER: int = 5
RETRY_MAX: int = 3
RETRY_BACKOFF: float = 2.0  # seconds, exponential base
SECONDARY_LIMIT_WAIT: int = 60  # seconds, when Retry-After is absent

# ── Reporting calendar ─────────────────────────────────────────────────────
REPORT_TIMEZONE: str = os.getenv("DEVFLOW_TIMEZONE", "UTC")
DEFAULT_LOOKBACK_DAYS: int = 90

# ── Persistence ────────────────────────────────────────────────────────────
DATABASE_URL: str = os.getenv(
    "DEVFLOW_DATABASE_URL", f"sqlite:///{DATA_DIR / 'devflow.db'}"
)

# ── Productivity score ─────────────────────────────────────────────────────
COMMIT_POINTS: int = 10
PR_MERGED_POINTS: int = 25
PR_OPENED_POINTS: int = 10
ISSUE_CLOSED_POINTS: int = 15
REVIEW_POINTS: int = 20
VOLUME_COEFF: float = 5.0
CONSISTENCY_DAYS: int = 7
MAX_CONSISTENCY_MULTIPLIER: float = 1.5
SCORE_NORMALIZER: int = 50
DAILY_COMMIT_POINTS: int = 10
TREND_UP_RATIO: float = 1.1
TREND_DOWN_RATIO: float = 0.9
DEFAULT_PRODUCTIVE_HOUR: int = 9
DEFAULT_TOP_REPOS: int = 5
HEATMAP_DAYS: int = 365

# ── Burnout risk model ─────────────────────────────────────────────────────
BURNOUT_WINDOW_DAYS: int = 30
BURNOUT_MIN_DAYS: int = 7
BURNOUT_WEIGHTS: dict[str, float] = {
    "long_hours": 0.25,
    "weekend_work": 0.15,
    "late_night": 0.20,
    "no_breaks": 0.20,
    "productivity_decline": 0.15,
    "inconsistency": 0.05,
}
BURNOUT_TIERS: list[tuple[float, str]] = [
    (0.3, "low"),
    (0.5, "medium"),
    (0.75, "high"),
]
BURNOUT_TOP_TIER: str = "critical"
LONG_DAY_HOURS: float = 10.0
BURNOUT_LATE_NIGHT_HOURS: tuple[int, ...] = (22, 23, 0, 1, 2)
NO_BREAK_DAYS: int = 14
DECLINE_MIN_DAYS: int = 14
INCONSISTENCY_STDDEV: float = 30.0
BURNOUT_MODEL_VERSION: str = "v1.0"
BURNOUT_CONFIDENCE: float = 0.85

# ── Archetype classifier ───────────────────────────────────────────────────
ARCHETYPE_WINDOW_DAYS: int = 14
ARCHETYPE_MIN_DAYS: int = 5
ARCHETYPE_LATE_NIGHT_HOURS: tuple[int, ...] = (22, 23, 0, 1, 2, 3)
ARCHETYPE_MIN_WINNING_SCORE: int = 20
ARCHETYPE_FALLBACK: str = "silent_builder"
ARCHETYPE_MAX_CONFIDENCE: float = 0.95

# ── Dev Flow Score ─────────────────────────────────────────────────────────
FLOW_WINDOW_DAYS: int = 14
FLOW_WEIGHTS: dict[str, float] = {
    "building_ratio": 0.30,
    "consistency": 0.25,
    "shipping": 0.20,
    "focus": 0.15,
    "recovery": 0.10,
}
IDEAL_REST_DAYS: int = 4
TARGET_WEEKLY_PRS: float = 3.0
TARGET_DAILY_HOURS: float = 3.0

# ── XP & levels ────────────────────────────────────────────────────────────
XP_REWARDS: dict[str, int] = {
    "daily_commit": 10,
    "streak_multiplier": 5,  # per day of current streak
    "pr_merged": 50,
    "week_shipped": 200,
    "challenge_won": 100,
    "achievement_unlocked": 25,
}
XP_DAILY_COMMIT_CAP: int = 10  # commits per sync that earn XP

# (level, title, xp_required, color)
LEVELS: list[tuple[int, str, int, str]] = [
    (1, "Newcomer", 0, "#71717a"),
    (5, "Contributor", 500, "#3b82f6"),
    (10, "Shipper", 2_000, "#10b981"),
    (20, "Builder", 10_000, "#8b5cf6"),
    (30, "Architect", 25_000, "#f59e0b"),
    (50, "Legend", 100_000, "#ef4444"),
    (100, "Immortal", 500_000, "#ec4899"),
]

# ── Personal bests ─────────────────────────────────────────────────────────
BEST_WEEK_DAYS: int = 7
