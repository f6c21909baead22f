"""Domain models for the DevFlow analytics engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

_COUNT_FIELDS = (
    "total_commits",
    "prs_opened",
    "prs_merged",
    "issues_closed",
    "code_reviews",
    "lines_added",
    "lines_deleted",
    "coding_duration_minutes",
)


@dataclass
class DailyAggregate:
    """One day of a user's coding activity."""

    date: date
    total_commits: int = 0
    prs_opened: int = 0
    prs_merged: int = 0
    issues_closed: int = 0
    code_reviews: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    commits_by_hour: dict[int, int] = field(default_factory=dict)
    languages: dict[str, int] = field(default_factory=dict)
    repos: dict[str, int] = field(default_factory=dict)
    active_hours: float = 0.0
    coding_duration_minutes: int = 0
    is_weekend: bool | None = None
    productivity_score: int = 0

    def __post_init__(self) -> None:
        for name in _COUNT_FIELDS:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.active_hours < 0:
            raise ValueError("active_hours must be non-negative")
        for hour in self.commits_by_hour:
            if not 0 <= hour <= 23:
                raise ValueError(f"commits_by_hour has invalid hour {hour}")
        if self.is_weekend is None:
            self.is_weekend = self.date.weekday() >= 5

    @property
    def lines_changed(self) -> int:
        """Total lines touched (added + deleted)."""
        return self.lines_added + self.lines_deleted

    @property
    def is_active(self) -> bool:
        return self.total_commits > 0


@dataclass
class ProductivityStats:
    """Activity counts over some period, input to the productivity score."""

    total_commits: int = 0
    prs_merged: int = 0
    prs_opened: int = 0
    issues_closed: int = 0
    code_reviews: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    active_days: int = 1

    def __post_init__(self) -> None:
        if self.active_days < 1:
            raise ValueError("active_days must be >= 1")


@dataclass
class StreakInfo:
    current: int
    longest: int
    last_commit_date: date | None


# ── Metric outputs ──────────────────────────────────────────────────────────


@dataclass
class HourBucket:
    hour: int
    count: int
    label: str


@dataclass
class DayOfWeekBucket:
    day: str
    count: int
    day_index: int  # 0 = Sunday


@dataclass
class LanguageShare:
    language: str
    count: int
    percentage: int


@dataclass
class RepoCount:
    repo: str
    commits: int


@dataclass
class CodeVolume:
    total_lines: int
    lines_added: int
    lines_deleted: int
    net_change: int


@dataclass
class HeatmapCell:
    """One square of a contribution graph."""

    date: date
    count: int
    level: int  # 0-4


@dataclass
class TrendPoint:
    date: date
    score: int
    commits: int
    prs: int
    issues: int
    reviews: int


@dataclass
class PeriodSummary:
    """Aggregated metrics over a reporting period."""

    period_days: int
    total_commits: int = 0
    total_prs: int = 0
    total_issues: int = 0
    total_lines_added: int = 0
    total_lines_deleted: int = 0
    active_days: int = 0
    average_score: int = 0
    trend: str = "stable"  # up, down, stable
    top_languages: dict[str, int] = field(default_factory=dict)
    most_productive_hour: int = 9
    weekday_commits: int = 0
    weekend_commits: int = 0


# ── Burnout ─────────────────────────────────────────────────────────────────


@dataclass
class BurnoutFactors:
    """Six burnout red flags, each normalised to [0, 1]."""

    long_hours: float = 0.0
    weekend_work: float = 0.0
    late_night: float = 0.0
    no_breaks: float = 0.0
    productivity_decline: float = 0.0
    inconsistency: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class Recommendation:
    action: str
    priority: str  # low, medium, high, critical
    description: str


@dataclass
class BurnoutAssessment:
    """Result of the burnout risk model."""

    risk_score: float
    risk_level: str
    factors: BurnoutFactors | None = None
    recommendations: list[Recommendation] = field(default_factory=list)
    message: str | None = None

    @property
    def has_data(self) -> bool:
        return self.factors is not None


# ── Archetypes ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ArchetypeDefinition:
    key: str
    name: str
    emoji: str
    description: str
    strengths: tuple[str, ...]
    weaknesses: tuple[str, ...]
    trigger_conditions: str


@dataclass
class ArchetypeFeatureVector:
    """Snapshot of the metrics an archetype decision was based on."""

    total_commits: int
    total_prs: int
    active_days: int
    weekend_commits: int
    weekday_commits: int
    late_night_commits: int
    max_daily_commits: int
    variance: float  # population standard deviation of daily commits
    avg_hours: float
    current_streak: int = 0

    @property
    def late_night_ratio(self) -> float:
        if self.total_commits <= 0:
            return 0.0
        return self.late_night_commits / self.total_commits

    @property
    def weekend_ratio(self) -> float:
        if self.total_commits <= 0:
            return 0.0
        return self.weekend_commits / self.total_commits

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ArchetypeAssignment:
    """One entry of a user's append-only archetype history."""

    user_id: str
    archetype_key: str
    confidence_score: float
    trigger_metrics: dict[str, Any]
    assigned_at: datetime
    scores: dict[str, int] = field(default_factory=dict)
    valid_until: datetime | None = None
    id: int | None = None

    @property
    def is_current(self) -> bool:
        return self.valid_until is None


# ── Dev Flow Score ──────────────────────────────────────────────────────────


@dataclass
class FlowScoreComponents:
    building_ratio: int
    consistency: int
    shipping: int
    focus: int
    recovery: int


@dataclass
class AntiGaming:
    detected: bool = False
    penalty: int = 0
    reason: str | None = None


@dataclass
class FlowScore:
    """Composite 0-100 Dev Flow Score with its breakdown."""

    total_score: int
    breakdown: FlowScoreComponents
    anti_gaming: AntiGaming
    score_change: int = 0
    weekly_avg: int = 0
    global_avg: int = 50
    percentile: int = 50


@dataclass
class ArchetypeClassification:
    """Outcome of scoring a feature vector against every archetype."""

    archetype_key: str
    confidence_score: float
    features: ArchetypeFeatureVector
    scores: dict[str, int]


@dataclass
class RevealStatus:
    """Whether a user has an archetype yet, or how long until one can be revealed."""

    assignment: ArchetypeAssignment | None
    definition: ArchetypeDefinition | None
    can_reveal: bool
    days_until_reveal: int = 0


# ── XP & personal bests ─────────────────────────────────────────────────────


@dataclass
class LevelInfo:
    level: int
    title: str
    xp: int
    xp_for_current_level: int
    xp_for_next_level: int
    progress: int  # 0-100 towards the next level
    color: str


@dataclass
class Milestone:
    level: int
    title: str
    xp_required: int
    xp_remaining: int


@dataclass
class SyncActivity:
    """What changed since the previous sync; input to the XP award."""

    new_commits_today: int = 0
    current_streak: int = 0
    new_prs_merged: int = 0
    days_active_this_week: int = 0
    previous_days_active_this_week: int = 0


@dataclass
class XpAward:
    source: str
    amount: int
    description: str


@dataclass
class SyncXp:
    total: int
    breakdown: list[XpAward] = field(default_factory=list)


@dataclass
class PersonalBests:
    """All-time records derived from a user's daily history."""

    longest_streak: int = 0
    current_streak: int = 0
    most_commits_in_day: int = 0
    most_commits_in_week: int = 0
    total_commits: int = 0
    total_prs: int = 0
    first_commit_date: date | None = None
    active_months: int = 0
