"""Build, parse and serialise ``DailyAggregate`` records.

Raw GitHub search items are bucketed by calendar date in the reporting
timezone. Missing fields default to zero/empty, so aggregation never errors
on partial API responses.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, tzinfo
from typing import Any, Iterable

from devflow_analytics.metrics import daily_productivity_score
from devflow_analytics.models import DailyAggregate

logger = logging.getLogger(__name__)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp (``Z`` suffix allowed)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _local_date(value: str | None, tz: tzinfo) -> date | None:
    ts = parse_timestamp(value)
    return ts.astimezone(tz).date() if ts else None


class _DayBuilder:
    """Mutable accumulator for one calendar day."""

    def __init__(self, day: date) -> None:
        self.date = day
        self.commit_times: list[datetime] = []
        self.commits_by_hour: dict[int, int] = defaultdict(int)
        self.repos: dict[str, int] = defaultdict(int)
        self.languages: dict[str, int] = defaultdict(int)
        self.prs_opened = 0
        self.prs_merged = 0
        self.issues_closed = 0
        self.code_reviews = 0

    def build(self) -> DailyAggregate:
        commits = len(self.commit_times)
        duration = 0
        if commits > 1:
            span = max(self.commit_times) - min(self.commit_times)
            duration = int(span.total_seconds() // 60)
        return DailyAggregate(
            date=self.date,
            total_commits=commits,
            prs_opened=self.prs_opened,
            prs_merged=self.prs_merged,
            issues_closed=self.issues_closed,
            code_reviews=self.code_reviews,
            commits_by_hour=dict(self.commits_by_hour),
            languages=dict(self.languages),
            repos=dict(self.repos),
            active_hours=float(len(self.commits_by_hour)),
            coding_duration_minutes=duration,
            productivity_score=daily_productivity_score(commits),
        )


def build_daily_aggregates(
    commits: Iterable[dict[str, Any]],
    tz: tzinfo,
    prs: Iterable[dict[str, Any]] = (),
    issues: Iterable[dict[str, Any]] = (),
    reviews: Iterable[dict[str, Any]] = (),
) -> list[DailyAggregate]:
    """Group raw search items into one aggregate per local date, oldest first.

    - *commits*: commit search items; date and hour from the author date.
    - *prs*: PRs authored by the user; counted opened on ``created_at`` and
      merged on ``pull_request.merged_at``.
    - *issues*: issues authored by the user; counted on ``closed_at``.
    - *reviews*: PRs reviewed by the user; counted on ``updated_at``.
    """
    days: dict[date, _DayBuilder] = {}

    def _day(d: date) -> _DayBuilder:
        if d not in days:
            days[d] = _DayBuilder(d)
        return days[d]

    for item in commits:
        commit = item.get("commit") or {}
        stamp = (commit.get("author") or {}).get("date") or (commit.get("committer") or {}).get("date")
        ts = parse_timestamp(stamp)
        if ts is None:
            continue
        local = ts.astimezone(tz)
        builder = _day(local.date())
        builder.commit_times.append(local)
        builder.commits_by_hour[local.hour] += 1

        repo = item.get("repository") or {}
        builder.repos[repo.get("full_name") or "unknown"] += 1
        if repo.get("language"):
            builder.languages[repo["language"]] += 1

    for item in prs:
        opened = _local_date(item.get("created_at"), tz)
        if opened is not None:
            _day(opened).prs_opened += 1
        merged = _local_date((item.get("pull_request") or {}).get("merged_at"), tz)
        if merged is not None:
            _day(merged).prs_merged += 1

    for item in issues:
        closed = _local_date(item.get("closed_at"), tz)
        if closed is not None:
            _day(closed).issues_closed += 1

    for item in reviews:
        reviewed = _local_date(item.get("updated_at"), tz)
        if reviewed is not None:
            _day(reviewed).code_reviews += 1

    result = [days[d].build() for d in sorted(days)]
    logger.info("Built %d daily aggregates", len(result))
    return result


# ── JSON shape ──────────────────────────────────────────────────────────────

def serialize_aggregate(day: DailyAggregate) -> dict[str, Any]:
    return {
        "date": day.date.isoformat(),
        "total_commits": day.total_commits,
        "prs_opened": day.prs_opened,
        "prs_merged": day.prs_merged,
        "issues_closed": day.issues_closed,
        "code_reviews": day.code_reviews,
        "lines_added": day.lines_added,
        "lines_deleted": day.lines_deleted,
        "commits_by_hour": {str(h): c for h, c in sorted(day.commits_by_hour.items())},
        "languages": day.languages,
        "repos": day.repos,
        "active_hours": day.active_hours,
        "coding_duration_minutes": day.coding_duration_minutes,
        "is_weekend": day.is_weekend,
        "productivity_score": day.productivity_score,
    }


def serialize_aggregates(aggregates: Iterable[DailyAggregate]) -> list[dict[str, Any]]:
    return [serialize_aggregate(d) for d in aggregates]


def parse_aggregates(rows: Iterable[dict[str, Any]]) -> list[DailyAggregate]:
    """Convert stored JSON rows back into ``DailyAggregate`` objects.

    JSON object keys are strings, so hour keys are converted back to ints.
    ``None`` counts are read as 0.
    """
    result: list[DailyAggregate] = []
    for row in rows:
        result.append(DailyAggregate(
            date=date.fromisoformat(row["date"]),
            total_commits=row.get("total_commits") or 0,
            prs_opened=row.get("prs_opened") or 0,
            prs_merged=row.get("prs_merged") or 0,
            issues_closed=row.get("issues_closed") or 0,
            code_reviews=row.get("code_reviews") or 0,
            lines_added=row.get("lines_added") or 0,
            lines_deleted=row.get("lines_deleted") or 0,
            commits_by_hour={
                int(h): int(c) for h, c in (row.get("commits_by_hour") or {}).items()
            },
            languages=dict(row.get("languages") or {}),
            repos=dict(row.get("repos") or {}),
            active_hours=float(row.get("active_hours") or 0),
            coding_duration_minutes=row.get("coding_duration_minutes") or 0,
            is_weekend=row.get("is_weekend"),
            productivity_score=row.get("productivity_score") or 0,
        ))
    return result
