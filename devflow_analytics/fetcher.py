"""Activity fetcher: GitHub search API → daily aggregates.

Four searches per user, all scoped to ``since``:
    1. commits authored by the user
    2. pull requests authored by the user
    3. issues authored by the user and closed
    4. pull requests reviewed by the user
"""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from devflow_analytics.aggregator import build_daily_aggregates
from devflow_analytics.config import REPORT_TIMEZONE, SEARCH_MAX_PAGES, SEARCH_PER_PAGE
from devflow_analytics.github_client import GitHubClient
from devflow_analytics.models import DailyAggregate

logger = logging.getLogger(__name__)


def search_all(
    client: GitHubClient,
    endpoint: str,
    query: str,
    max_pages: int = SEARCH_MAX_PAGES,
    **params: str,
) -> list[dict]:
    """Page through a search endpoint until results run out.

    The search API caps every query at 1000 results; hitting the cap is
    logged, not raised.
    """
    items: list[dict] = []
    page = 1

    while page <= max_pages:
        data = client.get(
            endpoint,
            params={"q": query, "per_page": SEARCH_PER_PAGE, "page": page, **params},
        )
        batch = data.get("items", [])
        items.extend(batch)

        total_count = data.get("total_count", 0)
        if len(batch) < SEARCH_PER_PAGE or page * SEARCH_PER_PAGE >= total_count:
            break
        if page * SEARCH_PER_PAGE >= 1000:
            logger.warning(
                "Search %r hit the 1000-result cap (%d total).",
                query,
                total_count,
            )
            break
        page += 1

    return items


def search_commits(client: GitHubClient, login: str, since: datetime) -> list[dict]:
    query = f"author:{login} committer-date:>={since:%Y-%m-%d}"
    return search_all(client, "/search/commits", query, sort="committer-date", order="desc")


def search_issues(client: GitHubClient, query: str) -> list[dict]:
    return search_all(client, "/search/issues", query)


def fetch_daily_aggregates(
    login: str,
    since: datetime,
    client: GitHubClient | None = None,
    timezone_name: str = REPORT_TIMEZONE,
) -> list[DailyAggregate]:
    """Fetch a user's activity since *since* and fold it into daily aggregates."""
    tz = ZoneInfo(timezone_name)
    owns_client = client is None
    if client is None:
        client = GitHubClient()

    try:
        day = f"{since:%Y-%m-%d}"
        logger.info("Searching commits by %s since %s", login, day)
        commits = search_commits(client, login, since)
        logger.info("Found %d commits", len(commits))

        prs = search_issues(client, f"author:{login} type:pr created:>={day}")
        issues = search_issues(client, f"author:{login} type:issue closed:>={day}")
        reviews = search_issues(client, f"reviewed-by:{login} type:pr updated:>={day}")
        logger.info(
            "Found %d PRs, %d closed issues, %d reviewed PRs",
            len(prs),
            len(issues),
            len(reviews),
        )
    finally:
        if owns_client:
            client.close()

    return build_daily_aggregates(commits, tz, prs=prs, issues=issues, reviews=reviews)
