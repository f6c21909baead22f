"""CLI: Fetch a user's GitHub activity into daily aggregates."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timedelta, timezone

from devflow_analytics.aggregator import serialize_aggregates
from devflow_analytics.config import DEFAULT_LOOKBACK_DAYS, RAW_DIR, REPORT_TIMEZONE
from devflow_analytics.fetcher import fetch_daily_aggregates

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Fetch activity for one login and save to data/raw/."""
    parser = argparse.ArgumentParser(description="Fetch GitHub activity into daily aggregates.")
    parser.add_argument("login", help="GitHub username")
    parser.add_argument("--days", type=int, default=DEFAULT_LOOKBACK_DAYS, help="Lookback window")
    parser.add_argument("--timezone", default=REPORT_TIMEZONE, help="IANA timezone for day boundaries")
    args = parser.parse_args()

    since = datetime.now(timezone.utc) - timedelta(days=args.days)
    aggregates = fetch_daily_aggregates(args.login, since, timezone_name=args.timezone)

    RAW_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    out_path = RAW_DIR / f"aggregates_{args.login}_{timestamp}.json"
    out_path.write_text(json.dumps(serialize_aggregates(aggregates), indent=2))
    logger.info("Saved %d daily aggregates → %s", len(aggregates), out_path)


if __name__ == "__main__":
    main()
