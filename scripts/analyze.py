"""CLI: Compute analytics and assign an archetype from saved aggregates."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

from devflow_analytics.aggregator import parse_aggregates
from devflow_analytics.archetypes import ARCHETYPES, assign_archetype
from devflow_analytics.config import DATABASE_URL, DATA_DIR, PROCESSED_DIR, RAW_DIR, REPORT_TIMEZONE
from devflow_analytics.history import SQLArchetypeStore
from devflow_analytics.report import build_report

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s"
)
logger = logging.getLogger(__name__)


def _latest_raw_file(login: str) -> Path | None:
    """Return the most recent aggregate dump for *login*."""
    files = sorted(RAW_DIR.glob(f"aggregates_{login}_*.json"))
    return files[-1] if files else None


def main() -> None:
    """Load raw aggregates, compute the report, and save to processed/."""
    parser = argparse.ArgumentParser(description="Analyse saved daily aggregates.")
    parser.add_argument("login", help="GitHub username")
    parser.add_argument("--timezone", default=REPORT_TIMEZONE, help="IANA timezone for 'today'")
    args = parser.parse_args()

    raw_file = _latest_raw_file(args.login)
    if raw_file is None:
        print(f"No raw data found. Run: python scripts/sync.py {args.login}")
        return

    logger.info("Loading aggregates from %s", raw_file)
    aggregates = parse_aggregates(json.loads(raw_file.read_text()))

    now = datetime.now(ZoneInfo(args.timezone))
    report = build_report(args.login, aggregates, now.date())

    DATA_DIR.mkdir(parents=True, exist_ok=True)
    store = SQLArchetypeStore(DATABASE_URL)
    try:
        store.ensure_tables()
        assignment = assign_archetype(
            store,
            args.login,
            aggregates,
            current_streak=report["streak"]["current"],
            now=now,
        )
    finally:
        store.close()

    if assignment is None:
        report["archetype"] = None
    else:
        report["archetype"] = {
            "archetype_key": assignment.archetype_key,
            "name": ARCHETYPES[assignment.archetype_key].name,
            "confidence_score": assignment.confidence_score,
            "trigger_metrics": assignment.trigger_metrics,
            "scores": assignment.scores,
            "assigned_at": assignment.assigned_at.isoformat(),
        }

    PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    out_path = PROCESSED_DIR / f"report_{args.login}_{timestamp}.json"
    out_path.write_text(json.dumps(report, indent=2))
    logger.info("Saved report → %s", out_path)

    flow = report["flow_score"]
    streak = report["streak"]
    burnout = report["burnout"]
    print(f"\nDevFlow report for {args.login} ({len(aggregates)} days of data):\n")
    print(f"  Dev Flow Score      {flow['total_score']:3d}")
    print(f"  Productivity score  {report['productivity_score']:3d}")
    print(f"  Streak              current={streak['current']} longest={streak['longest']}")
    print(f"  XP this sync        {report['xp_earned']['total']}")
    print(f"  Burnout risk        {burnout['risk_level']} ({burnout['burnout_risk_score']:.2f})")
    if report["archetype"]:
        print(f"  Archetype           {report['archetype']['name']}")
    else:
        print("  Archetype           not enough data yet")


if __name__ == "__main__":
    main()
