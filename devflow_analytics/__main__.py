"""Entry-point for ``python -m devflow_analytics``."""

from __future__ import annotations

import sys

from devflow_analytics import __version__


def main() -> None:
    """Print a short help message and exit."""
    print(
        f"devflow_analytics v{__version__}\n"
        "\n"
        "Developer activity analytics for GitHub users\n"
        "\n"
        "Usage:\n"
        "  python -m devflow_analytics            Show this help message\n"
        "  python scripts/sync.py <login>         Fetch activity into daily aggregates\n"
        "  python scripts/analyze.py <login>      Compute scores, streaks, burnout and archetype\n"
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
