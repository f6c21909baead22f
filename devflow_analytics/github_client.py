"""GitHub REST client used by the activity fetcher.

Only rate-limit responses are retried: a 429, or a 403 that GitHub marks as
throttled (``Retry-After`` present or ``X-RateLimit-Remaining: 0``). Any other
4xx/5xx surfaces as ``httpx.HTTPStatusError``.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from devflow_analytics.config import (
    GITHUB_API_BASE,
    GITHUB_TOKEN,
    RATE_LIMIT_BUFFER,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF,
    RETRY_MAX,
    SECONDARY_LIMIT_WAIT,
)

logger = logging.getLogger(__name__)


class GitHubClient:
    """Authenticated GET-only client for the search endpoints.

    *transport* is handed to ``httpx.Client`` so tests can swap in
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        token = token or GITHUB_TOKEN
        if not token:
            raise ValueError(
                "GITHUB_TOKEN is required. Set it as an environment variable."
            )
        self._http = httpx.Client(
            base_url=GITHUB_API_BASE,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=REQUEST_TIMEOUT,
            transport=transport,
        )
        self._quota_left: int = 5000
        self._quota_reset: float = 0.0

    @property
    def remaining(self) -> int:
        """Requests left in the current quota window, as last reported."""
        return self._quota_left

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET *endpoint* and return the decoded JSON body."""
        for attempt in range(1, RETRY_MAX + 1):
            self._pause_for_quota()
            try:
                resp = self._http.get(endpoint, params=params)
            except httpx.TransportError as exc:
                if attempt == RETRY_MAX:
                    raise RuntimeError(f"All {RETRY_MAX} retries exhausted") from exc
                delay = RETRY_BACKOFF ** attempt
                logger.warning("%s failed (%s); retrying in %.0fs", endpoint, exc, delay)
                time.sleep(delay)
                continue

            self._record_quota(resp)
            delay = self._throttle_delay(resp)
            if delay is None:
                resp.raise_for_status()
                return resp.json()

            logger.warning(
                "Throttled on %s (HTTP %d), attempt %d/%d",
                endpoint,
                resp.status_code,
                attempt,
                RETRY_MAX,
            )
            if delay:
                time.sleep(delay)

        raise RuntimeError(f"All {RETRY_MAX} retries exhausted")

    # ── Quota tracking ──────────────────────────────────────────────────

    def _record_quota(self, resp: httpx.Response) -> None:
        left = resp.headers.get("X-RateLimit-Remaining")
        reset = resp.headers.get("X-RateLimit-Reset")
        if left is not None:
            self._quota_left = int(left)
        if reset is not None:
            self._quota_reset = float(reset)

    def _pause_for_quota(self) -> None:
        """Sleep until the quota window resets once it drops below the buffer."""
        if self._quota_left >= RATE_LIMIT_BUFFER:
            return
        wait = max(0.0, self._quota_reset - time.time()) + 5
        logger.info("Quota low (%d left); sleeping %.0fs", self._quota_left, wait)
        time.sleep(wait)

    @staticmethod
    def _throttle_delay(resp: httpx.Response) -> float | None:
        """Seconds to wait before retrying, or ``None`` if *resp* is not a rate limit.

        A primary-limit 403 returns 0: the quota pause before the next attempt
        already waits for the reset.
        """
        retry_after = resp.headers.get("Retry-After")
        if resp.status_code == 429 or (resp.status_code == 403 and retry_after is not None):
            return float(retry_after) if retry_after is not None else float(SECONDARY_LIMIT_WAIT)
        if resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0":
            return 0.0
        return None

    # ── Lifecycle ───────────────────────────────────────────────────────

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
