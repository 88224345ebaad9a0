"""
Twitter/X feed collector using the v2 API via httpx.

Fetches the most recent posts of a single account. Authentication
failures (HTTP 401/403) surface as FeedAuthError so the scheduler can
trigger a re-login; every other failure propagates as the httpx error.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import Post
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

TWITTER_API_BASE = "https://api.twitter.com/2"

# The user timeline endpoint rejects max_results outside [5, 100]
TIMELINE_MIN_RESULTS = 5
TIMELINE_MAX_RESULTS = 100

AUTH_ERROR_STATUSES = {401, 403}


class FeedError(Exception):
    """Base class for feed collaborator failures."""


class FeedAuthError(FeedError):
    """The feed rejected our credentials (HTTP 401/403)."""


class TwitterCollector:
    """
    Reads a target account's timeline.

    `login()` stores the bearer token and optionally verifies it by
    resolving a profile; `fetch_recent()` returns posts newest-first.
    """

    def __init__(
        self,
        bearer_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bearer_token = bearer_token or config.api_keys.twitter_bearer_token
        self.rate_limiter = RateLimiter(
            max_calls=config.rate_limit.twitter_requests_per_15min,
            period_seconds=900,  # 15 minutes
        )
        self._transport = transport
        # handle (lower-cased) -> numeric user id
        self._user_ids: dict[str, str] = {}

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.bearer_token}",
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        await self.rate_limiter.acquire()

        async with httpx.AsyncClient(
            timeout=config.rate_limit.http_timeout, transport=self._transport
        ) as client:
            resp = await client.get(
                f"{TWITTER_API_BASE}{path}", headers=self.headers, params=params
            )

        if resp.status_code in AUTH_ERROR_STATUSES:
            raise FeedAuthError(f"Twitter API returned HTTP {resp.status_code} for {path}")
        resp.raise_for_status()
        return resp.json()

    async def login(self, credentials: str | None = None, probe_handle: str | None = None) -> bool:
        """
        Install credentials and, if a handle is given, verify them by
        resolving that profile. Returns False instead of raising.
        """
        if credentials:
            self.bearer_token = credentials
        self._user_ids.clear()

        if not self.bearer_token:
            logger.error("No Twitter bearer token configured")
            return False
        if not probe_handle:
            return True

        try:
            user_id = await self.resolve_user_id(probe_handle)
        except FeedAuthError as e:
            logger.error(f"Twitter login rejected: {e}")
            return False
        except (httpx.HTTPError, FeedError) as e:
            logger.error(
                f"Could not find user @{probe_handle}: {e}",
                extra={"data": {"handle": probe_handle, "error": str(e)}},
            )
            return False

        logger.info(
            f"Logged in, found target user @{probe_handle}",
            extra={"data": {"handle": probe_handle, "user_id": user_id}},
        )
        return True

    async def resolve_user_id(self, handle: str) -> str:
        key = handle.lower().lstrip("@")
        if key in self._user_ids:
            return self._user_ids[key]

        data = await self._get(f"/users/by/username/{key}")
        user = data.get("data")
        if not user or "id" not in user:
            raise FeedError(f"Profile @{key} not found")
        self._user_ids[key] = user["id"]
        return user["id"]

    @staticmethod
    def _tweet_to_post(tweet: dict[str, Any], handle: str) -> Post:
        created_at = tweet.get("created_at")
        if created_at:
            timestamp = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        else:
            timestamp = datetime.now(timezone.utc)
        return Post(
            post_id=str(tweet["id"]),
            author=handle,
            text=tweet.get("text", ""),
            created_at=timestamp,
        )

    async def fetch_recent(self, handle: str, limit: int = 10) -> list[Post]:
        """Most recent posts of `handle`, newest first, at most `limit`."""
        handle = handle.lstrip("@")
        user_id = await self.resolve_user_id(handle)
        params = {
            "max_results": max(TIMELINE_MIN_RESULTS, min(limit, TIMELINE_MAX_RESULTS)),
            "tweet.fields": "created_at,author_id",
        }
        data = await self._get(f"/users/{user_id}/tweets", params=params)

        posts = [self._tweet_to_post(t, handle) for t in data.get("data", [])][:limit]
        logger.info(
            f"Retrieved {len(posts)} posts from @{handle}",
            extra={"data": {"handle": handle, "count": len(posts)}},
        )
        return posts
