"""Dual-window rate limiter for chat requests.

Two independent fixed windows are tracked in an external key-value store:
one per visitor session (default 10 messages per hour) and one per IP
address (default 100 messages per day). Windows expire through the store's
TTL and are never deleted explicitly.

Updates are a plain read followed by a write. Concurrent requests for the
same key can both read the same count, so a burst may slightly exceed a limit.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from profile_bot.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_LIMIT = 10
IP_LIMIT = 100
HOUR_IN_SECONDS = 3600
DAY_IN_SECONDS = 86400

SESSION_HEADER = "X-Session-ID"


_PERIOD_UNITS = (
    (DAY_IN_SECONDS, "day"),
    (HOUR_IN_SECONDS, "hour"),
    (60, "minute"),
    (1, "second"),
)


def describe_window(seconds: int) -> str:
    """Render a window length for denial messages: "hour", "day", "6 hours"."""
    for unit_seconds, unit in _PERIOD_UNITS:
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return unit if count == 1 else f"{count} {unit}s"
    return f"{seconds} seconds"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    reason: Optional[str] = None
    retry_after: Optional[int] = None


@dataclass(frozen=True)
class RateWindowPolicy:
    """Limit and window length for one counter family."""

    key_prefix: str
    limit: int
    window_seconds: int
    reason_template: str

    def key(self, identifier: str) -> str:
        return f"{self.key_prefix}:{identifier}"

    def reason(self) -> str:
        return self.reason_template.format(
            limit=self.limit, period=describe_window(self.window_seconds)
        )


class RateLimiter:
    """Admit or deny chat requests based on session and IP windows."""

    def __init__(
        self,
        store: KeyValueStore,
        session_limit: int = SESSION_LIMIT,
        ip_limit: int = IP_LIMIT,
        session_window: int = HOUR_IN_SECONDS,
        ip_window: int = DAY_IN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            store: Key-value store holding the window records
            session_limit: Messages allowed per session window
            ip_limit: Messages allowed per IP window
            session_window: Session window length in seconds
            ip_window: IP window length in seconds
            clock: Returns current unix time in seconds
        """
        self.store = store
        self.clock = clock
        self.session_policy = RateWindowPolicy(
            key_prefix="session",
            limit=session_limit,
            window_seconds=session_window,
            reason_template="Rate limit exceeded. You can send {limit} messages per {period}.",
        )
        self.ip_policy = RateWindowPolicy(
            key_prefix="ip",
            limit=ip_limit,
            window_seconds=ip_window,
            reason_template="IP rate limit exceeded. Maximum {limit} messages per {period}.",
        )

    async def check_and_record(self, session_id: str, ip_address: str) -> RateLimitDecision:
        """Check both windows and record the request.

        The session window is evaluated first; a session denial returns
        immediately without touching the IP counter.

        Args:
            session_id: Visitor session identifier
            ip_address: Visitor IP address

        Returns:
            RateLimitDecision
        """
        now = int(self.clock())

        decision = await self._check_window(self.session_policy, session_id, now)
        if not decision.allowed:
            logger.warning(f"Session rate limit hit for {session_id}")
            return decision

        decision = await self._check_window(self.ip_policy, ip_address, now)
        if not decision.allowed:
            logger.warning(f"IP rate limit hit for {ip_address}")
            return decision

        return RateLimitDecision(allowed=True)

    async def _check_window(
        self, policy: RateWindowPolicy, identifier: str, now: int
    ) -> RateLimitDecision:
        key = policy.key(identifier)
        window = await self.store.get_json(key)

        if window is None or now >= int(window["resetAt"]):
            await self.store.put_json(
                key,
                {"count": 1, "resetAt": now + policy.window_seconds},
                policy.window_seconds,
            )
            return RateLimitDecision(allowed=True)

        count = int(window["count"])
        reset_at = int(window["resetAt"])

        if count >= policy.limit:
            return RateLimitDecision(
                allowed=False,
                reason=policy.reason(),
                retry_after=reset_at - now,
            )

        await self.store.put_json(
            key,
            {"count": count + 1, "resetAt": reset_at},
            policy.window_seconds,
        )
        return RateLimitDecision(allowed=True)


def get_client_ip(headers: Mapping[str, str], peer_host: Optional[str] = None) -> str:
    """Resolve the visitor IP from proxy headers, falling back to the peer."""
    connecting_ip = headers.get("CF-Connecting-IP")
    if connecting_ip:
        return connecting_ip

    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return peer_host or "unknown"


def get_session_id(headers: Mapping[str, str], ip_address: str) -> str:
    """Return the client-supplied session id, or derive a stable one.

    Unidentified clients get ``<ip>-<user-agent hash>`` so repeated requests
    from the same IP and agent share a window.
    """
    session_id = headers.get(SESSION_HEADER)
    if session_id:
        return session_id

    user_agent = headers.get("User-Agent") or "unknown"
    agent_hash = hashlib.sha256(user_agent.encode("utf-8")).hexdigest()[:12]
    return f"{ip_address}-{agent_hash}"
