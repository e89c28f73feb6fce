"""
IP rate limiting for the API.

Request timestamps are kept in process memory per client IP and rule; a
request is admitted only when every rule still has room in its sliding
window.
"""

import re
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

PERIOD_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
RULE_PATTERN = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*([smhd])\s*$")


class RateLimitRule:
    """At most `limit` requests per `period` (e.g. "10s", "5m")."""

    def __init__(self, limit: int, period: str, endpoint: str = "*"):
        match = re.match(r"^(\d+)([smhd])$", period)
        if limit < 1 or not match:
            raise ValueError(f"Invalid rate limit rule: {limit}/{period}")
        self.limit = limit
        self.period = period
        self.endpoint = endpoint
        self.seconds = int(match.group(1)) * PERIOD_UNITS[match.group(2)]

    @classmethod
    def parse(cls, text: str) -> "RateLimitRule":
        """Parse a "limit/period" string such as "200/10s"."""
        match = RULE_PATTERN.match(text)
        if not match:
            raise ValueError(f"Invalid rate limit rule: {text!r}")
        return cls(int(match.group(1)), f"{match.group(2)}{match.group(3)}")

    def __repr__(self) -> str:
        return f"RateLimitRule({self.limit}/{self.period})"


def parse_rules(text: str) -> List[RateLimitRule]:
    """Parse a comma-separated list of rules."""
    return [RateLimitRule.parse(part) for part in text.split(",") if part.strip()]


class RateLimitDecision:
    """Outcome of a rate limit check for one request."""

    def __init__(self, allowed: bool, rule: RateLimitRule, remaining: int, reset_time: float,
                 retry_after: Optional[int] = None):
        self.allowed = allowed
        self.rule = rule
        self.remaining = remaining
        self.reset_time = reset_time
        self.retry_after = retry_after

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-Rate-Limit-Limit": self.rule.period,
            "X-Rate-Limit-Remaining": str(self.remaining),
            "X-Rate-Limit-Reset": str(int(self.reset_time)),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class IpRateLimiter:
    """Handles rate limiting per client IP."""

    def __init__(self, rules: Iterable[RateLimitRule], clock: Callable[[], float] = time.time,
                 exempt_paths: Iterable[str] = ("/health",)):
        self.rules = list(rules)
        if not self.rules:
            raise ValueError("At least one rate limit rule is required")
        self.clock = clock
        self.exempt_paths = tuple(exempt_paths)
        self.requests: Dict[Tuple[str, str], List[float]] = {}

    def _window(self, client_ip: str, rule: RateLimitRule, now: float) -> List[float]:
        key = (client_ip, rule.period)
        # Clean requests outside the rule window
        window = [req_time for req_time in self.requests.get(key, []) if now - req_time < rule.seconds]
        self.requests[key] = window
        return window

    def check(self, client_ip: str) -> RateLimitDecision:
        """
        Check and count one request from client_ip.

        Returns:
            The decision for the tightest rule, or the first exceeded rule
        """
        now = self.clock()
        windows = [(rule, self._window(client_ip, rule, now)) for rule in self.rules]

        for rule, window in windows:
            if len(window) >= rule.limit:
                reset_time = window[0] + rule.seconds
                retry_after = max(1, int(reset_time - now + 0.999))
                return RateLimitDecision(False, rule, 0, reset_time, retry_after)

        for _, window in windows:
            window.append(now)

        tightest_rule, tightest_window = min(windows, key=lambda item: item[0].limit - len(item[1]))
        return RateLimitDecision(
            True,
            tightest_rule,
            tightest_rule.limit - len(tightest_window),
            tightest_window[0] + tightest_rule.seconds,
        )

    async def __call__(self, request: Request, call_next) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        decision = self.check(client_ip)

        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded",
                client_ip=client_ip,
                path=request.url.path,
                limit=decision.rule.limit,
                period=decision.rule.period
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": f"API calls quota exceeded! maximum admitted {decision.rule.limit} "
                             f"per {decision.rule.period}.",
                    "detail": None,
                    "statusCode": status.HTTP_429_TOO_MANY_REQUESTS,
                },
                headers=decision.headers(),
            )

        response = await call_next(request)
        response.headers.update(decision.headers())
        return response
