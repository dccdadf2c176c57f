"""
Rate limiting for API endpoints
"""
import time
from collections import defaultdict
from fastapi import Request
from typing import Dict, List
import logging

from formbuilder.config import settings
from formbuilder.exceptions import APIError

logger = logging.getLogger(__name__)


class RateLimitExceeded(APIError):
    def __init__(self, message: str, retry_after: int):
        super().__init__(status_code=429, message=message)
        self.retry_after = retry_after


class RateLimiter:
    """
    Per-process sliding-window limits per respondent session or client IP
    Counters are not shared between workers
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000, enabled: bool = True):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.enabled = enabled

        # Storage: {client_id: [timestamp, ...]}
        self.minute_tracker: Dict[str, List[float]] = defaultdict(list)
        self.hour_tracker: Dict[str, List[float]] = defaultdict(list)

    def _get_client_id(self, request: Request) -> str:
        """Identify the client by session header, falling back to IP address"""
        session_id = request.headers.get("x-session-id")
        if session_id:
            return f"session:{session_id}"

        return request.client.host if request.client else "unknown"

    def _cleanup_old_entries(self, tracker: Dict[str, List[float]], window_seconds: int):
        """Remove entries older than window"""
        cutoff_time = time.time() - window_seconds

        for client_id in list(tracker.keys()):
            tracker[client_id] = [ts for ts in tracker[client_id] if ts > cutoff_time]

            # Remove empty entries
            if not tracker[client_id]:
                del tracker[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            RateLimitExceeded: 429 if rate limit exceeded
        """
        if not self.enabled:
            return

        client_id = self._get_client_id(request)
        current_time = time.time()

        self._cleanup_old_entries(self.minute_tracker, 60)
        self._cleanup_old_entries(self.hour_tracker, 3600)

        minute_requests = len(self.minute_tracker[client_id])
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise RateLimitExceeded(
                f"Too many requests. Limit: {self.requests_per_minute} requests per minute",
                retry_after=60,
            )

        hour_requests = len(self.hour_tracker[client_id])
        if hour_requests >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise RateLimitExceeded(
                f"Too many requests. Limit: {self.requests_per_hour} requests per hour",
                retry_after=3600,
            )

        self.minute_tracker[client_id].append(current_time)
        self.hour_tracker[client_id].append(current_time)

        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests+1}, hour: {hour_requests+1})")


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
    enabled=settings.RATE_LIMIT_ENABLED,
)
