"""
Rate limiting middleware for FastAPI.

This module provides a simple in-memory rate limiter with the following features:
- Per-IP rate limiting
- Separate limits for auth endpoints, chat message sends and everything else
- Automatic cleanup of expired entries
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from mindchat.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    """Tracks rate limit state for a single client."""

    count: int = 0
    window_start: float = field(default_factory=time.time)


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    Attributes:
        max_requests: Maximum number of requests allowed per window
        window_seconds: Window size in seconds
        cleanup_interval: How often to clean up expired entries (in requests)
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        cleanup_interval: int = 100,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._entries: Dict[str, RateLimitEntry] = defaultdict(RateLimitEntry)
        self._lock = Lock()
        self._request_count = 0

    def is_allowed(self, client_id: str) -> tuple[bool, int, int]:
        """
        Check if a request from the given client is allowed.

        Args:
            client_id: Unique identifier for the client (usually IP address)

        Returns:
            Tuple of (is_allowed, remaining_requests, reset_time_seconds)
        """
        with self._lock:
            self._request_count += 1

            # Periodic cleanup
            if self._request_count % self.cleanup_interval == 0:
                self._cleanup_expired()

            now = time.time()
            entry = self._entries[client_id]

            window_elapsed = now - entry.window_start
            if window_elapsed >= self.window_seconds:
                entry.window_start = now
                entry.count = 1
                return True, self.max_requests - 1, self.window_seconds

            if entry.count < self.max_requests:
                entry.count += 1
                remaining = self.max_requests - entry.count
                return True, remaining, int(self.window_seconds - window_elapsed)

            return False, 0, int(self.window_seconds - window_elapsed)

    def _cleanup_expired(self) -> None:
        """Remove expired entries to prevent memory leaks."""
        now = time.time()
        expired = [
            client_id
            for client_id, entry in self._entries.items()
            if now - entry.window_start >= self.window_seconds * 2
        ]
        for client_id in expired:
            del self._entries[client_id]
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired rate limit entries")

    def reset(self, client_id: str) -> None:
        """Reset rate limit for a specific client."""
        with self._lock:
            if client_id in self._entries:
                del self._entries[client_id]


# Global rate limiters
auth_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_AUTH_REQUESTS,
    window_seconds=settings.RATE_LIMIT_AUTH_WINDOW,
)

api_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_API_REQUESTS,
    window_seconds=settings.RATE_LIMIT_API_WINDOW,
)

# Every message send triggers a paid completion call
message_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MESSAGE_REQUESTS,
    window_seconds=settings.RATE_LIMIT_MESSAGE_WINDOW,
)

ALL_LIMITERS = (auth_limiter, api_limiter, message_limiter)


def get_client_ip(request: Request) -> str:
    """
    Extract client IP from request, considering proxy headers.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address
    """
    # Check for forwarded header (when behind proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def select_limiter(method: str, path: str) -> tuple[RateLimiter, str]:
    """Pick the bucket a request counts against."""
    if "/auth/" in path:
        return auth_limiter, "auth"
    if method == "POST" and path.endswith("/messages"):
        return message_limiter, "messages"
    return api_limiter, "api"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for rate limiting.

    Applies different rate limits based on the request path:
    - Auth endpoints (/api/v1/auth/*): Stricter limits to prevent brute force
    - Message sends (POST .../messages): Per-minute limit on AI turns
    - Other API endpoints: General rate limits
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        client_ip = get_client_ip(request)

        # Skip rate limiting for health checks
        if "/health" in path:
            return await call_next(request)

        limiter, limit_type = select_limiter(request.method, path)
        is_allowed, remaining, reset_time = limiter.is_allowed(client_ip)

        headers = {
            "X-RateLimit-Limit": str(limiter.max_requests),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_time),
        }

        if not is_allowed:
            logger.warning(
                f"Rate limit exceeded for {client_ip} on {path} ({limit_type})"
            )
            # Exceptions raised here would bypass the app's exception handlers
            message = f"Too many requests. Try again in {reset_time} seconds."
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": message, "message": message},
                headers={"Retry-After": str(reset_time), **headers},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
