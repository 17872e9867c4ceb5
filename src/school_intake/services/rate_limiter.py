"""Per-client submission limits"""

import hashlib
import math
import time
from typing import Optional

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

NAMESPACE = "submit"


def client_identifier(request: Request) -> str:
    """Client address plus a short hash of the User-Agent"""
    host = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "")
    digest = hashlib.md5(user_agent.encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{host}:{digest[:8]}"


class SubmissionRateLimiter:
    """
    Fixed window limiter: at most `max_requests` submissions per client in
    every `window` seconds. Counters live in process memory unless another
    `limits` storage is passed in.
    """

    def __init__(self, max_requests: int = 10, window: int = 60, storage: Optional[Storage] = None):
        self.item = RateLimitItemPerSecond(max_requests, window)
        self.limiter = FixedWindowRateLimiter(storage or MemoryStorage())

    def hit(self, identifier: str) -> bool:
        """Count one request; False once the client is over the limit"""
        return self.limiter.hit(self.item, NAMESPACE, identifier)

    def retry_after(self, identifier: str) -> int:
        """Seconds until the client's current window resets"""
        stats = self.limiter.get_window_stats(self.item, NAMESPACE, identifier)
        return max(1, math.ceil(stats.reset_time - time.time()))
