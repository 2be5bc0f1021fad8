# core/rate_limiter.py

from typing import Dict, Tuple, Optional
from fastapi import HTTPException, Request
from collections import defaultdict
from threading import Lock
import time


# Simple in-memory rate limiter, per process
_rate_limit_store: Dict[str, list] = defaultdict(list)
_store_lock = Lock()


def check_rate_limit(
    identifier: str,
    max_requests: int = 10,
    window_seconds: int = 60,
) -> Tuple[bool, int]:
    """
    Check if a request should be rate limited (sliding window).

    Returns:
        Tuple of (allowed: bool, remaining: int)
    """
    now = time.time()
    window_start = now - window_seconds

    with _store_lock:
        requests = [ts for ts in _rate_limit_store[identifier] if ts > window_start]

        if len(requests) >= max_requests:
            _rate_limit_store[identifier] = requests
            return False, 0

        requests.append(now)
        _rate_limit_store[identifier] = requests

    return True, max_requests - len(requests)


def reset_rate_limits():
    with _store_lock:
        _rate_limit_store.clear()


def get_rate_limit_identifier(request: Request, user_id: Optional[str] = None) -> str:
    """
    Get a unique identifier for rate limiting.
    Prefers user_id if available, otherwise uses IP address.
    """
    if user_id:
        return f"user:{user_id}"

    client_ip = request.client.host if request.client else "unknown"

    # Behind a proxy the first forwarded address is the original client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()

    return f"ip:{client_ip}"


def require_rate_limit(
    request: Request,
    identifier: Optional[str] = None,
    max_requests: int = 10,
    window_seconds: int = 60,
    scope: str = "default",
):
    """
    Raise HTTPException 429 if the caller exceeded the limit for this scope.
    """
    if identifier is None:
        identifier = get_rate_limit_identifier(request)

    allowed, remaining = check_rate_limit(f"{scope}:{identifier}", max_requests, window_seconds)

    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds.",
            headers={
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Window": str(window_seconds),
                "Retry-After": str(window_seconds),
            },
        )

    return remaining
