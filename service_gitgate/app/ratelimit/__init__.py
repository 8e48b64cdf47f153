"""
Rate limiting package for the gateway.

Holds the fixed-window limiter that enforces per-device request budgets.
"""

from .fixed_window import FixedWindowRateLimiter, WINDOW_SECONDS, DEFAULT_REQUESTS_PER_WINDOW

__all__ = [
    "DEFAULT_REQUESTS_PER_WINDOW",
    "FixedWindowRateLimiter",
    "WINDOW_SECONDS",
]
