"""
Fixed-window per-device rate limiter.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional

from shared.logging import get_logger

from ..models import RateWindowState

WINDOW_SECONDS = 60
DEFAULT_REQUESTS_PER_WINDOW = 60


class FixedWindowRateLimiter:
    """Counts requests per device in fixed 60 second windows.

    State is local to this instance. All reads and writes of the window map
    happen under one lock, so concurrent requests for the same device cannot
    both be admitted past the limit.
    """

    def __init__(
        self,
        requests_per_window: int = DEFAULT_REQUESTS_PER_WINDOW,
        *,
        window_seconds: float = WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.limit = requests_per_window
        self.window_seconds = window_seconds
        self.logger = get_logger("gitgate.rate_limiter")
        self._clock = clock or time.time
        self._windows: Dict[str, RateWindowState] = {}
        self._lock = threading.Lock()

    def _current(self, device_id: str, now: float) -> Optional[RateWindowState]:
        state = self._windows.get(device_id)
        if state is None or now >= state.window_ends_at:
            return None
        return state

    def _admit(self, device_id: str, now: float) -> Optional[RateWindowState]:
        """Count one request under the lock. Returns the window, or None when denied."""
        state = self._current(device_id, now)

        if state is None:
            state = RateWindowState(count=1, window_ends_at=now + self.window_seconds)
            self._windows[device_id] = state
            return state

        if state.count < self.limit:
            state.count += 1
            return state

        return None

    def is_allowed(self, device_id: str) -> bool:
        """Admit or deny one request for the device, counting it if admitted."""
        with self._lock:
            admitted = self._admit(device_id, self._clock()) is not None

        if not admitted:
            self.logger.warning("Rate limit exceeded", device_id=device_id, limit=self.limit)
        return admitted

    def get_remaining(self, device_id: str) -> int:
        """Requests the device may still make in its current window."""
        with self._lock:
            state = self._current(device_id, self._clock())
            if state is None:
                return self.limit
            return max(0, self.limit - state.count)

    def get_reset_time(self, device_id: str) -> float:
        """Timestamp at which the device's window ends (now if it has none)."""
        with self._lock:
            now = self._clock()
            state = self._current(device_id, now)
            return state.window_ends_at if state else now

    def check(self, device_id: str) -> Dict[str, Any]:
        """Count a request and report the window status for response headers.

        The decision, the remaining count and the reset time come from one
        snapshot of the device's window.
        """
        with self._lock:
            now = self._clock()
            admitted = self._admit(device_id, now)
            state = admitted or self._current(device_id, now)
            remaining = max(0, self.limit - state.count) if state else self.limit
            reset_at = state.window_ends_at if state else now

        if admitted is None:
            self.logger.warning("Rate limit exceeded", device_id=device_id, limit=self.limit)
        return {
            "allowed": admitted is not None,
            "limit": self.limit,
            "remaining": remaining,
            "reset_in_seconds": max(0, int(round(reset_at - now))),
        }
