"""Fixed-window rate limiting for the chat routes.

Each caller key (the client's address) may make ``limit`` requests per window.
The first request after a window expires opens a new one. Expired windows are
swept periodically by a daemon thread that is started and stopped explicitly
with the application.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from chatrelay.conf.config import Config

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Counts requests per key in fixed time windows.

    Attributes:
        limit (int): Requests allowed per window
        window_seconds (float): Length of a window
        cleanup_seconds (float): Interval between sweeps of expired windows
    """

    def __init__(
        self,
        limit: Optional[int] = None,
        window_seconds: Optional[float] = None,
        cleanup_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit or Config.RATE_LIMIT_REQUESTS
        self.window_seconds = window_seconds or Config.RATE_LIMIT_WINDOW_SECONDS
        self.cleanup_seconds = cleanup_seconds or Config.RATE_LIMIT_CLEANUP_SECONDS
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def hit(self, key: str) -> bool:
        """Record a request for ``key``.

        Args:
            key: Caller identity

        Returns:
            True if the request is allowed, False if the quota is exhausted
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count >= self.limit:
                return False
            window.count += 1
            return True

    def sweep(self) -> int:
        """Drop expired windows.

        Returns:
            Number of windows removed
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, w in self._windows.items() if now > w.reset_at]
            for key in expired:
                del self._windows[key]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired windows")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the background sweep. Calling it twice has no effect."""
        if self.running:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="rate-limit-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info(
            f"Rate limiter started ({self.limit} requests per {self.window_seconds}s)"
        )

    def stop(self) -> None:
        """Stop the background sweep and forget all windows."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None
        with self._lock:
            self._windows.clear()

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.cleanup_seconds):
            self.sweep()
