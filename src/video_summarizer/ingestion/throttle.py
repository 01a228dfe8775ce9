"""Process-wide request throttling and retry policy for upstream calls."""

import logging
import threading
import time
from typing import Callable

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from .exceptions import TransientUpstreamError

logger = logging.getLogger(__name__)


class RequestWindow:
    """Counts upstream requests in a fixed 60-second window.

    ``acquire`` blocks while the window is at its ceiling. The counter resets
    on the first access after the window elapses. Safe to share across
    threads.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def count(self) -> int:
        with self._lock:
            self._roll()
            return self._count

    def _roll(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.window_seconds:
            self._count = 0
            self._window_start = now

    def acquire(self) -> None:
        """Take one slot, sleeping until the window resets if at ceiling."""
        while True:
            with self._lock:
                self._roll()
                if self._count < self.max_requests:
                    self._count += 1
                    return
                wait = self._window_start + self.window_seconds - self._clock()

            logger.info("Upstream request ceiling reached, sleeping %.1fs", wait)
            self._sleep(max(wait, 0.0))


_shared_window: RequestWindow | None = None


def get_request_window() -> RequestWindow:
    """Get or create the process-wide request window."""
    global _shared_window
    if _shared_window is None:
        _shared_window = RequestWindow(settings.upstream_requests_per_minute)
    return _shared_window


def upstream_retrying(
    max_retries: int | None = None,
    base_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Retry policy: transient errors only, base * 2^attempt backoff."""
    max_retries = settings.upstream_max_retries if max_retries is None else max_retries
    base_delay = settings.upstream_retry_base_delay if base_delay is None else base_delay
    return Retrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, min=0, max=60),
        retry=retry_if_exception_type(TransientUpstreamError),
        sleep=sleep,
        reraise=True,
    )


def stop_at_deadline(deadline: float, clock: Callable[[], float] = time.monotonic):
    """Stop condition for ``Retrying``: give up once the next wait would pass ``deadline``."""

    def _stop(retry_state) -> bool:
        return clock() + retry_state.upcoming_sleep >= deadline

    return _stop
