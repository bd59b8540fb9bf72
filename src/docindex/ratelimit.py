"""Process-wide gate for outbound AI provider calls."""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from docindex.errors import IndexingCancelled

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL = 4.0


class RateLimiter:
    """Single-flight gate with a minimum spacing between calls.

    One instance is created at startup and handed to every component that
    talks to an AI provider (embeddings, generation, cloud extraction). The
    gate is held for the whole call, so outbound AI traffic is serialized
    across all worker threads, and consecutive calls start at least
    ``min_interval`` seconds apart.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None

    @contextmanager
    def slot(self, cancel: Optional[threading.Event] = None) -> Iterator[None]:
        """Hold the gate for the duration of one provider call.

        Args:
            cancel: Optional event; when set during the wait the call is
                abandoned with IndexingCancelled.
        """
        self._lock.acquire()
        try:
            self._wait_for_spacing(cancel)
            self._last_call = self._clock()
            yield
        finally:
            self._lock.release()

    def _wait_for_spacing(self, cancel: Optional[threading.Event]) -> None:
        if self._last_call is None:
            return
        delay = self.min_interval - (self._clock() - self._last_call)
        if delay <= 0:
            return
        logger.debug(f"Rate limiter: waiting {delay:.1f}s before next API call")
        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise IndexingCancelled("Cancelled while waiting for rate limiter")
