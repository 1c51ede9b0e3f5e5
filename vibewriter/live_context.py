"""
Quiet-period trigger for the live context feed.
Every edit re-arms a single timer; the callback fires only once the document
has been left alone for the whole quiet period.
"""

import threading
from typing import Callable, Optional

from vibewriter.config import QUIET_PERIOD_SECONDS
from vibewriter.utils import setup_logger

logger = setup_logger(__name__)


class QuietPeriodWatcher:
    """Debounce timer built on threading.Timer (cancel-and-restart on each touch)."""

    def __init__(self, callback: Callable[[], None], delay: float = QUIET_PERIOD_SECONDS):
        self.callback = callback
        self.delay = delay
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def touch(self):
        """Register an edit: drop any armed timer and start a fresh quiet period."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def fire_now(self):
        """Skip the wait: cancel the armed timer and run the callback synchronously."""
        self.cancel()
        self._run()

    def _fire(self, generation: int):
        with self._lock:
            # A touch() after this timer was armed superseded it
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._run()

    def _run(self):
        try:
            self.callback()
        except Exception as e:
            logger.error(f"[LIVE] Quiet-period callback failed: {e}")
