"""
Timeout Handler - Time Budgets and Repeating Tasks
===================================================

- TimeoutManager: tracks elapsed time against a fixed budget
- RepeatingTimer: background task that runs every N seconds until it
  returns False or is cancelled

Repeating tasks are daemon threads; whoever starts one owns it and must
cancel it on reset or teardown.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging
import threading

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class TimeoutManager:
    """
    Tracks an operation against a time budget.

    1. Tracks elapsed time
    2. Warns when approaching limit
    3. Reports expiry so callers can stop waiting
    """

    def __init__(
        self,
        max_seconds: float = 300,
        warning_at: Optional[float] = None
    ):
        """
        Initialize timeout manager.

        Args:
            max_seconds: Maximum time allowed (default 5 minutes)
            warning_at: When to start warning (default 80% of max_seconds)
        """
        self.max_seconds = max_seconds
        self.warning_at = warning_at if warning_at is not None else max_seconds * 0.8
        self.start_time: Optional[datetime] = None

    def start(self):
        """Start the timeout timer."""
        self.start_time = datetime.now()
        logger.info(f"Timeout timer started: {self.max_seconds}s limit")

    @property
    def started(self) -> bool:
        return self.start_time is not None

    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if not self.start_time:
            return 0
        return (datetime.now() - self.start_time).total_seconds()

    def remaining(self) -> float:
        """Get remaining time in seconds."""
        return max(0, self.max_seconds - self.elapsed())

    def should_wrap_up(self) -> bool:
        """Return True if we are close to the limit."""
        return self.started and self.elapsed() >= self.warning_at

    def is_expired(self) -> bool:
        """Return True if we've exceeded max time."""
        return self.started and self.elapsed() >= self.max_seconds

    def get_status(self) -> Dict[str, Any]:
        """Get current timeout status."""
        elapsed = self.elapsed()
        return {
            "elapsed_seconds": elapsed,
            "remaining_seconds": self.remaining(),
            "should_wrap_up": self.should_wrap_up(),
            "is_expired": self.is_expired(),
            "percent_complete": min(100.0, (elapsed / self.max_seconds) * 100) if self.max_seconds else 100.0
        }


class RepeatingTimer:
    """
    Calls `func` every `interval` seconds on a daemon thread.

    The task stops when `func` returns False, when `func` raises (the error
    is logged), or when `cancel()` is called.
    """

    def __init__(
        self,
        interval: float,
        func: Callable[[], bool],
        name: Optional[str] = None
    ):
        self.interval = interval
        self.func = func
        self.name = name or getattr(func, '__name__', 'repeating-task')
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)

    def start(self):
        """Start the repeating task."""
        self._thread.start()

    def _run(self):
        while not self._stopped.wait(self.interval):
            try:
                keep_going = self.func()
            except Exception:
                logger.exception(f"Repeating task '{self.name}' failed; stopping")
                break
            if not keep_going:
                break
        self._stopped.set()

    def cancel(self, join_timeout: float = 1.0):
        """Stop the task; waits briefly for the thread unless called from it."""
        self._stopped.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(join_timeout)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    @property
    def is_cancelled(self) -> bool:
        return self._stopped.is_set()
