"""
Background Processor Component
==============================

Countdown and status polling while a submitted job is processing.
- Two independent repeating tasks (countdown tick, status poll)
- Polling stops at a terminal status, on a configuration error,
  or when the poll budget expires
- Both tasks are cancelled by stop() (reset, new submission, teardown)
- Both tasks also stop on their own once the page stops calling
  heartbeat() (the browser session was closed)
"""

import streamlit as st
import threading
import time
import logging
from typing import Any, Dict, Optional

from handlers.timeout_handler import RepeatingTimer, TimeoutManager
from models import JobStatus, StatusRecord
from status_client import StatusClient, StatusConfigurationError, StatusQueryError

logger = logging.getLogger(__name__)


class ProcessingMonitor:
    """Countdown plus status polling for one job"""

    def __init__(
        self,
        job_id: Optional[str],
        status_client: Optional[StatusClient] = None,
        countdown_seconds: int = 30,
        poll_interval: float = 5.0,
        poll_timeout: float = 300,
        tick_interval: float = 1.0,
        abandon_after: float = 60.0
    ):
        self.job_id = job_id
        self.status_client = status_client
        self.countdown_seconds = countdown_seconds
        self.poll_interval = poll_interval
        self.tick_interval = tick_interval
        self.abandon_after = abandon_after

        self._lock = threading.Lock()
        self._remaining = countdown_seconds
        self._record: Optional[StatusRecord] = None
        self._poll_error: Optional[str] = None
        self._polling_done = not (job_id and status_client)
        self._poll_budget = TimeoutManager(max_seconds=poll_timeout)
        self._last_seen: Optional[float] = None

        self._countdown_timer: Optional[RepeatingTimer] = None
        self._poll_timer: Optional[RepeatingTimer] = None

    # ==================== LIFECYCLE ====================

    def start(self):
        """Start the countdown and, if there is a job id, the status poll"""
        self.heartbeat()
        self._countdown_timer = RepeatingTimer(self.tick_interval, self.tick, name="processing-countdown")
        self._countdown_timer.start()

        if not self._polling_done:
            self._poll_budget.start()
            self._poll_timer = RepeatingTimer(self.poll_interval, self.poll_once, name=f"status-poll-{self.job_id}")
            self._poll_timer.start()
            logger.info(f"Polling status for job {self.job_id} every {self.poll_interval}s")

    def stop(self):
        """Cancel both repeating tasks"""
        for timer in (self._countdown_timer, self._poll_timer):
            if timer:
                timer.cancel()
        with self._lock:
            self._polling_done = True

    def heartbeat(self):
        """Mark the owning page as alive; called on every render"""
        with self._lock:
            self._last_seen = time.monotonic()

    @property
    def is_abandoned(self) -> bool:
        """True once no page has rendered this monitor for `abandon_after` seconds"""
        with self._lock:
            if self._last_seen is None:
                return False
            return time.monotonic() - self._last_seen > self.abandon_after

    # ==================== TASKS ====================

    def tick(self) -> bool:
        """Countdown step; returns False once zero is reached"""
        if self.is_abandoned:
            logger.info("Stopped countdown: page no longer rendering")
            return False
        with self._lock:
            if self._remaining > 0:
                self._remaining -= 1
            return self._remaining > 0

    def poll_once(self) -> bool:
        """Query the status table once; returns False when polling should stop"""
        if self.is_abandoned:
            logger.info(f"Stopped polling job {self.job_id}: page no longer rendering")
            with self._lock:
                self._polling_done = True
            return False

        if self._poll_budget.is_expired():
            logger.warning(f"Stopped polling job {self.job_id}: time budget exhausted")
            with self._lock:
                self._poll_error = "Timed out waiting for the workflow to finish"
                self._polling_done = True
            return False

        try:
            record = self.status_client.fetch(self.job_id)
        except StatusConfigurationError as e:
            logger.error(f"Status polling disabled: {e}")
            with self._lock:
                self._poll_error = str(e)
                self._polling_done = True
            return False
        except StatusQueryError as e:
            logger.warning(f"Status query failed for job {self.job_id}: {e}")
            with self._lock:
                self._poll_error = str(e)
            return True

        with self._lock:
            self._record = record
            self._poll_error = None
            if record.status.is_terminal:
                self._polling_done = True
        return not record.status.is_terminal

    # ==================== STATE ====================

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def record(self) -> Optional[StatusRecord]:
        with self._lock:
            return self._record

    @property
    def status(self) -> Optional[JobStatus]:
        record = self.record
        return record.status if record else None

    @property
    def poll_error(self) -> Optional[str]:
        with self._lock:
            return self._poll_error

    @property
    def is_terminal(self) -> bool:
        status = self.status
        return status is not None and status.is_terminal

    @property
    def is_polling(self) -> bool:
        with self._lock:
            return not self._polling_done

    @property
    def can_reset(self) -> bool:
        """Reset is allowed once the countdown hits zero or the job is terminal"""
        return self.remaining_seconds == 0 or self.is_terminal

    def snapshot(self) -> Dict[str, Any]:
        record = self.record
        return {
            'job_id': self.job_id,
            'remaining_seconds': self.remaining_seconds,
            'status': record.status.value if record else None,
            'updated_at': record.updated_at if record else None,
            'poll_error': self.poll_error,
            'is_polling': self.is_polling,
            'can_reset': self.can_reset,
        }


def render_processing_ui(monitor: Optional[ProcessingMonitor], refresh_seconds: float = 1.0):
    """
    Render countdown and status while processing.

    Re-runs the script every `refresh_seconds` until reset becomes possible
    and polling has stopped.
    """
    if monitor is None:
        return

    monitor.heartbeat()
    state = monitor.snapshot()

    st.subheader("⚙️ Processing")
    if monitor.countdown_seconds:
        done = monitor.countdown_seconds - state['remaining_seconds']
        st.progress(min(1.0, done / monitor.countdown_seconds))

    if state['remaining_seconds'] > 0 and not monitor.is_terminal:
        st.info(f"⏳ Your document is being processed. You can start a new job in {state['remaining_seconds']}s.")

    status = monitor.status
    if status == JobStatus.DONE:
        st.success("✅ Processing complete!")
    elif status == JobStatus.FAILED:
        st.error(f"❌ Workflow failed: {monitor.record.error or 'no details provided'}")
    elif status in (JobStatus.PENDING, JobStatus.PROCESSING):
        st.caption(f"Status: {status.value}" + (f" (updated {state['updated_at']})" if state['updated_at'] else ""))
    elif status == JobStatus.NOT_FOUND:
        st.caption("Waiting for the workflow to register the job...")

    if state['poll_error']:
        st.warning(f"⚠️ {state['poll_error']}")

    if not state['can_reset'] or state['is_polling']:
        time.sleep(refresh_seconds)
        st.rerun()
