"""Tests for the processing countdown, status polling and repeating timers"""

import threading
import time

import pytest

from components.background_processor import ProcessingMonitor
from handlers.timeout_handler import RepeatingTimer, TimeoutManager
from models import JobStatus, StatusRecord
from status_client import StatusConfigurationError, StatusQueryError


class ScriptedStatusClient:
    """Returns (or raises) the scripted outcomes in order"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def fetch(self, job_id):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def record(status, **kwargs):
    return StatusRecord(job_id="job-1", status=status, **kwargs)


def make_monitor(client=None, job_id="job-1", **kwargs):
    kwargs.setdefault('countdown_seconds', 3)
    return ProcessingMonitor(job_id, client, **kwargs)


class TestCountdown:

    def test_tick_counts_down_to_zero(self):
        monitor = make_monitor()

        assert monitor.tick()
        assert monitor.tick()
        assert not monitor.tick()
        assert not monitor.tick()
        assert monitor.remaining_seconds == 0
        assert monitor.can_reset

    def test_cannot_reset_while_counting(self):
        monitor = make_monitor()
        monitor.tick()

        assert monitor.remaining_seconds == 2
        assert not monitor.can_reset

    def test_no_job_id_means_no_polling(self):
        monitor = make_monitor(ScriptedStatusClient(), job_id=None)

        assert not monitor.is_polling

    def test_no_client_means_no_polling(self):
        assert not make_monitor(None).is_polling


class TestPolling:

    def test_not_found_then_done(self):
        client = ScriptedStatusClient(
            StatusRecord.not_found("job-1"),
            record(JobStatus.PROCESSING),
            record(JobStatus.DONE, html_base64="PGgxPk9rPC9oMT4="),
        )
        monitor = make_monitor(client)

        assert monitor.poll_once()
        assert monitor.status == JobStatus.NOT_FOUND
        assert monitor.poll_once()
        assert monitor.status == JobStatus.PROCESSING
        assert not monitor.poll_once()

        assert monitor.is_terminal
        assert not monitor.is_polling
        assert monitor.can_reset
        assert monitor.record.decoded_html() == "<h1>Ok</h1>"

    def test_failed_is_terminal(self):
        monitor = make_monitor(ScriptedStatusClient(record(JobStatus.FAILED, error="bad pdf")))

        assert not monitor.poll_once()
        assert monitor.is_terminal
        assert monitor.record.error == "bad pdf"

    def test_query_error_keeps_polling(self):
        client = ScriptedStatusClient(
            StatusQueryError("Failed to query workflow status", 500),
            record(JobStatus.PENDING),
        )
        monitor = make_monitor(client)

        assert monitor.poll_once()
        assert "Failed to query" in monitor.poll_error
        assert monitor.is_polling

        assert monitor.poll_once()
        assert monitor.poll_error is None

    def test_configuration_error_stops_polling(self):
        error = StatusConfigurationError({'apiUrl': True, 'apiKey': False, 'tableId': False})
        monitor = make_monitor(ScriptedStatusClient(error))

        assert not monitor.poll_once()
        assert not monitor.is_polling
        assert "not configured" in monitor.poll_error

    def test_poll_budget_exhausted(self):
        client = ScriptedStatusClient(record(JobStatus.PENDING))
        monitor = make_monitor(client, poll_timeout=0, poll_interval=3600, tick_interval=3600)
        monitor.start()
        try:
            assert not monitor.poll_once()
        finally:
            monitor.stop()

        assert client.calls == 0
        assert "Timed out" in monitor.poll_error

    def test_stop_cancels_tasks(self):
        monitor = make_monitor(ScriptedStatusClient(), poll_interval=3600, tick_interval=3600)
        monitor.start()
        assert monitor.is_polling

        monitor.stop()

        assert not monitor.is_polling
        assert monitor._countdown_timer.is_cancelled
        assert monitor._poll_timer.is_cancelled

    def test_snapshot(self):
        monitor = make_monitor(ScriptedStatusClient(record(JobStatus.DONE, updated_at="2024-05-01")))
        monitor.poll_once()

        snapshot = monitor.snapshot()

        assert snapshot['status'] == "done"
        assert snapshot['updated_at'] == "2024-05-01"
        assert snapshot['can_reset']
        assert not snapshot['is_polling']


class TestAbandonedPage:

    def test_not_abandoned_before_first_render(self):
        monitor = make_monitor(abandon_after=0)

        assert not monitor.is_abandoned
        assert monitor.tick()

    def test_tasks_stop_without_heartbeat(self):
        client = ScriptedStatusClient(record(JobStatus.PENDING))
        monitor = make_monitor(client, abandon_after=0.01)
        monitor.heartbeat()
        time.sleep(0.05)

        assert monitor.is_abandoned
        assert not monitor.tick()
        assert not monitor.poll_once()
        assert client.calls == 0
        assert not monitor.is_polling

    def test_heartbeat_keeps_monitor_alive(self):
        monitor = make_monitor(abandon_after=0.05)
        monitor.heartbeat()
        time.sleep(0.1)
        monitor.heartbeat()

        assert not monitor.is_abandoned

    def test_started_timers_end_when_page_goes_away(self):
        client = ScriptedStatusClient(*[record(JobStatus.PENDING) for _ in range(500)])
        monitor = make_monitor(
            client, countdown_seconds=1000, tick_interval=0.01, poll_interval=0.01, abandon_after=0.1
        )
        monitor.start()
        try:
            monitor._countdown_timer._thread.join(3)
            monitor._poll_timer._thread.join(3)

            assert not monitor._countdown_timer.is_running
            assert not monitor._poll_timer.is_running
            assert not monitor.is_polling
        finally:
            monitor.stop()


class TestRepeatingTimer:

    def test_runs_until_cancelled(self):
        ran = threading.Event()
        calls = []

        def task():
            calls.append(1)
            ran.set()
            return True

        timer = RepeatingTimer(0.01, task)
        timer.start()
        assert ran.wait(2)
        timer.cancel()

        assert timer.is_cancelled
        assert not timer.is_running
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_stops_when_task_returns_false(self):
        calls = []

        def task():
            calls.append(1)
            return False

        timer = RepeatingTimer(0.01, task)
        timer.start()
        timer._thread.join(2)

        assert calls == [1]
        assert timer.is_cancelled

    def test_stops_when_task_raises(self):
        calls = []

        def task():
            calls.append(1)
            raise RuntimeError("boom")

        timer = RepeatingTimer(0.01, task)
        timer.start()
        timer._thread.join(2)

        assert calls == [1]
        assert not timer.is_running


class TestTimeoutManager:

    def test_not_started_never_expires(self):
        manager = TimeoutManager(max_seconds=0)

        assert not manager.is_expired()
        assert manager.elapsed() == 0

    def test_expired_after_budget(self):
        manager = TimeoutManager(max_seconds=0)
        manager.start()

        assert manager.is_expired()
        assert manager.get_status()['is_expired']

    def test_remaining(self):
        manager = TimeoutManager(max_seconds=60)
        manager.start()

        assert 0 < manager.remaining() <= 60
        assert not manager.should_wrap_up()
        assert manager.warning_at == pytest.approx(48)
