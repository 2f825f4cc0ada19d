"""Unit tests for JobStatusPoller.

Covers the terminal-state state machine, transition reporting, bounded retry
of transient query errors, the max_wait deadline, unknown-status escalation
and cooperative cancellation.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from postcast.adapters.retry_tenacity import TenacityRetryAdapter
from postcast.core.config import PollingConfig
from postcast.core.exceptions import (
    Cancelled,
    NetworkError,
    PollTimeout,
    RemoteUnavailable,
    StatusQueryError,
    UnexpectedStatus,
)
from postcast.core.managers.job_status_poller import JobStatusPoller
from postcast.core.managers.observers import TransitionHistoryObserver
from postcast.core.models.job import JobStatus, PollResult


JOB_ID = "vid-123"


def snapshot(status: str, download: str | None = None) -> PollResult:
    body = {"status": status}
    if download:
        body["download"] = download
    return PollResult.from_response(JOB_ID, body)


# --- Test Fixtures ---

@pytest.fixture
def fast_config():
    return PollingConfig(
        interval=0.01,
        max_wait=1.0,
        query_attempts=3,
        retry_wait_initial=0.001,
        retry_wait_max=0.005,
        max_unknown_statuses=3,
    )


@pytest.fixture
def retry_adapter():
    return TenacityRetryAdapter(attempts=3, wait_initial=0.001, wait_max=0.005)


@pytest.fixture
def history():
    return TransitionHistoryObserver()


# --- Terminal states ---

class TestTerminalStates:

    @pytest.mark.asyncio
    async def test_returns_complete_snapshot(self, fast_config, history):
        query = AsyncMock(side_effect=[
            snapshot("PENDING"),
            snapshot("IN_PROGRESS"),
            snapshot("IN_PROGRESS"),
            snapshot("COMPLETE", "https://cdn.test/v.mp4"),
        ])
        poller = JobStatusPoller(query, fast_config, observers=[history])

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE
        assert result.download == "https://cdn.test/v.mp4"
        assert query.await_count == 4
        # one event per distinct change, repeated IN_PROGRESS reported once
        assert [(t.old, t.new) for t in history.transitions] == [
            (None, JobStatus.PENDING),
            (JobStatus.PENDING, JobStatus.IN_PROGRESS),
            (JobStatus.IN_PROGRESS, JobStatus.COMPLETE),
        ]
        assert history.finished == result

    @pytest.mark.asyncio
    async def test_immediate_complete_needs_single_query(self, fast_config):
        query = AsyncMock(return_value=snapshot("COMPLETE", "https://cdn.test/v.mp4"))
        poller = JobStatusPoller(query, fast_config)

        result = await poller.poll(JOB_ID)

        assert result.is_terminal()
        query.assert_awaited_once_with(JOB_ID)

    @pytest.mark.asyncio
    async def test_failed_stops_querying(self, fast_config, history):
        query = AsyncMock(side_effect=[
            snapshot("IN_PROGRESS"),
            snapshot("FAILED"),
            snapshot("COMPLETE", "https://cdn.test/late.mp4"),
        ])
        poller = JobStatusPoller(query, fast_config, observers=[history])

        result = await poller.poll(JOB_ID)
        await asyncio.sleep(0.03)

        assert result.status == JobStatus.FAILED
        assert query.await_count == 2
        assert history.transitions[-1].new == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_rejects_empty_job_id(self, fast_config):
        poller = JobStatusPoller(AsyncMock(), fast_config)

        with pytest.raises(ValueError):
            await poller.poll("  ")

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_polling(self, fast_config):
        class BrokenObserver:
            async def on_status_changed(self, job_id, old_status, new_result):
                raise RuntimeError("boom")

            async def on_job_finished(self, job_id, final_result):
                raise RuntimeError("boom")

        query = AsyncMock(return_value=snapshot("COMPLETE", "https://cdn.test/v.mp4"))
        poller = JobStatusPoller(query, fast_config, observers=[BrokenObserver()])

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE


# --- Deadline ---

class TestPollTimeout:

    @pytest.mark.asyncio
    async def test_timeout_when_never_terminal(self):
        config = PollingConfig(interval=0.01, max_wait=0.05)
        query = AsyncMock(return_value=snapshot("IN_PROGRESS"))
        poller = JobStatusPoller(query, config)

        with pytest.raises(PollTimeout) as excinfo:
            await poller.poll(JOB_ID)

        calls_at_timeout = query.await_count
        await asyncio.sleep(0.05)
        assert query.await_count == calls_at_timeout
        assert excinfo.value.last_status == "IN_PROGRESS"
        assert excinfo.value.timeout_seconds == 0.05

    @pytest.mark.asyncio
    async def test_deadline_bounds_a_hanging_query(self):
        config = PollingConfig(interval=0.01, max_wait=0.05)

        async def hanging_query(job_id):
            await asyncio.sleep(10)

        poller = JobStatusPoller(hanging_query, config)

        with pytest.raises(PollTimeout):
            await asyncio.wait_for(poller.poll(JOB_ID), timeout=1.0)

    @pytest.mark.asyncio
    async def test_no_limit_when_max_wait_is_none(self):
        config = PollingConfig(interval=0.001, max_wait=None)
        responses = [snapshot("IN_PROGRESS")] * 20 + [snapshot("COMPLETE", "https://cdn.test/v.mp4")]
        query = AsyncMock(side_effect=responses)
        poller = JobStatusPoller(query, config)

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE
        assert query.await_count == 21


# --- Retry of transient errors ---

class TestQueryRetry:

    @pytest.mark.asyncio
    async def test_transient_network_errors_are_retried(self, fast_config, retry_adapter):
        query = AsyncMock(side_effect=[
            NetworkError("connection reset"),
            NetworkError("connection reset"),
            snapshot("COMPLETE", "https://cdn.test/v.mp4"),
        ])
        poller = JobStatusPoller(query, fast_config, retry_port=retry_adapter)

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE
        assert query.await_count == 3

    @pytest.mark.asyncio
    async def test_retryable_http_status_is_retried(self, fast_config, retry_adapter):
        query = AsyncMock(side_effect=[
            RemoteUnavailable(503, "https://api.test/videos/vid-123"),
            snapshot("COMPLETE", "https://cdn.test/v.mp4"),
        ])
        poller = JobStatusPoller(query, fast_config, retry_port=retry_adapter)

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE
        assert query.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_status_query_error(self, fast_config, retry_adapter):
        query = AsyncMock(side_effect=NetworkError("down"))
        poller = JobStatusPoller(query, fast_config, retry_port=retry_adapter)

        with pytest.raises(StatusQueryError) as excinfo:
            await poller.poll(JOB_ID)

        assert excinfo.value.attempts == fast_config.query_attempts
        assert query.await_count == fast_config.query_attempts
        assert isinstance(excinfo.value.__cause__, NetworkError)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, fast_config, retry_adapter):
        query = AsyncMock(side_effect=RemoteUnavailable(404, "https://api.test/videos/vid-123"))
        poller = JobStatusPoller(query, fast_config, retry_port=retry_adapter)

        with pytest.raises(StatusQueryError) as excinfo:
            await poller.poll(JOB_ID)

        assert excinfo.value.attempts == 1
        assert query.await_count == 1

    @pytest.mark.asyncio
    async def test_without_retry_port_single_attempt(self, fast_config):
        query = AsyncMock(side_effect=NetworkError("down"))
        poller = JobStatusPoller(query, fast_config)

        with pytest.raises(StatusQueryError):
            await poller.poll(JOB_ID)

        assert query.await_count == 1


# --- Unknown statuses ---

class TestUnknownStatus:

    @pytest.mark.asyncio
    async def test_unknown_is_tolerated_below_limit(self, fast_config, history):
        query = AsyncMock(side_effect=[
            snapshot("IN_PROGRESS"),
            snapshot("RENDERING"),
            snapshot("RENDERING"),
            snapshot("COMPLETE", "https://cdn.test/v.mp4"),
        ])
        poller = JobStatusPoller(query, fast_config, observers=[history])

        result = await poller.poll(JOB_ID)

        assert result.status == JobStatus.COMPLETE
        # unknown snapshots produce no transition event
        assert [t.new for t in history.transitions] == [JobStatus.IN_PROGRESS, JobStatus.COMPLETE]

    @pytest.mark.asyncio
    async def test_unknown_streak_escalates(self, fast_config):
        query = AsyncMock(return_value=snapshot("QUEUED_FOR_REVIEW"))
        poller = JobStatusPoller(query, fast_config)

        with pytest.raises(UnexpectedStatus) as excinfo:
            await poller.poll(JOB_ID)

        assert excinfo.value.raw_status == "QUEUED_FOR_REVIEW"
        assert excinfo.value.occurrences == fast_config.max_unknown_statuses
        assert query.await_count == fast_config.max_unknown_statuses


# --- Cancellation ---

class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_during_wait(self, fast_config):
        cancel_event = asyncio.Event()

        async def query(job_id):
            # The job would complete as soon as anyone asks after cancellation
            if cancel_event.is_set():
                return snapshot("COMPLETE", "https://cdn.test/v.mp4")
            return snapshot("IN_PROGRESS")

        poller = JobStatusPoller(query, fast_config)
        asyncio.get_running_loop().call_later(0.03, cancel_event.set)

        with pytest.raises(Cancelled):
            await poller.poll(JOB_ID, cancel_event=cancel_event)

    @pytest.mark.asyncio
    async def test_cancel_during_query_wins_over_complete(self, fast_config):
        cancel_event = asyncio.Event()
        calls = []

        async def query(job_id):
            calls.append(job_id)
            if len(calls) == 2:
                cancel_event.set()
                return snapshot("COMPLETE", "https://cdn.test/v.mp4")
            return snapshot("IN_PROGRESS")

        poller = JobStatusPoller(query, fast_config)

        with pytest.raises(Cancelled):
            await poller.poll(JOB_ID, cancel_event=cancel_event)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_already_cancelled_issues_no_query(self, fast_config):
        cancel_event = asyncio.Event()
        cancel_event.set()
        query = AsyncMock()
        poller = JobStatusPoller(query, fast_config)

        with pytest.raises(Cancelled):
            await poller.poll(JOB_ID, cancel_event=cancel_event)
        query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wait_does_not_block_event_loop(self):
        config = PollingConfig(interval=0.05, max_wait=1.0)
        query = AsyncMock(side_effect=[snapshot("IN_PROGRESS"), snapshot("COMPLETE", "https://cdn.test/v.mp4")])
        poller = JobStatusPoller(query, config)
        ticks = []

        async def ticker():
            for _ in range(3):
                ticks.append(1)
                await asyncio.sleep(0.005)

        result, _ = await asyncio.gather(poller.poll(JOB_ID), ticker())

        assert result.status == JobStatus.COMPLETE
        assert len(ticks) == 3
