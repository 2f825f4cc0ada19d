"""JobStatusPoller: waits for a video job to reach a terminal status.

Responsibilities:
1. Query the job status immediately, then every `interval` seconds.
2. Retry a single failing query on transient errors (bounded, with backoff).
3. Report status transitions (old -> new) to observers, never repeats.
4. Stop on COMPLETE/FAILED, on `max_wait`, on an unknown-status streak or
   when the cancellation event is set.

The wait between queries is an asyncio suspension (woken early by the
cancellation event), so the event loop stays free while a job renders.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from postcast.core.config import PollingConfig
from postcast.core.exceptions import (
    Cancelled,
    MalformedResponse,
    NetworkError,
    PollTimeout,
    RemoteUnavailable,
    StatusQueryError,
    TransientRemoteError,
    UnexpectedStatus,
)
from postcast.core.interfaces.observers import JobStateObserver
from postcast.core.interfaces.retry import RetryPort
from postcast.core.models.job import JobStatus, PollResult
from postcast.core.settings import logger

QueryStatus = Callable[[str], Awaitable[PollResult]]

TRANSIENT_HTTP_STATUSES = frozenset({429, 502, 503, 504})


class JobStatusPoller:
    """Drives the PENDING/IN_PROGRESS -> COMPLETE/FAILED state machine of one job.

    Attributes:
        config: Immutable polling configuration (interval, max_wait, retry bounds)
    """

    def __init__(
        self,
        query_status: QueryStatus,
        config: PollingConfig,
        retry_port: Optional[RetryPort] = None,
        observers: Optional[list[JobStateObserver]] = None,
    ) -> None:
        self._query_status = query_status
        self.config = config
        self._retry = retry_port
        self._observers = observers or []

    async def _notify_status_changed(
        self, job_id: str, old_status: Optional[JobStatus], new_result: PollResult
    ) -> None:
        for observer in self._observers:
            try:
                await observer.on_status_changed(job_id, old_status, new_result)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_status_changed failed observer={type(observer).__name__} "
                    f"job_id={job_id} error={exc}"
                )

    async def _notify_job_finished(self, job_id: str, final_result: PollResult) -> None:
        for observer in self._observers:
            try:
                await observer.on_job_finished(job_id, final_result)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_job_finished failed observer={type(observer).__name__} "
                    f"job_id={job_id} error={exc}"
                )

    async def poll(
        self, job_id: str, cancel_event: Optional[asyncio.Event] = None
    ) -> PollResult:
        """Block (cooperatively) until the job is terminal; return the terminal snapshot."""
        if not job_id or not job_id.strip():
            raise ValueError("job_id must be a non-empty string")

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + self.config.max_wait if self.config.max_wait is not None else None
        previous: Optional[JobStatus] = None
        unknown_streak = 0

        logger.debug(
            f"[job:poll] start job_id={job_id} interval={self.config.interval}s max_wait={self.config.max_wait}"
        )
        while True:
            self._raise_if_cancelled(job_id, cancel_event)
            if deadline is not None and loop.time() >= deadline:
                raise self._timeout(job_id, loop.time() - started, previous)

            result = await self._query_until_deadline(job_id, deadline, started, previous)
            # A cancellation raised while the query was in flight wins over its result.
            self._raise_if_cancelled(job_id, cancel_event)

            if result.status == JobStatus.UNKNOWN:
                unknown_streak += 1
                logger.warning(
                    f"[job:poll] unknown status job_id={job_id} raw={result.raw_status!r} "
                    f"streak={unknown_streak}/{self.config.max_unknown_statuses}"
                )
                if unknown_streak >= self.config.max_unknown_statuses:
                    raise UnexpectedStatus(job_id, result.raw_status, unknown_streak)
            else:
                unknown_streak = 0
                if result.status != previous:
                    logger.info(f"[job:poll] job_id={job_id} status {previous or '-'} -> {result.status}")
                    await self._notify_status_changed(job_id, previous, result)
                    previous = result.status
                if result.is_terminal():
                    logger.debug(f"[job:poll] terminal state reached job_id={job_id} status={result.status}")
                    await self._notify_job_finished(job_id, result)
                    return result

            logger.debug(f"[job:poll] waiting... job_id={job_id}")
            await self._wait(job_id, cancel_event, deadline)

    async def _query_until_deadline(
        self,
        job_id: str,
        deadline: Optional[float],
        started: float,
        previous: Optional[JobStatus],
    ) -> PollResult:
        """One status query (with retries), cut short if the poll deadline passes."""
        attempts = 0

        async def do_query_with_error_classification() -> PollResult:
            nonlocal attempts
            attempts += 1
            try:
                return await self._query_status(job_id)
            except TransientRemoteError:
                raise
            except RemoteUnavailable as exc:
                if exc.status in TRANSIENT_HTTP_STATUSES:
                    logger.debug(
                        f"[job:poll] transient error, will retry: status={exc.status} job_id={job_id}"
                    )
                    raise TransientRemoteError.wrap(exc) from exc
                raise

        try:
            if deadline is None:
                return await self._execute(do_query_with_error_classification)
            async with asyncio.timeout_at(deadline):
                return await self._execute(do_query_with_error_classification)
        except TimeoutError:
            loop = asyncio.get_running_loop()
            raise self._timeout(job_id, loop.time() - started, previous) from None
        except (NetworkError, RemoteUnavailable, MalformedResponse) as exc:
            logger.error(
                f"[job:poll] status query failed job_id={job_id} attempts={attempts} error={exc}"
            )
            raise StatusQueryError(job_id, attempts, diagnostic=str(exc)) from exc

    async def _execute(self, query: Callable[[], Awaitable[PollResult]]) -> PollResult:
        if not self._retry:
            # single attempt without retry
            return await query()
        return await self._retry.execute(
            query,
            attempts=self.config.query_attempts,
            wait_initial=self.config.retry_wait_initial,
            wait_max=self.config.retry_wait_max,
            exception_types=(NetworkError, TransientRemoteError),
        )

    async def _wait(
        self, job_id: str, cancel_event: Optional[asyncio.Event], deadline: Optional[float]
    ) -> None:
        delay = self.config.interval
        if deadline is not None:
            delay = max(0.0, min(delay, deadline - asyncio.get_running_loop().time()))
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        self._raise_if_cancelled(job_id, cancel_event)

    def _timeout(
        self, job_id: str, elapsed: float, previous: Optional[JobStatus]
    ) -> PollTimeout:
        logger.warning(
            f"[job:poll] timeout reached job_id={job_id} elapsed={elapsed:.1f}s > {self.config.max_wait}s"
        )
        return PollTimeout(
            job_id,
            elapsed_seconds=elapsed,
            timeout_seconds=self.config.max_wait or 0.0,
            last_status=str(previous) if previous else None,
        )

    @staticmethod
    def _raise_if_cancelled(job_id: str, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"[job:poll] cancellation requested job_id={job_id}")
            raise Cancelled(f"Polling of job {job_id} cancelled", job_id=job_id)
