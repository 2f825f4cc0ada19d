"""Concrete observer implementations for job state transitions."""

import logging
from typing import List, Optional

from postcast.core.models.job import Job, JobStatus, PollResult, StatusTransition


logger = logging.getLogger(__name__)


class TransitionHistoryObserver:
    """Records every status transition of the jobs it observes, in order."""

    def __init__(self) -> None:
        self.transitions: List[StatusTransition] = []
        self.finished: Optional[PollResult] = None

    async def on_job_submitted(self, job: Job) -> None:
        logger.debug(f"[observer:history] submitted job_id={job.id} status={job.status}")

    async def on_status_changed(
        self,
        job_id: str,
        old_status: Optional[JobStatus],
        new_result: PollResult,
    ) -> None:
        self.transitions.append(
            StatusTransition(job_id=job_id, old=old_status, new=new_result.status)
        )
        logger.debug(
            f"[observer:history] recorded status change job_id={job_id} "
            f"old={old_status} new={new_result.status}"
        )

    async def on_job_finished(self, job_id: str, final_result: PollResult) -> None:
        self.finished = final_result


class JobUpdatingObserver:
    """Keeps the workflow's Job instance in sync with the poller's snapshots."""

    def __init__(self, job: Job) -> None:
        self._job = job

    async def on_job_submitted(self, job: Job) -> None:
        pass

    async def on_status_changed(
        self,
        job_id: str,
        old_status: Optional[JobStatus],
        new_result: PollResult,
    ) -> None:
        if job_id != self._job.id:
            return
        self._job.apply_poll_result(new_result)

    async def on_job_finished(self, job_id: str, final_result: PollResult) -> None:
        """Terminal status already applied in on_status_changed."""
        pass
