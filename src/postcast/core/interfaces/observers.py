"""Observer protocols for video job state transitions.

Observers decouple side effects (operator logging, transition history) from
the poll loop, improving maintainability and testability.
"""

from typing import Protocol, Optional

from postcast.core.models.job import Job, JobStatus, PollResult


class JobStateObserver(Protocol):
    """Observer protocol for job state transitions.

    Implementations can react to job lifecycle events:
    - on_job_submitted: After the video API accepted the job
    - on_status_changed: After the known status of a job changed
    - on_job_finished: After the job reached a terminal state (COMPLETE/FAILED)

    Only transitions are reported; repeated identical statuses are not.
    """

    async def on_job_submitted(self, job: Job) -> None:
        """Called once after submission.

        Args:
            job: The newly submitted job
        """
        ...

    async def on_status_changed(
        self,
        job_id: str,
        old_status: Optional[JobStatus],
        new_result: PollResult,
    ) -> None:
        """Called after the job status changes.

        Args:
            job_id: The polled job
            old_status: Previous status (None for the first observation)
            new_result: Snapshot carrying the new status
        """
        ...

    async def on_job_finished(self, job_id: str, final_result: PollResult) -> None:
        """Called after job reaches terminal state.

        Args:
            job_id: The finished job
            final_result: Terminal snapshot (COMPLETE/FAILED)
        """
        ...
