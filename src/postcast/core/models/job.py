from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone
from enum import StrEnum

from postcast.core.exceptions import InvalidTransition


class JobStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"  # anything the video API reports that we do not know

    @classmethod
    def parse(cls, raw: Optional[str]) -> "JobStatus":
        """Map a remote status string onto the enum (case-insensitive)."""
        if raw is None:
            return cls.UNKNOWN
        key = str(raw).strip().upper().replace("-", "_").replace(" ", "_")
        try:
            status = cls(key)
        except ValueError:
            return cls.UNKNOWN
        return status

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETE, JobStatus.FAILED})


class PollResult(BaseModel):
    """Snapshot returned by one status query against the video API."""

    job_id: str
    status: JobStatus
    raw_status: Optional[str] = None  # value as sent by the remote, kept for diagnostics
    download: Optional[str] = None  # artifact URL, only meaningful when COMPLETE
    received: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_response(cls, job_id: str, body: dict) -> "PollResult":
        raw_status = body.get("status")
        status = JobStatus.parse(raw_status)
        download = body.get("download") or None
        return cls(
            job_id=job_id,
            status=status,
            raw_status=None if raw_status is None else str(raw_status),
            download=str(download) if download and status == JobStatus.COMPLETE else None,
        )

    def is_terminal(self) -> bool:
        return self.status.is_terminal


class StatusTransition(BaseModel):
    job_id: str
    old: Optional[JobStatus] = None
    new: JobStatus
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Job(BaseModel):
    """Remote video rendering job tracked for the duration of one run.

    Notes:
    - `id` is the opaque identifier returned by the video API on submission.
    - `artifact_url` is only set once the job is COMPLETE.
    - Status is monotonic with respect to terminality: once COMPLETE or FAILED,
      `apply_poll_result` refuses further snapshots.
    """

    id: str = Field(min_length=1)
    status: JobStatus = JobStatus.PENDING
    artifact_url: Optional[str] = None

    created: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Local submission timestamp (UTC)",
    )
    updated: Optional[datetime] = Field(default=None, description="Local last update timestamp (UTC)")

    def touch(self) -> None:
        self.updated = datetime.now(timezone.utc)

    def apply_poll_result(self, result: PollResult) -> bool:
        """Merge a status snapshot; returns True when the known status changed."""
        if self.is_in_terminal_state():
            raise InvalidTransition(
                f"Job {self.id} is already {self.status}; refusing {result.status}",
                job_id=self.id,
            )
        if result.status == JobStatus.UNKNOWN:
            # unknown snapshots never overwrite a known status
            self.touch()
            return False
        changed = result.status != self.status
        self.status = result.status
        if result.status == JobStatus.COMPLETE:
            self.artifact_url = result.download
        self.touch()
        return changed

    def is_in_terminal_state(self) -> bool:
        return self.status.is_terminal
