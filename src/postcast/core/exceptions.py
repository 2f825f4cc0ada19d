from typing import Optional


class PostcastError(Exception):
    """Base exception for workflow failures.

    Attributes:
        message: Human-readable error description
        stage: Workflow stage that failed (fetch, submit, poll, retrieve)
        job_id: Optional video job identifier
        diagnostic: Technical diagnostic information for debugging
    """
    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        job_id: Optional[str] = None,
        diagnostic: Optional[str] = None,
    ):
        self.message = message
        self.stage = stage
        self.job_id = job_id
        self.diagnostic = diagnostic
        super().__init__(message)

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


# Input errors (bad run parameters, rejected before any request is sent)

class InvalidParameter(PostcastError):
    """A run parameter (category, time horizon, script) cannot be used."""


# Transport level errors (raised by the HTTP adapter)

class NetworkError(PostcastError):
    """Transient connection or timeout failure; safe to retry."""


class RemoteUnavailable(PostcastError):
    """Remote service answered with a non-2xx status code.

    Attributes:
        status: HTTP status code from the remote
        url: Requested URL
        body: Response body snippet (if available)
    """
    def __init__(
        self,
        status: int,
        url: str,
        body: Optional[str] = None,
        message: Optional[str] = None,
        **kwargs,
    ):
        self.status = status
        self.url = url
        self.body = body
        super().__init__(message or f"{url} returned HTTP {status}", **kwargs)


class TransientRemoteError(RemoteUnavailable):
    """Wrapper for non-2xx responses that should be retried (429, 502, 503, 504)."""

    @classmethod
    def wrap(cls, exc: RemoteUnavailable) -> "TransientRemoteError":
        return cls(
            exc.status,
            exc.url,
            body=exc.body,
            message=exc.message,
            stage=exc.stage,
            job_id=exc.job_id,
        )


class MalformedResponse(PostcastError):
    """Remote answered 2xx but the body is not what the API promises."""


# Domain errors

class IndexOutOfRange(PostcastError):
    """Requested post ordinal does not exist in the listing."""
    def __init__(self, index: int, available: int, category: str, **kwargs):
        self.index = index
        self.available = available
        message = (
            f"Post #{index} requested from {category} but the listing holds "
            f"{available} post(s)"
        )
        super().__init__(message, **kwargs)


class InvalidTransition(PostcastError):
    """Status snapshot applied to a job that is already terminal."""


class StatusQueryError(PostcastError):
    """Status query failed permanently or exhausted its retries.

    Attributes:
        attempts: Number of attempts made for the failing query
    """
    def __init__(self, job_id: str, attempts: int, diagnostic: Optional[str] = None):
        self.attempts = attempts
        message = f"Status query for job {job_id} failed after {attempts} attempt(s)"
        super().__init__(message, job_id=job_id, diagnostic=diagnostic)


class PollTimeout(PostcastError):
    """Raised when a job does not reach a terminal state within max_wait.

    Attributes:
        elapsed_seconds: Time elapsed before timeout
        timeout_seconds: Configured timeout value
    """
    def __init__(
        self,
        job_id: str,
        elapsed_seconds: float,
        timeout_seconds: float,
        last_status: Optional[str] = None,
    ):
        self.elapsed_seconds = elapsed_seconds
        self.timeout_seconds = timeout_seconds
        self.last_status = last_status
        message = (
            f"Job {job_id} not finished after {elapsed_seconds:.1f}s "
            f"(limit: {timeout_seconds}s, last status: {last_status or 'none'})"
        )
        super().__init__(message, job_id=job_id)


class UnexpectedStatus(PostcastError):
    """Video API kept reporting a status outside the known set."""
    def __init__(self, job_id: str, raw_status: Optional[str], occurrences: int):
        self.raw_status = raw_status
        self.occurrences = occurrences
        message = (
            f"Job {job_id} reported unknown status {raw_status!r} "
            f"{occurrences} time(s) in a row"
        )
        super().__init__(message, job_id=job_id)


class JobFailed(PostcastError):
    """Video API reported the rendering job as FAILED."""


class TransferTimeout(PostcastError):
    """Artifact download exceeded its transfer timeout."""
    def __init__(self, url: str, timeout_seconds: float, **kwargs):
        self.url = url
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Download of {url} exceeded {timeout_seconds}s", **kwargs)


class FilesystemError(PostcastError):
    """Destination directory or file could not be created or written."""


class Cancelled(PostcastError):
    """Workflow stopped by an external cancellation signal."""
