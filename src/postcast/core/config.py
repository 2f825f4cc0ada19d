"""Configuration models for core domain components.

Pydantic-based configuration classes passed explicitly into the workflow
instead of process-wide constants, so several runs (or tests) can use
different settings side by side.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr

from postcast.core.models.post import TimeHorizon
from postcast.core.models.video_request import DEFAULT_ACTOR, DEFAULT_BACKGROUND


_FROZEN = {
    "frozen": True,  # Immutable after creation
    "extra": "forbid",  # Reject unknown fields
}


class PollingConfig(BaseModel):
    """Configuration for JobStatusPoller behavior.

    Attributes:
        interval: Seconds between status queries (float for test flexibility)
        max_wait: Maximum seconds to wait for a terminal status (None = no limit)
        query_attempts: Attempts per status query for transient errors
        retry_wait_initial: Base wait for exponential backoff between attempts
        retry_wait_max: Upper bound of a single backoff wait
        max_unknown_statuses: Consecutive unknown statuses tolerated before escalating
    """

    interval: float = Field(
        default=20.0,
        gt=0,
        description="Interval in seconds between video job status queries"
    )

    max_wait: Optional[float] = Field(
        default=1800.0,
        gt=0,
        description="Maximum time in seconds to wait for a terminal status (None for no limit)"
    )

    query_attempts: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Maximum attempts for one status query on transient errors"
    )

    retry_wait_initial: float = Field(
        default=1.0,
        gt=0,
        description="Base wait time in seconds for exponential backoff between attempts"
    )

    retry_wait_max: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait time in seconds between attempts"
    )

    max_unknown_statuses: int = Field(
        default=3,
        ge=1,
        description="Consecutive unknown status responses tolerated before failing"
    )

    model_config = _FROZEN


class RetrievalConfig(BaseModel):
    output_root: Path = Path("videos")
    transfer_timeout: float = Field(default=300.0, gt=0)
    chunk_size: int = Field(default=64 * 1024, gt=0)

    model_config = _FROZEN


class ContentConfig(BaseModel):
    api_root: str = "https://www.reddit.com"
    user_agent: str = "postcast/0.1"
    request_timeout: float = Field(default=30.0, gt=0)

    model_config = _FROZEN


class VideoApiConfig(BaseModel):
    api_root: str = "https://api.synthesia.io/v2/videos"
    api_key: SecretStr = SecretStr("")
    # None sends the raw key, e.g. "Bearer" sends "Bearer <key>"
    auth_scheme: Optional[str] = None
    request_timeout: float = Field(default=30.0, gt=0)

    model_config = _FROZEN

    def auth_header(self) -> dict[str, str]:
        key = self.api_key.get_secret_value()
        value = f"{self.auth_scheme} {key}" if self.auth_scheme else key
        return {"Authorization": value}


class RunParameters(BaseModel):
    """Per-run choices (category, horizon, ordinal, actor)."""

    category: str = Field(default="TwoSentenceComedy", min_length=1)
    horizon: TimeHorizon = TimeHorizon.day
    index: int = 0
    actor: str = DEFAULT_ACTOR
    background: str = DEFAULT_BACKGROUND
    test: bool = True
    download: bool = True

    model_config = _FROZEN


class WorkflowConfig(BaseModel):
    content: ContentConfig = Field(default_factory=ContentConfig)
    video: VideoApiConfig = Field(default_factory=VideoApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    run: RunParameters = Field(default_factory=RunParameters)

    model_config = _FROZEN

    @classmethod
    def from_app_settings(cls, settings, run: Optional[RunParameters] = None) -> "WorkflowConfig":
        """Factory method to construct config from a PostcastSettings instance.

        Args:
            settings: PostcastSettings instance from core.settings
            run: Per-run parameters (defaults used when omitted)

        Returns:
            WorkflowConfig with values from app settings
        """
        return cls(
            content=ContentConfig(
                api_root=settings.POSTCAST_CONTENT_API_ROOT,
                user_agent=settings.POSTCAST_CONTENT_USER_AGENT,
                request_timeout=settings.POSTCAST_REQUEST_TIMEOUT,
            ),
            video=VideoApiConfig(
                api_root=settings.POSTCAST_VIDEO_API_ROOT,
                api_key=settings.POSTCAST_VIDEO_API_KEY,
                auth_scheme=settings.POSTCAST_VIDEO_API_AUTH_SCHEME,
                request_timeout=settings.POSTCAST_REQUEST_TIMEOUT,
            ),
            polling=PollingConfig(
                interval=settings.POSTCAST_POLL_INTERVAL,
                max_wait=settings.POSTCAST_POLL_MAX_WAIT,
                query_attempts=settings.POSTCAST_POLL_QUERY_ATTEMPTS,
            ),
            retrieval=RetrievalConfig(
                output_root=settings.POSTCAST_OUTPUT_DIR,
                transfer_timeout=settings.POSTCAST_TRANSFER_TIMEOUT,
            ),
            run=run or RunParameters(),
        )
