# Logging adapter for application-wide logging
from postcast.adapters.logging_adapter import LoggingAdapter

from pathlib import Path
from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings
from rich import print

from postcast.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class PostcastSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"  # ignore unrelated environment variables
    }
    POSTCAST_LOG_LEVEL: str = "INFO"
    POSTCAST_CONTENT_API_ROOT: str = "https://www.reddit.com"
    POSTCAST_CONTENT_USER_AGENT: str = "postcast/0.1"
    POSTCAST_VIDEO_API_ROOT: str = "https://api.synthesia.io/v2/videos"
    POSTCAST_VIDEO_API_KEY: SecretStr = SecretStr("")
    POSTCAST_VIDEO_API_AUTH_SCHEME: Optional[str] = None
    POSTCAST_REQUEST_TIMEOUT: float = 30.0  # seconds, per API request
    POSTCAST_POLL_INTERVAL: float = 20.0  # seconds
    POSTCAST_POLL_MAX_WAIT: Optional[float] = 1800.0  # seconds
    POSTCAST_POLL_QUERY_ATTEMPTS: int = 4
    POSTCAST_TRANSFER_TIMEOUT: float = 300.0  # seconds
    POSTCAST_OUTPUT_DIR: Path = Path("videos")

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("Postcast settings:")
        print(self)

    @field_validator("POSTCAST_CONTENT_API_ROOT", "POSTCAST_VIDEO_API_ROOT", mode="before")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """API roots are joined with '/<path>' so they must not end with a slash."""
        return value.rstrip("/") if isinstance(value, str) else value


class _LoggerProxy(LoggingPort):
    """Module-level logger whose backing adapter can be swapped at start-up."""

    def __init__(self, target: LoggingPort):
        self._target = target

    def set_target(self, target: LoggingPort) -> None:
        self._target = target

    def info(self, msg: str, *args):
        self._target.info(msg, *args)

    def warning(self, msg: str, *args):
        self._target.warning(msg, *args)

    def error(self, msg: str, *args):
        self._target.error(msg, *args)

    def debug(self, msg: str, *args):
        self._target.debug(msg, *args)


app_settings = PostcastSettings()

logger = _LoggerProxy(LoggingAdapter("postcast", app_settings.POSTCAST_LOG_LEVEL))


def set_logger(adapter: LoggingPort) -> None:
    """Replace the adapter behind `logger` (called once by the composition root)."""
    logger.set_target(adapter)
