from typing import Any, Awaitable, Callable, Protocol


class RetryPort(Protocol):
    """Bounded retry around one remote call (e.g. a single job status query).

    The poller only decides *what* is retryable (network failures, HTTP
    429/502/503/504); how often and how long to back off is up to the
    implementation.
    """

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:  # pragma: no cover - protocol
        """Await `func(*args, **kwargs)`, retrying on the configured exception types.

        Policy overrides accepted as keyword arguments and not forwarded to
        `func`: attempts, wait_initial, wait_max, exception_types.

        Raises:
            The last exception once attempts are exhausted, or any
            non-retryable exception immediately.
        """
        ...
