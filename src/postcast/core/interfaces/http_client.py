# postcast/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, AsyncIterator, Dict, Protocol


class StreamedResponse(Protocol):
    """Body of a successful streaming GET."""

    status: int

    def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:  # pragma: no cover - protocol
        ...


class HttpClientPort(ABC):
    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        """Make a GET request and return the parsed JSON body.

        Non-2xx responses raise RemoteUnavailable, connection problems and
        timeouts raise NetworkError, non-JSON bodies raise MalformedResponse.
        """
        pass

    @abstractmethod
    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        """Make a POST request. Returns a dict with keys: 'status' (int),
        'headers' (dict) and 'body' (parsed JSON or raw text).

        The status code is not raised on, so the caller can inspect it.
        """
        pass

    @abstractmethod
    def stream(self, url: str) -> AsyncContextManager[StreamedResponse]:
        """Open a streaming GET.

        Raises RemoteUnavailable on a non-2xx status before any byte is yielded.
        No total timeout is applied; callers bound the transfer themselves.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass
