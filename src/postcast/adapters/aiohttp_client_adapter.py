# postcast/adapters/aiohttp_client_adapter.py
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from postcast.core.exceptions import MalformedResponse, NetworkError, RemoteUnavailable
from postcast.core.interfaces.http_client import HttpClientPort
from postcast.core.settings import logger


class AioHttpStreamedResponse:
    """StreamedResponse backed by an open aiohttp response."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response
        self.status = response.status

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.content.iter_chunked(chunk_size):
                yield chunk
        except aiohttp.ClientError as client_error:
            logger.error(
                "Connection error while streaming. URL: %s, Error: %s",
                self._response.url,
                str(client_error),
            )
            raise NetworkError(
                f"Connection lost while downloading {self._response.url}",
                diagnostic=str(client_error),
            ) from client_error


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None
        # Default per-field timeouts so callers don't need to construct
        # ClientTimeout objects themselves.
        self._default_total: float = 30.0
        self._default_sock_read: float = 30.0
        self._default_sock_connect: float = 10.0
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        # Keep adapter-level sock_read/sock_connect values but apply provided total
        if timeout is None:
            return self._default_client_timeout
        return aiohttp.ClientTimeout(
            total=timeout,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        session = self._require_session()
        try:
            async with session.get(
                url, params=params, headers=headers, timeout=self._client_timeout(timeout)
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    logger.error(
                        "HTTP error when requesting remote service. URL: %s, Status: %s",
                        url,
                        response.status,
                    )
                    raise RemoteUnavailable(response.status, url, body=body[:500])

                try:
                    return await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    # Response isn't JSON; log a snippet and raise domain error
                    response_text = await response.text()
                    logger.error(
                        "Invalid JSON response from remote service. URL: %s, Content: %s",
                        url,
                        response_text[:500],
                    )
                    raise MalformedResponse(
                        f"Response from {url} was not valid JSON",
                        diagnostic=response_text[:100],
                    )

        except asyncio.TimeoutError as timeout_error:
            logger.error("Timeout when requesting remote service. URL: %s", url)
            raise NetworkError(f"Request to {url} timed out") from timeout_error

        except aiohttp.ClientError as client_error:
            logger.error(
                "Connection error when requesting remote service. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise NetworkError(
                f"Connection error when requesting {url}", diagnostic=str(client_error)
            ) from client_error

    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        session = self._require_session()
        try:
            async with session.post(
                url, json=json, headers=headers, timeout=self._client_timeout(timeout)
            ) as response:
                # Attempt to parse JSON, but return status and headers as well
                try:
                    body = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    body = await response.text()

                return {
                    "status": response.status,
                    "headers": dict(response.headers),
                    "body": body,
                }

        except asyncio.TimeoutError as timeout_error:
            logger.error("Timeout when POSTing to remote service. URL: %s", url)
            raise NetworkError(f"POST to {url} timed out") from timeout_error
        except aiohttp.ClientError as client_err:
            logger.error("Connection error when POSTing to remote service. URL: %s, Error: %s", url, str(client_err))
            raise NetworkError(
                f"Connection error when POSTing to {url}", diagnostic=str(client_err)
            ) from client_err

    @asynccontextmanager
    async def stream(self, url: str):
        session = self._require_session()
        # Total transfer time is bounded by the caller; only connect is limited here.
        stream_timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=self._default_sock_connect,
        )
        try:
            response = await session.get(url, timeout=stream_timeout)
        except aiohttp.ClientError as client_error:
            logger.error(
                "Connection error when opening stream. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise NetworkError(
                f"Connection error when requesting {url}", diagnostic=str(client_error)
            ) from client_error

        async with response:
            if response.status < 200 or response.status >= 300:
                logger.error("Stream rejected by remote service. URL: %s, Status: %s", url, response.status)
                raise RemoteUnavailable(response.status, url)
            yield AioHttpStreamedResponse(response)

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
