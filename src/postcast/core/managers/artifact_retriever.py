"""ArtifactRetriever: streams a finished job's video to local storage.

The destination is `<output_root>/<ISO date>/<job_id>/<job_id><suffix>`, so
repeated runs never collide. Bytes go to a `.part` file that is renamed into
place only once the transfer completed; on any failure it is removed.
The directory is only created once the remote accepted the download.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from datetime import date
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Iterator, Optional
from urllib.parse import urlparse

from postcast.core.config import RetrievalConfig
from postcast.core.exceptions import FilesystemError, TransferTimeout
from postcast.core.interfaces.http_client import HttpClientPort
from postcast.core.models.artifact import Artifact
from postcast.core.settings import logger

DEFAULT_SUFFIX = ".mp4"
PARTIAL_SUFFIX = ".part"


def artifact_suffix(url: str) -> str:
    suffix = PurePosixPath(urlparse(url).path).suffix
    return suffix if suffix and len(suffix) <= 5 else DEFAULT_SUFFIX


@contextmanager
def partial_file(target: Path) -> Iterator[BinaryIO]:
    """Open `<target>.part` for writing; rename to `target` only on clean exit."""
    partial = target.with_name(target.name + PARTIAL_SUFFIX)
    try:
        handle = partial.open("wb")
    except OSError as exc:
        raise FilesystemError(f"Cannot create {partial}: {exc.strerror or exc}") from exc
    try:
        yield handle
    except BaseException:
        try:
            handle.close()
        finally:
            partial.unlink(missing_ok=True)
        raise
    try:
        handle.close()
        partial.replace(target)
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise FilesystemError(f"Cannot move download into {target}: {exc.strerror or exc}") from exc


class ArtifactRetriever:
    def __init__(
        self,
        http_client: HttpClientPort,
        config: RetrievalConfig,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._http = http_client
        self.config = config
        self._today = today

    def destination_dir(self, job_id: str, on: Optional[date] = None) -> Path:
        on = on or self._today()
        return Path(self.config.output_root) / on.isoformat() / job_id

    async def retrieve(self, job_id: str, artifact_url: str) -> Artifact:
        if not artifact_url:
            raise ValueError("artifact_url must be a non-empty string")

        retrieved_on = self._today()
        directory = self.destination_dir(job_id, retrieved_on)
        target = directory / f"{job_id}{artifact_suffix(artifact_url)}"
        logger.info(f"[artifact:retrieve] GET {artifact_url} -> {target}")

        try:
            async with asyncio.timeout(self.config.transfer_timeout):
                size = await self._transfer(artifact_url, target)
        except TimeoutError:
            logger.error(
                f"[artifact:retrieve] transfer exceeded {self.config.transfer_timeout}s job_id={job_id}"
            )
            raise TransferTimeout(
                artifact_url, self.config.transfer_timeout, job_id=job_id
            ) from None

        logger.info(f"[artifact:retrieve] wrote {size} bytes to {target}")
        return Artifact(
            job_id=job_id,
            path=target,
            retrieved_on=retrieved_on,
            size_bytes=size,
            source_url=artifact_url,
        )

    async def _transfer(self, url: str, target: Path) -> int:
        size = 0
        # The status check happens when the stream opens, before anything touches the disk.
        async with self._http.stream(url) as response:
            self._make_directory(target.parent)
            with partial_file(target) as handle:
                async for chunk in response.iter_chunks(self.config.chunk_size):
                    if not chunk:
                        continue
                    try:
                        handle.write(chunk)
                    except OSError as exc:
                        raise FilesystemError(
                            f"Cannot write {target}: {exc.strerror or exc}"
                        ) from exc
                    size += len(chunk)
        return size

    @staticmethod
    def _make_directory(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create directory {directory}: {exc.strerror or exc}"
            ) from exc
