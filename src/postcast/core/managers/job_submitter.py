"""JobSubmitter: starts a rendering job on the video API and queries its status."""

from __future__ import annotations

from typing import Any, Dict

from postcast.core.config import VideoApiConfig
from postcast.core.exceptions import InvalidParameter, MalformedResponse, RemoteUnavailable
from postcast.core.interfaces.http_client import HttpClientPort
from postcast.core.models.job import Job, JobStatus, PollResult
from postcast.core.models.video_request import (
    DEFAULT_ACTOR,
    DEFAULT_BACKGROUND,
    STOCK_ACTORS,
    VideoCreateRequest,
    VideoInput,
)
from postcast.core.settings import logger


class JobSubmitter:
    """Request/response wrapper over the video job API.

    Neither operation retries; the poller decides how status queries recover.
    """

    def __init__(self, http_client: HttpClientPort, config: VideoApiConfig) -> None:
        self._http = http_client
        self.config = config

    def _headers(self) -> Dict[str, str]:
        return {**self.config.auth_header(), "Content-Type": "application/json"}

    def build_request(
        self,
        script: str,
        actor: str = DEFAULT_ACTOR,
        background: str = DEFAULT_BACKGROUND,
        test: bool = True,
    ) -> VideoCreateRequest:
        if not script or not script.strip():
            raise InvalidParameter("Cannot submit an empty script")
        if actor not in STOCK_ACTORS.values():
            logger.warning(f"[job:submit] actor={actor} is not a known stock avatar")
        return VideoCreateRequest(
            test=test,
            input=[VideoInput(script=script, actor=actor, background=background)],
        )

    async def submit(
        self,
        script: str,
        actor: str = DEFAULT_ACTOR,
        background: str = DEFAULT_BACKGROUND,
        test: bool = True,
    ) -> Job:
        request = self.build_request(script, actor=actor, background=background, test=test)
        url = self.config.api_root
        logger.info(f"[job:submit] POST {url} actor={actor} test={test} script_len={len(script)}")

        resp = await self._http.post(
            url,
            json=request.model_dump(mode="json"),
            headers=self._headers(),
            timeout=self.config.request_timeout,
        )
        status = resp.get("status") or 0
        body = resp.get("body")
        if status < 200 or status >= 300:
            raise RemoteUnavailable(
                status,
                url,
                body=str(body)[:500] if body is not None else None,
                message=f"Video job creation rejected with HTTP {status}",
            )
        if not isinstance(body, dict) or not body.get("id"):
            raise MalformedResponse(
                "Video job creation response carries no job id",
                diagnostic=str(body)[:200],
            )

        # Terminal states are only trusted from the poller, never from the create response.
        initial = JobStatus.parse(body.get("status"))
        if initial not in (JobStatus.PENDING, JobStatus.IN_PROGRESS):
            initial = JobStatus.PENDING
        job = Job(id=str(body["id"]), status=initial)
        logger.info(f"[job:submit] video ID: {job.id} status={job.status}")
        return job

    async def query_status(self, job_id: str) -> PollResult:
        url = f"{self.config.api_root.rstrip('/')}/{job_id}"
        body: Any = await self._http.get(
            url,
            headers=self.config.auth_header(),
            timeout=self.config.request_timeout,
        )
        if not isinstance(body, dict):
            raise MalformedResponse(
                f"Status response for job {job_id} is not a JSON object",
                job_id=job_id,
                diagnostic=str(body)[:200],
            )
        return PollResult.from_response(job_id, body)
