"""NarrationWorkflow: post -> script -> video job -> terminal status -> artifact.

Each stage runs strictly after the previous one. Errors propagate to the
caller tagged with the stage that raised them; nothing is recovered here.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional

from pydantic import BaseModel

from postcast.core.config import WorkflowConfig
from postcast.core.exceptions import Cancelled, JobFailed, MalformedResponse, PostcastError
from postcast.core.interfaces.http_client import HttpClientPort
from postcast.core.interfaces.observers import JobStateObserver
from postcast.core.interfaces.retry import RetryPort
from postcast.core.managers.artifact_retriever import ArtifactRetriever
from postcast.core.managers.content_fetcher import ContentFetcher
from postcast.core.managers.job_status_poller import JobStatusPoller
from postcast.core.managers.job_submitter import JobSubmitter
from postcast.core.managers.observers import JobUpdatingObserver, TransitionHistoryObserver
from postcast.core.models.artifact import Artifact
from postcast.core.models.job import Job, JobStatus, PollResult, StatusTransition
from postcast.core.models.post import Post
from postcast.core.settings import logger


class WorkflowResult(BaseModel):
    post: Post
    script: str
    job: Job
    final: PollResult
    artifact: Optional[Artifact] = None
    transitions: List[StatusTransition] = []

    @property
    def artifact_url(self) -> Optional[str]:
        return self.final.download


@asynccontextmanager
async def stage(name: str, job_id: Optional[str] = None):
    """Tag any PostcastError raised inside the block with the stage name."""
    try:
        yield
    except PostcastError as exc:
        if exc.stage is None:
            exc.stage = name
        if exc.job_id is None:
            exc.job_id = job_id
        raise


class NarrationWorkflow:
    def __init__(
        self,
        http_client: HttpClientPort,
        config: WorkflowConfig,
        retry_port: Optional[RetryPort] = None,
        observers: Optional[list[JobStateObserver]] = None,
        artifact_retriever: Optional[ArtifactRetriever] = None,
    ) -> None:
        self.config = config
        self.fetcher = ContentFetcher(http_client, config.content)
        self.submitter = JobSubmitter(http_client, config.video)
        self.retriever = artifact_retriever or ArtifactRetriever(http_client, config.retrieval)
        self._retry = retry_port
        self._observers = observers or []

    async def _notify_job_submitted(self, job: Job) -> None:
        for observer in self._observers:
            try:
                await observer.on_job_submitted(job)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_job_submitted failed observer={type(observer).__name__} "
                    f"job_id={job.id} error={exc}"
                )

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> WorkflowResult:
        run = self.config.run

        async with stage("fetch"):
            post = await self.fetcher.fetch(run.category, run.horizon, run.index)
        script = post.script
        logger.info(f"[workflow] script: {script}")

        self._raise_if_cancelled(cancel_event, "submit")
        async with stage("submit"):
            job = await self.submitter.submit(
                script, actor=run.actor, background=run.background, test=run.test
            )
        await self._notify_job_submitted(job)

        history = TransitionHistoryObserver()
        poller = JobStatusPoller(
            self.submitter.query_status,
            self.config.polling,
            retry_port=self._retry,
            observers=[JobUpdatingObserver(job), history, *self._observers],
        )
        async with stage("poll", job.id):
            final = await poller.poll(job.id, cancel_event=cancel_event)
            if final.status == JobStatus.FAILED:
                raise JobFailed(
                    f"something went wrong: video job {job.id} ended with status {final.raw_status or final.status}",
                    job_id=job.id,
                )
            if not final.download:
                raise MalformedResponse(
                    f"Video job {job.id} completed without a download URL", job_id=job.id
                )
        logger.info(f"[workflow] download link: {final.download}")

        result = WorkflowResult(
            post=post, script=script, job=job, final=final, transitions=history.transitions
        )
        if not run.download:
            return result

        self._raise_if_cancelled(cancel_event, "retrieve", job.id)
        async with stage("retrieve", job.id):
            result.artifact = await self._retrieve(job.id, final.download, cancel_event)
        return result

    async def _retrieve(
        self, job_id: str, url: str, cancel_event: Optional[asyncio.Event]
    ) -> Artifact:
        """Download the artifact, abandoning the transfer if cancellation is requested."""
        if cancel_event is None:
            return await self.retriever.retrieve(job_id, url)

        transfer = asyncio.create_task(self.retriever.retrieve(job_id, url))
        cancelled = asyncio.create_task(cancel_event.wait())
        try:
            await asyncio.wait({transfer, cancelled}, return_when=asyncio.FIRST_COMPLETED)
            if not transfer.done():
                logger.info(f"[workflow] cancellation requested during download job_id={job_id}")
                transfer.cancel()
                # The retriever removes its partial file while unwinding.
                await asyncio.wait({transfer})
                raise Cancelled(f"Download of job {job_id} cancelled", job_id=job_id)
            return transfer.result()
        finally:
            cancelled.cancel()
            transfer.cancel()

    @staticmethod
    def _raise_if_cancelled(
        cancel_event: Optional[asyncio.Event], next_stage: str, job_id: Optional[str] = None
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(
                f"Cancelled before {next_stage}", stage=next_stage, job_id=job_id
            )
