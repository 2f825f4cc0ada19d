# main.py
"""Command-line entry point: top post of a subreddit -> narrated video.

Usage example:

    postcast TwoSentenceComedy --time day --index 3 --actor santa_costume1_cameraA

API keys and roots come from the environment (or a `.env` file), see
`postcast.core.settings`.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

from postcast.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from postcast.adapters.logging_adapter import LoggingAdapter
from postcast.adapters.retry_tenacity import TenacityRetryAdapter
from postcast.core.config import RunParameters, WorkflowConfig
from postcast.core.exceptions import Cancelled, PostcastError
from postcast.core.logging_config import configure_logging, new_run_id
from postcast.core.managers.workflow import NarrationWorkflow, WorkflowResult
from postcast.core.models.post import TimeHorizon
from postcast.core.models.video_request import DEFAULT_ACTOR, DEFAULT_BACKGROUND, STOCK_ACTORS
from postcast.core.settings import app_settings, logger, set_logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="postcast",
        description="Turn a top subreddit post into an AI-narrated video.",
    )
    parser.add_argument("category", nargs="?", default="TwoSentenceComedy", help="Subreddit, e.g. TwoSentenceComedy or /r/tifu")
    parser.add_argument("--time", dest="horizon", choices=[h.value for h in TimeHorizon], default=TimeHorizon.day.value)
    parser.add_argument("--index", type=int, default=0, help="Zero-based position in the top listing")
    parser.add_argument(
        "--actor",
        default=DEFAULT_ACTOR,
        help=f"Avatar id or stock name ({', '.join(sorted(STOCK_ACTORS))})",
    )
    parser.add_argument("--background", default=DEFAULT_BACKGROUND)
    parser.add_argument("--output-dir", type=Path, default=None, help="Overrides POSTCAST_OUTPUT_DIR")
    parser.add_argument("--live", action="store_true", help="Render a real (non-test) video")
    parser.add_argument("--no-download", action="store_true", help="Only print the download link")
    parser.add_argument("--log-level", default=None, help="Overrides POSTCAST_LOG_LEVEL")
    return parser


def run_parameters_from_args(args: argparse.Namespace) -> RunParameters:
    return RunParameters(
        category=args.category,
        horizon=TimeHorizon(args.horizon),
        index=args.index,
        actor=STOCK_ACTORS.get(args.actor.lower(), args.actor),
        background=args.background,
        test=not args.live,
        download=not args.no_download,
    )


def install_cancel_handlers(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on some platforms (e.g. Windows)
            pass


async def run_workflow(config: WorkflowConfig) -> WorkflowResult:
    cancel_event = asyncio.Event()
    install_cancel_handlers(cancel_event)
    retry_adapter = TenacityRetryAdapter(
        attempts=config.polling.query_attempts,
        wait_initial=config.polling.retry_wait_initial,
        wait_max=config.polling.retry_wait_max,
    )
    async with AioHttpClientAdapter() as http_client:
        workflow = NarrationWorkflow(http_client, config, retry_port=retry_adapter)
        return await workflow.run(cancel_event=cancel_event)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_level = args.log_level or app_settings.POSTCAST_LOG_LEVEL

    # Central logging configuration before the adapter is injected
    configure_logging(log_level)
    set_logger(LoggingAdapter("postcast", log_level))
    app_settings.print_settings(logger)
    run_id = new_run_id()

    settings = app_settings
    if args.output_dir is not None:
        settings = app_settings.model_copy(update={"POSTCAST_OUTPUT_DIR": args.output_dir})
    if not settings.POSTCAST_VIDEO_API_KEY.get_secret_value():
        logger.warning("POSTCAST_VIDEO_API_KEY is empty; the video API will reject the request")

    config = WorkflowConfig.from_app_settings(settings, run=run_parameters_from_args(args))
    logger.info(f"[workflow] run_id={run_id} category={config.run.category} index={config.run.index}")

    try:
        result = asyncio.run(run_workflow(config))
    except Cancelled as exc:
        print(f"cancelled: {exc}", file=sys.stderr)
        return EXIT_CANCELLED
    except PostcastError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILED

    print(f"video ID: {result.job.id}")
    if result.artifact:
        print(f"saved: {result.artifact.path}")
    else:
        print(result.artifact_url)
    return EXIT_OK


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
