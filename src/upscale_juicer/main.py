"""
Upscale Juicer - command-line client for a RealESRGAN upscaling backend

Main entry point - bootstraps the app, runs one upload/upscale workflow for a
local image and optionally downloads the result.

Exit codes:
    0  run completed (and the result was saved, unless --no-download)
    1  run ended in an error state or the download failed
    2  the image was rejected or could not be read
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from pathlib import Path

from upscale_juicer.app.bootstrap import initialize_application, shutdown_application
from upscale_juicer.app.notifications import NotificationListener
from upscale_juicer.app.state import AppState
from upscale_juicer.models.error_models import DownloadFailed
from upscale_juicer.models.workflow_models import Notification
from upscale_juicer.utils.file_utils import load_selected_file
from upscale_juicer.utils.logger import logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upscale-juicer",
        description="Upload an image to the upscaling backend and download the 4x result",
    )
    parser.add_argument("image", type=Path, help="Image file to upscale")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path.cwd(),
        help="Directory to save the upscaled image into (default: current directory)",
    )
    parser.add_argument(
        "--no-download",
        dest="download",
        action="store_false",
        help="Only print the result URLs, do not save the upscaled image",
    )
    return parser


def print_new_notifications() -> NotificationListener:
    """Build a notification listener that echoes each entry once to stderr."""
    last_seen = 0

    def _listener(notifications: list[Notification]) -> None:
        nonlocal last_seen
        for notification in notifications:
            if notification.id > last_seen:
                sys.stderr.write(f"[{notification.severity.value}] {notification.message}\n")
                last_seen = notification.id

    return _listener


async def run_workflow(app_state: AppState, image: Path, output_dir: Path, download: bool = True) -> int:
    """Select, upscale and optionally download one image.

    Returns:
        Process exit code
    """
    orchestrator = app_state.orchestrator

    try:
        file = await load_selected_file(image)
    except OSError as e:
        logger.error(f"Cannot read {image}: {e}")
        sys.stderr.write(f"Error: cannot read {image}: {e}\n")
        return EXIT_REJECTED

    if not orchestrator.select_file(file):
        return EXIT_REJECTED

    state = await orchestrator.start()
    if state.status != "complete" or orchestrator.result is None:
        return EXIT_FAILED

    result = orchestrator.result
    print(f"original: {result.original}")
    print(f"upscaled: {result.upscaled}")

    if not download:
        return EXIT_OK

    try:
        saved = await orchestrator.download_result(output_dir)
    except DownloadFailed:
        return EXIT_FAILED

    print(f"saved: {saved}")
    return EXIT_OK


async def main(argv: list[str] | None = None) -> int:
    """Main entry point - pure orchestration of the application lifecycle.

    Phases:
    1. Bootstrap: settings, logging, gateway, monitor, orchestrator
    2. Run: one workflow for the given image while the monitor polls
    3. Cleanup: stop the monitor and close the HTTP client
    """
    args = build_parser().parse_args(argv)

    app_state = initialize_application()
    app_state.notifications.add_listener(print_new_notifications())

    await app_state.monitor.start()
    try:
        return await run_workflow(app_state, args.image, args.output, download=args.download)
    finally:
        await shutdown_application(app_state)


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    run()
