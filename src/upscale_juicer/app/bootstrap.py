"""Application initialization and teardown for Upscale Juicer.

This module handles all bootstrap operations required before a run: environment
loading, settings validation, logging configuration, and wiring the gateway,
notification channel, health monitor and orchestrator together.
"""

from __future__ import annotations

import sys

import httpx

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from upscale_juicer.app.notifications import NotificationChannel
from upscale_juicer.app.orchestrator import UpscaleOrchestrator
from upscale_juicer.app.state import AppState
from upscale_juicer.core.constants import ENV_FILE_NAME, Settings, get_settings
from upscale_juicer.integrations.gateway import BackendGateway
from upscale_juicer.integrations.health_monitor import HealthMonitor
from upscale_juicer.utils.logger import logger


def load_settings() -> Settings:
    """Load .env and validate settings, exiting with a readable message on failure.

    Raises:
        SystemExit: If configuration validation fails
    """
    # Searched upwards from the working directory
    load_dotenv(find_dotenv(ENV_FILE_NAME, usecwd=True))

    try:
        return get_settings()
    except ValidationError as e:
        # stdout is reserved for command output
        sys.stderr.write(f"Error: Configuration validation failed: {e}\n")
        sys.stderr.write("Please check your .env file, for example:\n")
        sys.stderr.write("UPSCALER_API_URL=http://127.0.0.1:8000\n")
        sys.exit(1)


def initialize_application(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AppState:
    """Initialize Upscale Juicer and return populated state.

    1. Load environment variables and validate configuration
    2. Apply the debug level to the console log handler
    3. Create the backend gateway (owns its HTTP client unless one is passed)
    4. Create the notification channel, health monitor and orchestrator

    The health monitor is created stopped; the caller starts it inside its
    event loop.

    Args:
        settings: Pre-validated settings (loaded from the environment if omitted)
        http_client: Optional pre-built client, mainly for tests

    Returns:
        AppState: Fully wired application state
    """
    if settings is None:
        settings = load_settings()

    logger.configure(settings.debug)
    logger.info(f"Settings loaded, backend origin: {settings.upscaler_api_url}")

    gateway = BackendGateway(
        settings.upscaler_api_url,
        http_client=http_client,
        upscale_timeout_seconds=settings.upscale_timeout_seconds,
        enable_logging=settings.http_request_logging,
    )
    if settings.http_request_logging and http_client is None:
        logger.info("HTTP request/response logging enabled")

    notifications = NotificationChannel(
        duration=settings.notification_duration_seconds,
        max_entries=settings.max_notifications,
    )
    monitor = HealthMonitor(
        gateway,
        interval=settings.health_poll_interval_seconds,
        notifications=notifications,
    )
    orchestrator = UpscaleOrchestrator(gateway, notifications)

    return AppState(
        settings=settings,
        gateway=gateway,
        notifications=notifications,
        monitor=monitor,
        orchestrator=orchestrator,
    )


async def shutdown_application(app_state: AppState) -> None:
    """Stop background work and release every resource owned by the app."""
    await app_state.monitor.stop()
    app_state.orchestrator.close()
    app_state.notifications.clear()
    await app_state.gateway.aclose()
    logger.info("Application shut down")
