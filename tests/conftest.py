"""Shared test fixtures for Upscale Juicer test suite.

This module provides common fixtures used across all test modules, most
importantly an in-memory fake backend served through httpx.MockTransport so
gateway, monitor and orchestrator tests exercise the real HTTP client.
"""

from __future__ import annotations

import inspect

from collections.abc import Awaitable, Callable, Generator
from typing import Any

import httpx
import pytest

from upscale_juicer.app.notifications import NotificationChannel
from upscale_juicer.app.orchestrator import UpscaleOrchestrator
from upscale_juicer.core.constants import get_settings
from upscale_juicer.integrations.gateway import BackendGateway
from upscale_juicer.models.workflow_models import SelectedFile
from upscale_juicer.utils.client_factory import create_http_client

ORIGIN = "http://backend.test"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

Route = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]] | Exception

# ============================================================================
# Test Isolation: Cache Management
# ============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the cached Settings so environment patches take effect per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Fake Backend
# ============================================================================


def respond(status: int = 200, json: Any = None, content: bytes | None = None) -> Callable[[httpx.Request], httpx.Response]:
    """Route that builds a fresh response for every request."""

    def _route(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status, json=json)
        return httpx.Response(status, content=content or b"")

    return _route


class FakeBackend:
    """Callable MockTransport handler with per-route responses and a request log.

    Routes are keyed by (method, path). Any GET under /download/ uses the
    ("GET", "/download") route. A route may be a callable returning a response
    (sync or async) or an exception instance to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Route] = {
            ("GET", "/health"): respond(200, json={"status": "ok"}),
            ("POST", "/upload"): respond(
                200, json={"filename": "stored_photo.png", "path": "uploads/stored_photo.png"}
            ),
            ("POST", "/upscale"): respond(200, json={"output": "outputs/stored_photo_x4.png", "scale": 4}),
            ("GET", "/download"): respond(200, content=b"upscaled-bytes"),
        }

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        key = ("GET", "/download") if path.startswith("/download/") else (request.method, path)

        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if isinstance(route, Exception):
            raise route

        response = route(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def go_down(self) -> None:
        """Make every route fail with a connection error."""
        for key in self.routes:
            self.routes[key] = httpx.ConnectError("Connection refused")


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh fake backend with healthy default routes."""
    return FakeBackend()


@pytest.fixture
def gateway(backend: FakeBackend) -> BackendGateway:
    """Gateway wired to the fake backend through httpx.MockTransport."""
    client = create_http_client(ORIGIN, transport=httpx.MockTransport(backend))
    return BackendGateway(ORIGIN, http_client=client)


@pytest.fixture
def notifications() -> NotificationChannel:
    return NotificationChannel()


@pytest.fixture
def orchestrator(gateway: BackendGateway, notifications: NotificationChannel) -> Generator[UpscaleOrchestrator, None, None]:
    orchestrator = UpscaleOrchestrator(gateway, notifications)
    yield orchestrator
    orchestrator.close()


# ============================================================================
# Sample Files
# ============================================================================


@pytest.fixture
def png_file() -> SelectedFile:
    """Small valid PNG selection."""
    return SelectedFile(name="photo.png", media_type="image/png", content=PNG_BYTES)


@pytest.fixture
def text_file() -> SelectedFile:
    return SelectedFile(name="notes.txt", media_type="text/plain", content=b"hello")


@pytest.fixture
def huge_file() -> SelectedFile:
    """11 MiB image, over the upload limit."""
    return SelectedFile(name="huge.png", media_type="image/png", content=b"\x00" * (11 * 1024 * 1024))
