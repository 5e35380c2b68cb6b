"""
HTTP client factory utilities.
Centralizes httpx.AsyncClient creation with consistent configuration.
"""

from __future__ import annotations

from typing import Any

import httpx

from upscale_juicer.core.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_POOL_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_WRITE_TIMEOUT,
    UPSCALE_TIMEOUT_SECONDS,
)
from upscale_juicer.utils.http_logger import create_logging_client


def build_timeout(read_timeout: float | None = None) -> httpx.Timeout:
    """Build an httpx timeout with the shared connect/write/pool limits.

    Args:
        read_timeout: Read timeout in seconds (default: DEFAULT_READ_TIMEOUT)
    """
    return httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )


def upscale_timeout(seconds: float = UPSCALE_TIMEOUT_SECONDS) -> httpx.Timeout:
    """Timeout for POST /upscale. The read limit covers slow CPU inference."""
    return build_timeout(read_timeout=seconds)


def create_http_client(
    base_url: str,
    enable_logging: bool = False,
    read_timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create HTTP client bound to the backend origin.

    Args:
        base_url: Backend origin (e.g. http://127.0.0.1:8000)
        enable_logging: Enable HTTP request/response logging
        read_timeout: Default read timeout in seconds
        transport: Optional transport override (tests use httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient
    """
    kwargs: dict[str, Any] = {"base_url": base_url, "timeout": build_timeout(read_timeout)}
    if transport is not None:
        kwargs["transport"] = transport

    if enable_logging:
        return create_logging_client(enabled=True, **kwargs)

    return httpx.AsyncClient(**kwargs)
