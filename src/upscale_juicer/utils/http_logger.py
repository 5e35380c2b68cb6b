"""
HTTP request/response logging for debugging backend issues.

Captures request metadata and JSON payloads using httpx event hooks.
JSON response bodies are read inside the response hook so they can be logged.
Multipart uploads and binary downloads are summarized by size only.
"""

from __future__ import annotations

import json

from typing import Any

import httpx

from upscale_juicer.core.constants import LOG_PREVIEW_LENGTH
from upscale_juicer.utils.logger import logger


def _is_json(headers: httpx.Headers | dict[str, str]) -> bool:
    content_type = next((v for k, v in headers.items() if k.lower() == "content-type"), "")
    return "json" in content_type.lower()


class HTTPLogger:
    """Logs HTTP requests and responses for debugging.

    Keeps no per-request state: the response hook reads method and URL from
    ``response.request``, so requests that never get a response leave nothing behind.
    """

    def __init__(self, enabled: bool = True):
        """Initialize HTTP logger.

        Args:
            enabled: Whether to enable HTTP logging (default: True)
        """
        self.enabled = enabled

    async def log_request(self, request: httpx.Request) -> None:
        """Log outgoing HTTP request.

        Args:
            request: The httpx request object
        """
        if not self.enabled:
            return

        try:
            try:
                payload = self._describe_body(request.headers, request.content)
            except httpx.RequestNotRead:
                # Multipart uploads are streamed
                payload = {"_note": "streamed request body"}

            logger.info(
                f"HTTP Request: {request.method} {request.url}",
                http_request=True,
                method=request.method,
                url=str(request.url),
                headers=self._sanitize_headers(dict(request.headers)),
                payload=payload,
            )
        except Exception as e:
            logger.error(f"Error logging HTTP request: {e}", exc_info=True)

    async def log_response(self, response: httpx.Response) -> None:
        """Log HTTP response.

        JSON bodies are read here; the content stays cached on the response for
        the caller. Transport errors while reading propagate to the caller like
        any other failed request. Binary bodies are not read.

        Args:
            response: The httpx response object
        """
        if not self.enabled:
            return

        if _is_json(response.headers):
            await response.aread()

        try:
            request = response.request
            try:
                body = self._describe_body(response.headers, response.content)
            except httpx.ResponseNotRead:
                body = {"_note": "streaming response - body not captured"}

            logger.info(
                f"HTTP Response: {response.status_code} {request.method} {request.url}",
                http_response=True,
                status_code=response.status_code,
                body=body,
            )
        except Exception as e:
            logger.error(f"Error logging HTTP response: {e}", exc_info=True)

    def _describe_body(self, headers: httpx.Headers | dict[str, str], content: bytes) -> Any:
        """Decode JSON bodies; summarize everything else by size."""
        if not content:
            return {}
        if not _is_json(headers):
            return {"_bytes": len(content)}
        try:
            return json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return {"_error": f"Invalid JSON: {e!s}", "_preview": content[:LOG_PREVIEW_LENGTH].decode("utf-8", "replace")}

    def _sanitize_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Remove sensitive data from headers.

        Args:
            headers: Original headers dictionary

        Returns:
            Sanitized headers with sensitive values redacted
        """
        sanitized = headers.copy()
        sensitive_keys = {"authorization", "api-key", "x-api-key", "cookie"}

        for key in list(sanitized):
            if key.lower() in sensitive_keys:
                value = sanitized[key]
                # Show last 4 chars only
                sanitized[key] = f"***{value[-4:]}" if len(value) > 4 else "***"

        return sanitized


def create_logging_client(
    enabled: bool = True,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx client with request/response logging.

    Args:
        enabled: Whether to enable HTTP logging
        **client_kwargs: Passed through to httpx.AsyncClient (base_url, timeout, transport)

    Returns:
        Configured httpx.AsyncClient with event hooks
    """
    http_logger = HTTPLogger(enabled=enabled)

    event_hooks: dict[str, list[Any]] = {
        "request": [http_logger.log_request],
        "response": [http_logger.log_response],
    }

    return httpx.AsyncClient(event_hooks=event_hooks, **client_kwargs)
