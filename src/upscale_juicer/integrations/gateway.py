"""Backend gateway client for the upscaling service.

This is the only module that talks to the backend. Every failure leaves here
as an UpscalerError subclass whose message is ready to show to the user:

- backend answered non-2xx with a JSON body -> body ``detail`` (or ``message``)
- backend answered non-2xx without a usable body -> ``Error: <reason phrase>``
- no response at all -> fixed "Cannot connect to backend server..." text
- backend answered 2xx with missing fields -> Malformed
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote, unquote

import httpx

from pydantic import BaseModel, ValidationError

from upscale_juicer.core.constants import (
    ABSOLUTE_URL_SCHEMES,
    DEFAULT_DOWNLOAD_NAME,
    DOWNLOAD_ROUTE,
    HEALTH_ROUTE,
    LOG_PREVIEW_LENGTH,
    MSG_UNEXPECTED_ERROR,
    MSG_UNREACHABLE_TEMPLATE,
    UPLOAD_FIELD_NAME,
    UPLOAD_ROUTE,
    UPSCALE_ROUTE,
    UPSCALE_TIMEOUT_SECONDS,
)
from upscale_juicer.models.api_models import UploadResponse, UpscaleRequest, UpscaleResponse
from upscale_juicer.models.error_models import (
    DownloadFailed,
    ErrorCode,
    Malformed,
    ServerError,
    Unreachable,
    UpscalerError,
)
from upscale_juicer.models.workflow_models import SelectedFile
from upscale_juicer.utils.client_factory import create_http_client, upscale_timeout
from upscale_juicer.utils.file_utils import save_bytes, trailing_segment
from upscale_juicer.utils.logger import logger

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!'()*"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_detail(detail: Any) -> str:
    """Flatten a structured ``detail`` value into one line of text.

    FastAPI validation errors arrive as a list of ``{"loc": ..., "msg": ...}``.
    """
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list):
        parts = [str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail]
        return "; ".join(parts)
    return str(detail)


class BackendGateway:
    """Async client for the upscaling backend.

    Usage:
        async with BackendGateway("http://127.0.0.1:8000") as gateway:
            uploaded = await gateway.upload_file(file)
            upscaled = await gateway.request_upscale(uploaded.stored_name or file.name)
            url = gateway.resolve_download_url(upscaled.output_path)
    """

    def __init__(
        self,
        origin: str,
        http_client: httpx.AsyncClient | None = None,
        upscale_timeout_seconds: float = UPSCALE_TIMEOUT_SECONDS,
        enable_logging: bool = False,
    ):
        """Initialize gateway.

        Args:
            origin: Backend base URL (trailing slashes are stripped)
            http_client: Pre-built client; the gateway creates and owns one if omitted
            upscale_timeout_seconds: Read timeout for POST /upscale
            enable_logging: Enable HTTP request/response logging on the owned client
        """
        self.origin = origin.rstrip("/")
        self.upscale_timeout_seconds = upscale_timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(self.origin, enable_logging=enable_logging)

    async def __aenter__(self) -> BackendGateway:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def unreachable_message(self) -> str:
        return MSG_UNREACHABLE_TEMPLATE.format(origin=self.origin)

    # ========== Remote calls ==========

    async def check_health(self) -> dict[str, Any]:
        """GET /health. Any 2xx counts as reachable.

        Returns:
            Decoded JSON body, or ``{"status_code": ...}`` for non-JSON bodies

        Raises:
            Unreachable: No response received
            ServerError: Non-2xx status
        """
        response = await self._send("GET", HEALTH_ROUTE)
        try:
            body = response.json()
        except ValueError:
            return {"status_code": response.status_code}
        return body if isinstance(body, dict) else {"status_code": response.status_code, "body": body}

    async def upload_file(self, file: SelectedFile) -> UploadResponse:
        """POST /upload with the file as a multipart part.

        Raises:
            Unreachable, ServerError, Malformed
        """
        files = {UPLOAD_FIELD_NAME: (file.name, file.content, file.media_type)}
        response = await self._send("POST", UPLOAD_ROUTE, files=files)
        uploaded = self._parse(response, UploadResponse, UPLOAD_ROUTE)

        logger.info(
            f"Uploaded {file.name} ({file.size:,} bytes)",
            stored_name=uploaded.stored_name,
            stored_path=uploaded.stored_path,
        )
        return uploaded

    async def request_upscale(self, stored_name: str) -> UpscaleResponse:
        """POST /upscale for a previously uploaded file.

        Uses the extended upscale timeout; inference can take minutes.

        Raises:
            Unreachable, ServerError, Malformed
        """
        body = UpscaleRequest(filename=stored_name).model_dump()
        response = await self._send(
            "POST",
            UPSCALE_ROUTE,
            json=body,
            timeout=upscale_timeout(self.upscale_timeout_seconds),
        )
        upscaled = self._parse(response, UpscaleResponse, UPSCALE_ROUTE)

        logger.info(f"Upscaled {stored_name}", output_path=upscaled.output_path, scale=upscaled.scale)
        return upscaled

    # ========== Download helpers ==========

    def resolve_download_url(self, path_or_url: str | None) -> str:
        """Turn a stored/output path into a download URL.

        Fully-qualified URLs are returned unchanged. Otherwise the trailing
        segment (split on / or \\) is percent-encoded and appended to
        ``{origin}/download/``.
        """
        if not path_or_url:
            return ""
        if path_or_url.startswith(ABSOLUTE_URL_SCHEMES):
            return path_or_url

        file_name = trailing_segment(path_or_url)
        return f"{self.origin}{DOWNLOAD_ROUTE}/{quote(file_name, safe=_URI_COMPONENT_SAFE)}"

    async def download_as(self, url: str, suggested_name: str | None, destination_dir: Path) -> Path:
        """Fetch binary content and save it locally under the suggested name.

        URLs on the backend origin are routed through the download endpoint.

        Returns:
            Path of the saved file

        Raises:
            DownloadFailed: Fetch failed or the file could not be written
        """
        save_name = trailing_segment(suggested_name) if suggested_name else DEFAULT_DOWNLOAD_NAME
        fetch_url = self._normalize_origin_url(url)

        try:
            response = await self._send("GET", fetch_url)
            saved = await save_bytes(destination_dir, save_name, response.content)
        except (UpscalerError, OSError, ValueError) as e:
            logger.error(f"Download failed: {e}", url=fetch_url)
            raise DownloadFailed(save_name, cause=e) from e

        logger.info(f"Downloaded {save_name}", url=fetch_url, path=str(saved))
        return saved

    async def download_result(self, path_or_name: str, destination_dir: Path) -> Path:
        """Download a stored or output file under its own trailing name."""
        clean_name = trailing_segment(path_or_name)
        return await self.download_as(self.resolve_download_url(clean_name), clean_name, destination_dir)

    def _normalize_origin_url(self, url: str) -> str:
        if url.startswith(f"{self.origin}/") and not url.startswith(f"{self.origin}{DOWNLOAD_ROUTE}/"):
            # Already-encoded segment; decode so it is not encoded twice
            return self.resolve_download_url(unquote(trailing_segment(url)))
        return self.resolve_download_url(url)

    # ========== Transport and error translation ==========

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue a request and translate every failure mode.

        Raises:
            Unreachable: No response received (connect error, timeout, protocol error)
            ServerError: Response status outside 2xx
            UpscalerError: Request could not be built
        """
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.debug(f"No response from backend: {method} {url}: {e!r}")
            raise Unreachable(self.origin, self.unreachable_message, cause=e) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"API request error: {method} {url}: {e}")
            raise UpscalerError(ErrorCode.INTERNAL_UNEXPECTED, str(e) or MSG_UNEXPECTED_ERROR, cause=e) from e

        if not response.is_success:
            raise self._server_error(method, url, response)
        return response

    def _server_error(self, method: str, url: str, response: httpx.Response) -> ServerError:
        """Build a ServerError whose message follows detail > message > status text."""
        body: Any = None
        try:
            body = response.json()
        except ValueError:
            body = None

        detail: Any = None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message")

        if detail:
            message = _format_detail(detail)
        else:
            message = f"Error: {response.reason_phrase or response.status_code}"

        logger.error(
            f"API error response: {response.status_code} {method} {url}",
            status_code=response.status_code,
            body=body if body is not None else response.text[:LOG_PREVIEW_LENGTH],
        )
        return ServerError(response.status_code, message, detail=detail)

    def _parse(self, response: httpx.Response, model: type[ModelT], route: str) -> ModelT:
        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Non-JSON response from {route}", body=response.text[:LOG_PREVIEW_LENGTH])
            raise Malformed(f"Unexpected response from backend ({route}): not JSON", cause=e) from e

        try:
            return model.model_validate(body)
        except ValidationError as e:
            missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors()) or "body"
            logger.error(f"Malformed response from {route}", body=body)
            raise Malformed(f"Unexpected response from backend ({route}): invalid {missing}", body=body, cause=e) from e
