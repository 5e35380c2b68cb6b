"""Tests for the upscale workflow orchestrator.

Covers file intake, the upload -> upscale run, error handling, the stale
completion guard and result downloads.
"""

from __future__ import annotations

import asyncio
import json

from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from conftest import ORIGIN, FakeBackend, respond

from upscale_juicer.app.notifications import NotificationChannel
from upscale_juicer.app.orchestrator import UpscaleOrchestrator
from upscale_juicer.models.error_models import DownloadFailed
from upscale_juicer.models.workflow_models import (
    CompleteState,
    ErrorState,
    IdleState,
    SelectedFile,
    Severity,
    WorkflowState,
)


def _messages(channel: NotificationChannel) -> list[tuple[str, Severity]]:
    return [(n.message, n.severity) for n in channel.list()]


def _block_route(backend: FakeBackend, key: tuple[str, str]) -> asyncio.Event:
    """Hold a route open until the returned event is set."""
    release = asyncio.Event()
    route = backend.routes[key]

    async def _blocked(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return route(request)  # type: ignore[operator,return-value]

    backend.routes[key] = _blocked
    return release


class TestSelectFile:
    """Tests for file intake and validation."""

    def test_accepts_image(
        self, orchestrator: UpscaleOrchestrator, notifications: NotificationChannel, png_file: SelectedFile
    ) -> None:
        """Test valid image is selected and announced."""
        assert orchestrator.select_file(png_file) is True

        assert orchestrator.status == "idle"
        assert orchestrator.selected_file == png_file
        assert orchestrator.generation == 1
        assert _messages(notifications) == [("Image loaded successfully", Severity.INFO)]

    def test_rejects_non_image(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        text_file: SelectedFile,
    ) -> None:
        """Test text/plain is rejected with one error notification."""
        before = orchestrator.state

        assert orchestrator.select_file(text_file) is False

        assert orchestrator.state is before
        assert orchestrator.generation == 0
        assert _messages(notifications) == [("Invalid file type. Please upload an image.", Severity.ERROR)]

    def test_rejects_oversized_image(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        huge_file: SelectedFile,
    ) -> None:
        """Test an 11 MiB image is rejected with one warning notification."""
        before = orchestrator.state

        assert orchestrator.select_file(huge_file) is False

        assert orchestrator.state is before
        assert _messages(notifications) == [("File too large. Max 10MB.", Severity.WARNING)]

    def test_rejection_keeps_previous_selection(
        self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile, text_file: SelectedFile
    ) -> None:
        """Test a rejected file does not replace the current one."""
        orchestrator.select_file(png_file)
        orchestrator.select_file(text_file)

        assert orchestrator.selected_file == png_file

    def test_type_checked_before_size(
        self, orchestrator: UpscaleOrchestrator, notifications: NotificationChannel
    ) -> None:
        """Test an oversized non-image reports the type error."""
        big_text = SelectedFile(name="big.txt", media_type="text/plain", content=b"x" * (11 * 1024 * 1024))

        orchestrator.select_file(big_text)

        assert _messages(notifications)[0][1] == Severity.ERROR

    def test_creates_preview(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        """Test selection writes a preview file."""
        orchestrator.select_file(png_file)

        preview = orchestrator.preview
        assert preview is not None
        assert preview.path.read_bytes() == png_file.content
        assert preview.path.suffix == ".png"

    def test_reselect_releases_old_preview(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        """Test a new selection releases the previous preview."""
        orchestrator.select_file(png_file)
        first = orchestrator.preview
        assert first is not None

        orchestrator.select_file(png_file)

        assert first.released is True
        assert not first.path.exists()
        assert orchestrator.preview is not first

    def test_preview_failure_is_not_fatal(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        """Test selection succeeds without a preview if the temp file fails."""
        with patch("upscale_juicer.app.orchestrator.PreviewHandle", side_effect=OSError("no space")):
            assert orchestrator.select_file(png_file) is True

        assert orchestrator.preview is None
        assert orchestrator.selected_file == png_file


class TestStart:
    """Tests for the upload -> upscale run."""

    @pytest.mark.asyncio
    async def test_happy_path(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        backend: FakeBackend,
        png_file: SelectedFile,
    ) -> None:
        """Test idle -> uploading -> processing -> complete with resolved URLs."""
        orchestrator.select_file(png_file)
        seen: list[WorkflowState] = []
        orchestrator.add_listener(seen.append)

        final = await orchestrator.start()

        assert [s.status for s in seen] == ["uploading", "processing", "complete"]
        assert seen[0].progress_message == "Uploading image to backend..."  # type: ignore[union-attr]
        assert seen[1].progress_message == (  # type: ignore[union-attr]
            "Upscaling with RealESRGAN x4... (This may take a moment)"
        )
        assert isinstance(final, CompleteState)
        assert final.result.original == f"{ORIGIN}/download/stored_photo.png"
        assert final.result.upscaled == f"{ORIGIN}/download/stored_photo_x4.png"
        assert final.result.scale == 4
        assert orchestrator.result == final.result
        assert orchestrator.progress_message == ""
        assert orchestrator.is_processing is False
        assert ("Upscaling complete!", Severity.SUCCESS) in _messages(notifications)

        upscale_request = backend.calls("POST", "/upscale")[0]
        assert json.loads(upscale_request.content) == {"filename": "stored_photo.png"}

    @pytest.mark.asyncio
    async def test_no_file_is_noop(self, orchestrator: UpscaleOrchestrator, backend: FakeBackend) -> None:
        """Test start() without a selection does nothing."""
        state = await orchestrator.start()

        assert isinstance(state, IdleState)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_fallback_to_local_name(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test the local name is used when the backend omits filename."""
        backend.routes[("POST", "/upload")] = respond(200, json={"path": "uploads/abc.png"})
        orchestrator.select_file(png_file)

        with patch("upscale_juicer.app.orchestrator.logger") as mock_logger:
            state = await orchestrator.start()

        assert state.status == "complete"
        upscale_request = backend.calls("POST", "/upscale")[0]
        assert json.loads(upscale_request.content) == {"filename": "photo.png"}
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_upload_unreachable(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        backend: FakeBackend,
        png_file: SelectedFile,
    ) -> None:
        """Test connection failure ends in error without calling /upscale."""
        backend.routes[("POST", "/upload")] = httpx.ConnectError("Connection refused")
        orchestrator.select_file(png_file)

        state = await orchestrator.start()

        expected = f"Cannot connect to backend server. Ensure it is running on {ORIGIN}"
        assert isinstance(state, ErrorState)
        assert state.error_message == expected
        assert state.file == png_file
        assert orchestrator.error_message == expected
        assert backend.calls("POST", "/upscale") == []
        assert _messages(notifications)[-1] == (expected, Severity.ERROR)

    @pytest.mark.asyncio
    async def test_upscale_server_error(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test backend detail becomes the error message."""
        backend.routes[("POST", "/upscale")] = respond(503, json={"detail": "Model not loaded"})
        orchestrator.select_file(png_file)

        state = await orchestrator.start()

        assert isinstance(state, ErrorState)
        assert state.error_message == "Model not loaded"

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        """Test unexpected failures end in error with the generic message."""
        orchestrator.select_file(png_file)

        with patch.object(orchestrator.gateway, "request_upscale", new=AsyncMock(side_effect=RuntimeError("bug"))):
            state = await orchestrator.start()

        assert isinstance(state, ErrorState)
        assert state.error_message == "Failed to process image"

    @pytest.mark.asyncio
    async def test_retry_after_error(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test start() from error runs again with the kept file."""
        healthy = backend.routes[("POST", "/upload")]
        backend.routes[("POST", "/upload")] = respond(500)
        orchestrator.select_file(png_file)
        assert (await orchestrator.start()).status == "error"

        backend.routes[("POST", "/upload")] = healthy
        state = await orchestrator.start()

        assert state.status == "complete"
        assert len(backend.calls("POST", "/upload")) == 2

    @pytest.mark.asyncio
    async def test_duplicate_start_is_noop(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test a second start() while a run is in flight does nothing."""
        release = _block_route(backend, ("POST", "/upload"))
        orchestrator.select_file(png_file)

        first = asyncio.create_task(orchestrator.start())
        await asyncio.sleep(0)
        assert orchestrator.status == "uploading"
        assert orchestrator.is_processing is True

        second = await orchestrator.start()
        assert second.status == "uploading"

        release.set()
        final = await first

        assert final.status == "complete"
        assert len(backend.calls("POST", "/upload")) == 1
        assert len(backend.calls("POST", "/upscale")) == 1

    @pytest.mark.asyncio
    async def test_reset_discards_late_upload(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        backend: FakeBackend,
        png_file: SelectedFile,
    ) -> None:
        """Test an upload finishing after reset changes nothing."""
        release = _block_route(backend, ("POST", "/upload"))
        orchestrator.select_file(png_file)

        run = asyncio.create_task(orchestrator.start())
        await asyncio.sleep(0)
        orchestrator.reset()
        release.set()
        await run

        assert isinstance(orchestrator.state, IdleState)
        assert orchestrator.selected_file is None
        assert backend.calls("POST", "/upscale") == []
        assert all(severity != Severity.SUCCESS for _, severity in _messages(notifications))

    @pytest.mark.asyncio
    async def test_reselect_discards_late_upscale(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test an upscale finishing after a new selection is dropped."""
        release = _block_route(backend, ("POST", "/upscale"))
        other = SelectedFile(name="other.jpg", media_type="image/jpeg", content=b"jpeg")
        orchestrator.select_file(png_file)

        run = asyncio.create_task(orchestrator.start())
        while orchestrator.status != "processing":
            await asyncio.sleep(0)
        orchestrator.select_file(other)
        release.set()
        await run

        assert orchestrator.status == "idle"
        assert orchestrator.selected_file == other
        assert orchestrator.result is None

    @pytest.mark.asyncio
    async def test_late_failure_after_reset_is_dropped(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, png_file: SelectedFile
    ) -> None:
        """Test an upscale failing after reset leaves idle untouched."""
        release = asyncio.Event()

        async def failing(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(500)

        backend.routes[("POST", "/upscale")] = failing
        orchestrator.select_file(png_file)

        run = asyncio.create_task(orchestrator.start())
        while orchestrator.status != "processing":
            await asyncio.sleep(0)
        orchestrator.reset()
        release.set()
        await run

        assert orchestrator.status == "idle"
        assert orchestrator.error_message is None


class TestReset:
    """Tests for reset()."""

    @pytest.mark.asyncio
    async def test_reset_after_complete(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        """Test reset clears file, result, error and preview."""
        orchestrator.select_file(png_file)
        await orchestrator.start()
        preview = orchestrator.preview
        generation = orchestrator.generation

        orchestrator.reset()

        assert orchestrator.state == IdleState()
        assert orchestrator.selected_file is None
        assert orchestrator.result is None
        assert orchestrator.error_message is None
        assert orchestrator.progress_message == ""
        assert orchestrator.preview is None
        assert preview is not None and preview.released is True
        assert orchestrator.generation == generation + 1

    def test_reset_from_idle(self, orchestrator: UpscaleOrchestrator) -> None:
        """Test reset on a fresh orchestrator is harmless."""
        orchestrator.reset()
        assert orchestrator.status == "idle"


class TestDownloadResult:
    """Tests for downloading the upscaled image."""

    @pytest.mark.asyncio
    async def test_download_when_complete(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        backend: FakeBackend,
        png_file: SelectedFile,
        tmp_path: Path,
    ) -> None:
        """Test result is saved as upscaled-<millis>.png."""
        orchestrator.select_file(png_file)
        await orchestrator.start()

        saved = await orchestrator.download_result(tmp_path)

        assert saved is not None
        assert saved.parent == tmp_path
        assert saved.name.startswith("upscaled-") and saved.name.endswith(".png")
        assert saved.name[len("upscaled-") : -len(".png")].isdigit()
        assert saved.read_bytes() == b"upscaled-bytes"
        assert backend.requests[-1].url.raw_path == b"/download/stored_photo_x4.png"
        assert ("Download started", Severity.SUCCESS) in _messages(notifications)

    @pytest.mark.asyncio
    async def test_download_when_not_complete(
        self, orchestrator: UpscaleOrchestrator, backend: FakeBackend, tmp_path: Path
    ) -> None:
        """Test download is a no-op without a result."""
        assert await orchestrator.download_result(tmp_path) is None
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_download_failure(
        self,
        orchestrator: UpscaleOrchestrator,
        notifications: NotificationChannel,
        backend: FakeBackend,
        png_file: SelectedFile,
        tmp_path: Path,
    ) -> None:
        """Test a failed download posts an error and re-raises."""
        orchestrator.select_file(png_file)
        await orchestrator.start()
        backend.routes[("GET", "/download")] = respond(404, json={"detail": "File not found"})

        with pytest.raises(DownloadFailed):
            await orchestrator.download_result(tmp_path)

        message, severity = _messages(notifications)[-1]
        assert severity == Severity.ERROR
        assert message.startswith("Failed to download image upscaled-")
        assert orchestrator.status == "complete"


class TestListeners:
    """Tests for state listeners and close()."""

    def test_unsubscribe(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        seen: list[WorkflowState] = []
        unsubscribe = orchestrator.add_listener(seen.append)

        orchestrator.select_file(png_file)
        unsubscribe()
        orchestrator.reset()

        assert len(seen) == 1

    def test_close_releases_preview(self, orchestrator: UpscaleOrchestrator, png_file: SelectedFile) -> None:
        orchestrator.select_file(png_file)
        preview = orchestrator.preview

        orchestrator.close()

        assert preview is not None and preview.released is True
        assert orchestrator.preview is None
