"""Upscale workflow orchestrator.

Drives file intake -> upload -> upscale -> result/error. Presentation reads
the read-only projections below and calls the three actions (select_file,
start, reset); it never mutates workflow state directly.

Transitions (initial state idle):

    any         select_file(ok)      -> idle (new file)   info notification
    any         select_file(bad)     -> unchanged         error/warning notification
    idle/error/complete start()      -> uploading
    uploading   upload ok            -> processing
    uploading   upload failed        -> error             error notification
    processing  upscale ok           -> complete          success notification
    processing  upscale failed       -> error             error notification
    any         reset()              -> idle (no file)
"""

from __future__ import annotations

import time

from collections.abc import Callable
from pathlib import Path

from upscale_juicer.app.notifications import NotificationChannel
from upscale_juicer.app.state import StateListener, WorkflowStore
from upscale_juicer.core.constants import (
    MAX_UPLOAD_SIZE,
    MSG_COMPLETE,
    MSG_DOWNLOAD_STARTED,
    MSG_FILE_LOADED,
    MSG_PROCESS_FAILED,
    MSG_PROCESSING,
    MSG_UPLOADING,
    RESULT_DOWNLOAD_TEMPLATE,
)
from upscale_juicer.integrations.gateway import BackendGateway
from upscale_juicer.models.error_models import DownloadFailed, ErrorCode, UpscalerError, ValidationRejected
from upscale_juicer.models.workflow_models import (
    CompleteState,
    ErrorState,
    IdleState,
    ProcessingState,
    SelectedFile,
    Severity,
    UploadingState,
    UpscaleResult,
    WorkflowState,
    WorkflowStatus,
)
from upscale_juicer.utils.file_utils import PreviewHandle
from upscale_juicer.utils.logger import logger
from upscale_juicer.utils.validation import validate_image_file

_BUSY_STATUSES: frozenset[WorkflowStatus] = frozenset({"uploading", "processing"})


class UpscaleOrchestrator:
    """Workflow state machine for one upscale run at a time."""

    def __init__(
        self,
        gateway: BackendGateway,
        notifications: NotificationChannel,
        store: WorkflowStore | None = None,
        max_upload_size: int = MAX_UPLOAD_SIZE,
    ) -> None:
        self.gateway = gateway
        self.notifications = notifications
        self.max_upload_size = max_upload_size
        self._store = store or WorkflowStore()

    # ========== Read-only projections ==========

    @property
    def state(self) -> WorkflowState:
        return self._store.state

    @property
    def status(self) -> WorkflowStatus:
        return self._store.state.status

    @property
    def generation(self) -> int:
        return self._store.generation

    @property
    def selected_file(self) -> SelectedFile | None:
        return self._store.state.file

    @property
    def result(self) -> UpscaleResult | None:
        state = self._store.state
        return state.result if isinstance(state, CompleteState) else None

    @property
    def error_message(self) -> str | None:
        state = self._store.state
        return state.error_message if isinstance(state, ErrorState) else None

    @property
    def progress_message(self) -> str:
        state = self._store.state
        if isinstance(state, UploadingState | ProcessingState):
            return state.progress_message
        return ""

    @property
    def is_processing(self) -> bool:
        return self.status in _BUSY_STATUSES

    @property
    def preview(self) -> PreviewHandle | None:
        return self._store.preview

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback for every state change. Returns an unsubscribe function."""
        self._store.listeners.append(listener)
        return lambda: self._store.listeners.remove(listener)

    # ========== Actions ==========

    def select_file(self, file: SelectedFile) -> bool:
        """Validate and accept a file, resetting any previous result or error.

        Rejected files leave the current selection and state untouched and
        only produce a notification.

        Returns:
            True if the file was accepted
        """
        try:
            validate_image_file(file, self.max_upload_size)
        except ValidationRejected as e:
            severity = Severity.ERROR if e.code == ErrorCode.FILE_INVALID_TYPE else Severity.WARNING
            logger.warning(f"Rejected {file.name}: {e.message}", media_type=file.media_type, size=file.size)
            self.notifications.post(e.message, severity)
            return False

        self._store.begin_generation(IdleState(file=file))
        self._store.replace_preview(self._create_preview(file))
        logger.info(f"Selected {file.name}", media_type=file.media_type, size=file.size)
        self.notifications.post(MSG_FILE_LOADED, Severity.INFO)
        return True

    async def start(self) -> WorkflowState:
        """Run upload then upscale for the selected file.

        No-op when no file is selected or a run is already in progress.

        Returns:
            The state after the run (or the unchanged state for a no-op)
        """
        state = self._store.state
        if state.status in _BUSY_STATUSES:
            logger.debug(f"start() ignored: run already {state.status}")
            return state
        file = state.file
        if file is None:
            logger.debug("start() ignored: no file selected")
            return state

        generation = self._store.begin_generation(UploadingState(file=file, progress_message=MSG_UPLOADING))

        try:
            uploaded = await self.gateway.upload_file(file)

            stored_name = uploaded.stored_name
            if not stored_name:
                # The backend may have persisted the file under another name
                logger.warning(
                    f"Backend omitted the stored filename; using local name {file.name}",
                    stored_path=uploaded.stored_path,
                )
                stored_name = file.name

            processing = ProcessingState(
                file=file,
                progress_message=MSG_PROCESSING,
                stored_name=stored_name,
                stored_path=uploaded.stored_path,
            )
            if not self._store.apply(processing, generation):
                return self._store.state

            upscaled = await self.gateway.request_upscale(stored_name)

            result = UpscaleResult(
                original=self.gateway.resolve_download_url(uploaded.stored_path),
                upscaled=self.gateway.resolve_download_url(upscaled.output_path),
                scale=upscaled.scale,
            )
            if self._store.apply(CompleteState(file=file, result=result), generation):
                logger.info(f"Upscale complete for {file.name}", upscaled=result.upscaled)
                self.notifications.post(MSG_COMPLETE, Severity.SUCCESS)

        except UpscalerError as e:
            self._fail(file, e.message or MSG_PROCESS_FAILED, generation)
        except Exception as e:
            logger.error(f"Unexpected error during upscale: {e}", exc_info=True)
            self._fail(file, MSG_PROCESS_FAILED, generation)

        return self._store.state

    def reset(self) -> None:
        """Return to idle, dropping the file, result, error and preview."""
        self._store.begin_generation(IdleState())
        self._store.replace_preview(None)
        logger.debug("Workflow reset")

    async def download_result(self, destination_dir: Path) -> Path | None:
        """Save the upscaled image locally as ``upscaled-<millis>.png``.

        Returns:
            Saved path, or None when there is no result to download

        Raises:
            DownloadFailed: After posting an error notification
        """
        result = self.result
        if result is None:
            return None

        suggested_name = RESULT_DOWNLOAD_TEMPLATE.format(timestamp=int(time.time() * 1000))
        self.notifications.post(MSG_DOWNLOAD_STARTED, Severity.SUCCESS)
        try:
            return await self.gateway.download_as(result.upscaled, suggested_name, destination_dir)
        except DownloadFailed as e:
            self.notifications.post(e.message, Severity.ERROR)
            raise

    def close(self) -> None:
        """Release the preview resource."""
        self._store.replace_preview(None)

    # ========== Internals ==========

    def _fail(self, file: SelectedFile, message: str, generation: int) -> None:
        if self._store.apply(ErrorState(file=file, error_message=message), generation):
            logger.error(f"Upscale failed for {file.name}: {message}")
            self.notifications.post(message, Severity.ERROR)

    def _create_preview(self, file: SelectedFile) -> PreviewHandle | None:
        try:
            return PreviewHandle(file)
        except OSError as e:
            logger.warning(f"Preview unavailable for {file.name}: {e}")
            return None
