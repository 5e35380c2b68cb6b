"""Workflow, health and notification state models.

The upscale workflow is a tagged union: exactly one of the ``*State`` models
below is active at a time, discriminated by its ``status`` field. Each variant
only carries the fields that are meaningful in that state, so a result outside
``complete`` or a missing file while ``uploading`` cannot be represented.

Usage:
    state = orchestrator.state
    if state.status == "complete":
        show(state.result.original, state.result.upscaled)
    elif state.status == "error":
        show_error(state.error_message)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

WorkflowStatus = Literal["idle", "uploading", "processing", "complete", "error"]


class SelectedFile(BaseModel):
    """Binary image payload plus the metadata the user's picker reported."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    media_type: str
    content: bytes = Field(..., repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


class UpscaleResult(BaseModel):
    """Resolved download URLs for the uploaded source and the upscaled output."""

    model_config = ConfigDict(frozen=True)

    original: str
    upscaled: str
    scale: float | None = None


class IdleState(BaseModel):
    """No run in progress. May hold a freshly selected file."""

    model_config = ConfigDict(frozen=True)

    status: Literal["idle"] = "idle"
    file: SelectedFile | None = None


class UploadingState(BaseModel):
    """File is being sent to POST /upload."""

    model_config = ConfigDict(frozen=True)

    status: Literal["uploading"] = "uploading"
    file: SelectedFile
    progress_message: str


class ProcessingState(BaseModel):
    """Upload succeeded; POST /upscale is in flight."""

    model_config = ConfigDict(frozen=True)

    status: Literal["processing"] = "processing"
    file: SelectedFile
    progress_message: str
    stored_name: str
    stored_path: str


class CompleteState(BaseModel):
    """Run finished with a result."""

    model_config = ConfigDict(frozen=True)

    status: Literal["complete"] = "complete"
    file: SelectedFile
    result: UpscaleResult


class ErrorState(BaseModel):
    """Run failed. The file is kept so the user can retry."""

    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    file: SelectedFile | None = None
    error_message: str


WorkflowState = IdleState | UploadingState | ProcessingState | CompleteState | ErrorState


class HealthState(BaseModel):
    """Backend reachability as of the last completed health check."""

    model_config = ConfigDict(frozen=True)

    reachable: bool = True
    last_checked_at: datetime | None = None


class Severity(str, Enum):
    """Notification severity levels."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A transient user-facing message."""

    model_config = ConfigDict(frozen=True)

    id: int
    message: str
    severity: Severity
    created_at: datetime


__all__ = [
    "CompleteState",
    "ErrorState",
    "HealthState",
    "IdleState",
    "Notification",
    "ProcessingState",
    "SelectedFile",
    "Severity",
    "UploadingState",
    "UpscaleResult",
    "WorkflowState",
    "WorkflowStatus",
]
