"""
Wire models for the upscaling backend.
Normalizes the JSON payloads returned by /upload and /upscale.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response model for POST /upload.

    Wire format: ``{"filename": "abc.png", "path": "uploads/abc.png"}``.
    ``stored_name`` may be missing on older backends; the orchestrator falls
    back to the local file name in that case.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    stored_name: str | None = Field(default=None, alias="filename")
    stored_path: str = Field(..., alias="path", min_length=1)


class UpscaleResponse(BaseModel):
    """Response model for POST /upscale.

    Wire format: ``{"output": "outputs/abc_x4.png", "scale": 4}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    output_path: str = Field(..., alias="output", min_length=1)
    scale: float | None = None


class UpscaleRequest(BaseModel):
    """Request body for POST /upscale."""

    filename: str = Field(..., min_length=1)


__all__ = [
    "UploadResponse",
    "UpscaleRequest",
    "UpscaleResponse",
]
