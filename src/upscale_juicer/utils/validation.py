"""Validation utilities for file intake.

Selected files are checked synchronously before they can enter the upscale
workflow. Media type is checked before size.
"""

from __future__ import annotations

from upscale_juicer.core.constants import (
    IMAGE_MEDIA_PREFIX,
    MAX_UPLOAD_SIZE,
    MSG_FILE_TOO_LARGE,
    MSG_INVALID_FILE_TYPE,
)
from upscale_juicer.models.error_models import ErrorCode, ValidationRejected
from upscale_juicer.models.workflow_models import SelectedFile


def is_image_media_type(media_type: str) -> bool:
    """Check a declared media type starts with the image designator."""
    return media_type.lower().startswith(IMAGE_MEDIA_PREFIX)


def validate_image_file(file: SelectedFile, max_size: int = MAX_UPLOAD_SIZE) -> SelectedFile:
    """Validate a selected file or raise ValidationRejected.

    Args:
        file: File reported by the picker
        max_size: Maximum accepted size in bytes

    Returns:
        The same file, for chaining

    Raises:
        ValidationRejected: With code FILE_INVALID_TYPE or FILE_TOO_LARGE
    """
    if not is_image_media_type(file.media_type):
        raise ValidationRejected(
            MSG_INVALID_FILE_TYPE,
            code=ErrorCode.FILE_INVALID_TYPE,
            media_type=file.media_type,
        )
    if file.size > max_size:
        raise ValidationRejected(
            MSG_FILE_TOO_LARGE,
            code=ErrorCode.FILE_TOO_LARGE,
            size=file.size,
            max_size=max_size,
        )
    return file
