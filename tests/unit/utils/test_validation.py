"""Tests for file intake validation."""

from __future__ import annotations

import pytest

from upscale_juicer.core.constants import MAX_UPLOAD_SIZE
from upscale_juicer.models.error_models import ErrorCode, ValidationRejected
from upscale_juicer.models.workflow_models import SelectedFile
from upscale_juicer.utils.validation import is_image_media_type, validate_image_file


class TestIsImageMediaType:
    """Tests for is_image_media_type."""

    @pytest.mark.parametrize("media_type", ["image/png", "image/jpeg", "image/webp", "IMAGE/PNG"])
    def test_images_accepted(self, media_type: str) -> None:
        assert is_image_media_type(media_type) is True

    @pytest.mark.parametrize("media_type", ["text/plain", "application/pdf", "", "video/mp4"])
    def test_non_images_rejected(self, media_type: str) -> None:
        assert is_image_media_type(media_type) is False


class TestValidateImageFile:
    """Tests for validate_image_file."""

    def test_valid_file_returned(self, png_file: SelectedFile) -> None:
        assert validate_image_file(png_file) is png_file

    def test_exactly_at_limit_accepted(self) -> None:
        file = SelectedFile(name="edge.png", media_type="image/png", content=b"\x00" * MAX_UPLOAD_SIZE)
        assert validate_image_file(file) is file

    def test_wrong_type(self, text_file: SelectedFile) -> None:
        with pytest.raises(ValidationRejected) as exc_info:
            validate_image_file(text_file)

        assert exc_info.value.code == ErrorCode.FILE_INVALID_TYPE
        assert exc_info.value.message == "Invalid file type. Please upload an image."
        assert exc_info.value.details == {"media_type": "text/plain"}

    def test_too_large(self, huge_file: SelectedFile) -> None:
        with pytest.raises(ValidationRejected) as exc_info:
            validate_image_file(huge_file)

        assert exc_info.value.code == ErrorCode.FILE_TOO_LARGE
        assert exc_info.value.message == "File too large. Max 10MB."
        assert exc_info.value.details == {"size": huge_file.size, "max_size": MAX_UPLOAD_SIZE}

    def test_custom_limit(self, png_file: SelectedFile) -> None:
        with pytest.raises(ValidationRejected):
            validate_image_file(png_file, max_size=1)
