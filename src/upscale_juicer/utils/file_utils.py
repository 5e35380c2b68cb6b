"""
File utilities for Upscale Juicer.
Loads local images into SelectedFile payloads, manages preview files and
saves downloaded results.
"""

from __future__ import annotations

import contextlib
import mimetypes
import os
import re
import tempfile
import uuid

from pathlib import Path

import aiofiles

from upscale_juicer.core.constants import FALLBACK_MEDIA_TYPE
from upscale_juicer.models.workflow_models import SelectedFile
from upscale_juicer.utils.logger import logger

_SEPARATORS = re.compile(r"[/\\]")


def trailing_segment(path_or_url: str) -> str:
    """Return the last segment of a path, splitting on both / and \\.

    Examples:
        "outputs/upscaled_abc.jpg" -> "upscaled_abc.jpg"
        "C:\\data\\img.png" -> "img.png"
    """
    return _SEPARATORS.split(path_or_url)[-1]


def guess_media_type(name: str) -> str:
    """Guess a media type from a file name, like a browser file picker does."""
    media_type, _ = mimetypes.guess_type(name)
    return media_type or FALLBACK_MEDIA_TYPE


async def load_selected_file(path: Path | str, media_type: str | None = None) -> SelectedFile:
    """Read a local file into a SelectedFile.

    Args:
        path: File to read
        media_type: Declared media type (guessed from the extension if omitted)

    Raises:
        OSError: If the file cannot be read
    """
    source = Path(path)
    async with aiofiles.open(source, "rb") as f:
        content = await f.read()

    return SelectedFile(
        name=source.name,
        media_type=media_type or guess_media_type(source.name),
        content=content,
    )


async def save_bytes(destination_dir: Path, file_name: str, content: bytes) -> Path:
    """Write bytes into destination_dir/file_name atomically.

    Content goes to a temporary sibling first and is renamed into place, so a
    failed write never leaves a partial file under the final name.

    Args:
        destination_dir: Directory to save into (created if missing)
        file_name: Target name; only the trailing segment is used
        content: Bytes to write

    Returns:
        Path of the saved file

    Raises:
        ValueError: If file_name has no usable trailing segment
        OSError: On filesystem errors
    """
    clean_name = trailing_segment(file_name)
    if clean_name in ("", ".", ".."):
        raise ValueError(f"Invalid file name: '{file_name}'")

    destination_dir.mkdir(parents=True, exist_ok=True)
    target = destination_dir / clean_name
    partial = destination_dir / f".{clean_name}.{uuid.uuid4().hex[:8]}.part"

    try:
        async with aiofiles.open(partial, "wb") as f:
            await f.write(content)
        os.replace(partial, target)
    except OSError:
        with contextlib.suppress(FileNotFoundError):
            partial.unlink()
        raise

    logger.debug(f"Saved {clean_name} ({len(content):,} bytes)", path=str(target))
    return target


class PreviewHandle:
    """Local on-disk copy of a selected file for presentation to render.

    Each selection creates one handle; the owner must call release() when the
    selection is superseded or cleared so temp files do not accumulate.
    """

    def __init__(self, file: SelectedFile):
        suffix = Path(file.name).suffix
        fd, name = tempfile.mkstemp(prefix="upscale-preview-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(file.content)
        self.path: Path = Path(name)
        self.media_type = file.media_type
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete the preview file. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove preview file {self.path}: {e}")
