"""Photo storage for beans, equipment and sessions.

Photos live as files under ``[storage] data_dir/images``. Documents keep
only the generated filename in their ``image_path`` field.
"""

import logging
import uuid
from pathlib import Path

import aiofiles

from espressobox.config import settings
from espressobox.services.exceptions import (
    FileSizeExceededError,
    InvalidFileTypeError,
    InvalidMagicBytesError,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic")

# (signature, offset, extension); RIFF also needs "WEBP" at offset 8
IMAGE_MAGIC_SIGNATURES = [
    (b"\xff\xd8\xff", 0, ".jpg"),
    (b"\x89PNG\r\n\x1a\n", 0, ".png"),
    (b"GIF87a", 0, ".gif"),
    (b"GIF89a", 0, ".gif"),
    (b"RIFF", 0, ".webp"),
    (b"ftypheic", 4, ".heic"),
    (b"ftypheix", 4, ".heic"),
    (b"ftypmif1", 4, ".heic"),
]


def detect_image_type(content: bytes) -> str | None:
    """Extension matching the content's magic bytes, or None."""
    if len(content) < 12:
        return None
    for signature, offset, ext in IMAGE_MAGIC_SIGNATURES:
        if content[offset:offset + len(signature)] != signature:
            continue
        if ext == ".webp" and content[8:12] != b"WEBP":
            continue
        return ext
    return None


def validate_image(content: bytes, filename: str | None, max_size_bytes: int) -> str:
    """Check a photo and return the extension to store it under.

    The declared filename only has to carry an allowed extension; the
    stored extension is the one detected from the content.

    Raises:
        InvalidFileTypeError: The extension is not an allowed image type.
        FileSizeExceededError: The content exceeds ``max_size_bytes``.
        InvalidMagicBytesError: The content is not a recognised image.
    """
    if filename and Path(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise InvalidFileTypeError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_EXTENSIONS)}"
        )
    if len(content) > max_size_bytes:
        raise FileSizeExceededError(
            f"File size exceeds maximum allowed size of {max_size_bytes / (1024 * 1024):.1f} MB"
        )
    ext = detect_image_type(content)
    if ext is None:
        raise InvalidMagicBytesError("Invalid file content. File does not appear to be a valid image.")
    return ext


class ImageStorageService:
    def __init__(
        self,
        storage_path: Path | None = None,
        max_size_bytes: int | None = None,
    ) -> None:
        self.storage_path = storage_path or settings.image_storage_path
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.max_size_bytes = max_size_bytes or settings.max_upload_size_bytes

    async def save_image(self, content: bytes, filename: str | None = None) -> str:
        """Validate and write a photo; returns the stored filename."""
        ext = validate_image(content, filename, self.max_size_bytes)
        stored_name = f"{uuid.uuid4()}{ext}"
        async with aiofiles.open(self.storage_path / stored_name, "wb") as f:
            await f.write(content)
        logger.debug("Stored image %s (%d bytes)", stored_name, len(content))
        return stored_name

    async def save_image_file(self, source: Path) -> str:
        """Copy a photo from disk into storage."""
        async with aiofiles.open(source, "rb") as f:
            content = await f.read()
        return await self.save_image(content, source.name)

    async def delete_image(self, filename: str) -> bool:
        """Remove a stored photo. False when there was nothing to remove."""
        path = self.get_image_path(filename)
        if path is None:
            return False
        path.unlink()
        logger.debug("Deleted image %s", filename)
        return True

    def get_image_path(self, filename: str) -> Path | None:
        path = self.storage_path / filename
        return path if path.exists() else None
