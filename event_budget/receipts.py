"""Receipt image storage.

Receipts are validated locally (size and content type) before any bytes
are written, then stored under a caller-chosen path and exposed through a
public URL.  Two path conventions are in use:

* ``{event_id}/{timestamp}.{ext}`` for a receipt attached while creating
  an entry
* ``receipts/{entry_id}/{timestamp}.{ext}`` for a receipt uploaded onto an
  existing entry from the table
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from . import config
from .exceptions import UploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptFile:
    """An image picked by the user, not yet uploaded."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_receipt(filename: str, content_type: Optional[str], size: int) -> None:
    """Reject a receipt before it is uploaded.

    Raises:
        UploadError: If the file is larger than ``MAX_RECEIPT_BYTES`` or is
            not an ``image/*`` content type
    """
    if size > config.MAX_RECEIPT_BYTES:
        limit_mb = config.MAX_RECEIPT_BYTES / (1024 * 1024)
        raise UploadError(f"File too large: please select a file smaller than {limit_mb:g}MB")
    if not (content_type or "").startswith("image/"):
        raise UploadError(f"Invalid file type: '{filename}' is not an image file")


def _extension(filename: str) -> str:
    # Mirrors "last dot segment"; a name without a dot is its own extension
    return filename.rsplit(".", 1)[-1]


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def entry_receipt_path(event_id: str, filename: str, timestamp: Optional[int] = None) -> str:
    ts = _timestamp_ms() if timestamp is None else timestamp
    return f"{event_id}/{ts}.{_extension(filename)}"


def existing_receipt_path(entry_id: str, filename: str, timestamp: Optional[int] = None) -> str:
    ts = _timestamp_ms() if timestamp is None else timestamp
    return f"receipts/{entry_id}/{ts}.{_extension(filename)}"


def truncate_filename(filename: str, max_length: int = 30) -> str:
    """Shorten a filename for display while keeping its extension.

    Example:
        >>> truncate_filename("a_really_long_receipt_name_from_the_store.jpg", 20)
        'a_really_long...jpg'
    """
    if len(filename) <= max_length:
        return filename
    if "." not in filename:
        return filename[: max_length - 3] + "..."
    stem, extension = filename.rsplit(".", 1)
    keep = max(0, max_length - len(extension) - 4)
    return f"{stem[:keep]}...{extension}"


class ReceiptStorage:
    """Stores receipt images on the local filesystem."""

    def __init__(self, root: Optional[Path] = None, base_url: Optional[str] = None):
        """Initialize receipt storage.

        Args:
            root: Directory receipts are written under. Defaults to
                  ``RECEIPTS_DIR`` from config.
            base_url: URL prefix for public links. When empty, ``file://``
                      URLs are returned.
        """
        self.root = Path(root or config.RECEIPTS_DIR)
        self.base_url = (config.RECEIPTS_BASE_URL if base_url is None else base_url).rstrip("/")

    def _target(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise UploadError(f"Invalid storage path '{path}'")
        return self.root.joinpath(*relative.parts)

    def public_url(self, path: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{path}"
        return self._target(path).resolve().as_uri()

    def upload(self, path: str, data: bytes, *, upsert: bool = False) -> str:
        """Write ``data`` at ``path`` and return its public URL.

        Raises:
            UploadError: If an object already exists at ``path`` and
                ``upsert`` is False, or the write fails
        """
        target = self._target(path)
        if target.exists() and not upsert:
            raise UploadError("A file with this name already exists. Please try again.")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Failed to upload file: {e}") from e
        logger.info("Stored receipt %s (%d bytes)", path, len(data))
        return self.public_url(path)
