"""Local object store for expense receipts."""

import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from expenseflow.core.config import get_settings
from expenseflow.core.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class LocalObjectStore:
    """
    Stores uploaded files under a directory and returns their public URL.

    Object keys are ``<uuid>.<ext>`` so two uploads never collide and the
    client-supplied name never reaches the filesystem.
    """

    def __init__(
        self,
        root_dir: Optional[str] = None,
        base_url: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ):
        settings = get_settings()
        self.root_dir = Path(root_dir or settings.receipts_dir)
        self.base_url = (base_url or settings.receipts_base_url).rstrip("/")
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_receipt_bytes

    def store(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """
        Write an object and return its URL.

        Raises:
            ValidationError: If the object is empty or too large
            PersistenceError: If the file cannot be written
        """
        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > self.max_bytes:
            raise ValidationError(f"Uploaded file exceeds {self.max_bytes} bytes")

        key = f"{uuid.uuid4()}{self._extension(filename)}"
        path = self.root_dir / key
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.exception(f"Failed to store object {key}")
            raise PersistenceError(f"Could not store {filename}") from e

        logger.info(f"Stored {len(data)} bytes as {key} ({content_type or 'unknown type'})")
        return f"{self.base_url}/{key}"

    def path_for(self, url: str) -> Path:
        """Filesystem path of an object previously returned by ``store``."""
        return self.root_dir / url.rsplit("/", 1)[-1]

    @staticmethod
    def _extension(filename: str) -> str:
        suffix = Path(filename or "").suffix.lower()
        return _UNSAFE_CHARS.sub("", suffix)[:10]
