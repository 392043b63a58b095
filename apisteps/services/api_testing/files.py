"""File-system collaborators used when attaching files to a request."""

import mimetypes
import os
from typing import BinaryIO

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileAccessor:
    """Existence/readability checks and read-only opening of attachments."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_readable(self, path: str) -> bool:
        return os.path.isfile(path) and os.access(path, os.R_OK)

    def open(self, path: str) -> BinaryIO:
        return open(path, "rb")


class MimeDetector:
    """
    Best-effort MIME type detection based on the file name.

    An unknown type is not an error: ``default`` is returned instead.
    """

    def __init__(self, default: str = DEFAULT_MIME_TYPE):
        self.default = default

    def detect(self, path: str) -> str:
        mime_type, _ = mimetypes.guess_type(path)
        return mime_type or self.default
