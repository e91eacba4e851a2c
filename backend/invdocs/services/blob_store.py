# Overview: Filesystem blob storage for uploaded files and archived reports.

from __future__ import annotations

import io
import os
import re
import tempfile
import uuid

from flask import current_app

__all__ = ["FileSystemBlobStore", "BlobNotFoundError", "get_blob_store"]


class BlobNotFoundError(FileNotFoundError):
    """Raised when a locator does not resolve to a stored blob."""


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_suffix(name: str | None) -> str:
    base = os.path.basename(name or "")
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:80] or "blob"


class FileSystemBlobStore:
    """
    Stores each blob as one file under `root`.

    Locators are generated file names (uuid prefix + sanitized original name),
    never caller-controlled paths. Writes are atomic: the content goes to a
    temporary file that is then os.replace()d into place.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _path(self, locator: str) -> str:
        if not locator or os.path.basename(locator) != locator or locator in (".", ".."):
            raise BlobNotFoundError(f"Invalid blob locator: {locator!r}")
        return os.path.join(self.root, locator)

    def write(self, data: bytes, name: str | None = None) -> str:
        os.makedirs(self.root, exist_ok=True)
        locator = f"{uuid.uuid4().hex}_{_safe_suffix(name)}"
        fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=self.root)
        try:
            with io.open(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path(locator))
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        return locator

    def read(self, locator: str) -> bytes:
        path = self._path(locator)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"Blob not found: {locator}") from exc

    def delete(self, locator: str) -> bool:
        """
        Remove a blob. Returns False when it was already missing.

        Other OS errors (permissions, I/O) propagate to the caller.
        """
        try:
            os.remove(self._path(locator))
        except (FileNotFoundError, BlobNotFoundError):
            return False
        return True


def get_blob_store() -> FileSystemBlobStore:
    """Blob store bound to the current application's BLOB_STORAGE_DIR."""
    root = current_app.config["BLOB_STORAGE_DIR"]
    if not os.path.isabs(root):
        root = os.path.join(current_app.root_path, "..", root)
    return FileSystemBlobStore(root)
