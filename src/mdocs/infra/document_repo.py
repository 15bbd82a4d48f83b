# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

from mdocs.core.errors import DocumentExists, DocumentNotFound, FilenameError, FilenameProblem

logger = logging.getLogger(__name__)

FILENAME_RE = re.compile(r"^[A-Za-z0-9_-]+\.(md|txt)$")
ALLOWED_EXTENSIONS = (".md", ".txt")


def validate_filename(name: str) -> bool:
    return bool(FILENAME_RE.fullmatch(name or ""))


def classify_filename_error(name: str) -> Optional[FilenameProblem]:
    """Say why a filename is rejected, or None when it is valid.

    Checked in order: empty name, wrong extension, invalid characters.
    """
    n = (name or "").strip()
    if not n:
        return FilenameProblem.EMPTY
    if not n.endswith(ALLOWED_EXTENSIONS):
        return FilenameProblem.EXTENSION
    if not validate_filename(name):
        return FilenameProblem.CHARACTERS
    return None


class DocumentRepository:
    """Flat directory of documents; the filename is the only identifier."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Optional[Path]:
        """Resolve a filename inside the root, or None if it would escape it."""
        name = filename or ""
        if not name or name.startswith(".") or "/" in name or "\\" in name or "\x00" in name:
            return None
        return self.root / name

    def list_documents(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file() and not p.name.startswith("."))

    def exists(self, filename: str) -> bool:
        p = self._path(filename)
        return p is not None and p.is_file()

    def read(self, filename: str) -> bytes:
        p = self._path(filename)
        if p is None or not p.is_file():
            raise DocumentNotFound(filename)
        return p.read_bytes()

    def write(self, filename: str, content: bytes) -> None:
        """Overwrite a document wholesale, creating it if needed. Last write wins."""
        p = self._path(filename)
        if p is None or p.is_dir():
            raise DocumentNotFound(filename)
        self.ensure_root()
        p.write_bytes(content)
        logger.info("Updated document %s (%d bytes)", filename, len(content))

    def create(self, filename: str) -> str:
        problem = classify_filename_error(filename)
        if problem is not None:
            raise FilenameError(problem)
        p = self.root / filename
        if p.exists():
            raise DocumentExists(filename)
        self.ensure_root()
        p.touch(exist_ok=False)
        logger.info("Created document %s", filename)
        return filename

    def delete(self, filename: str) -> None:
        p = self._path(filename)
        if p is None or not p.is_file():
            raise DocumentNotFound(filename)
        p.unlink()
        logger.info("Deleted document %s", filename)
