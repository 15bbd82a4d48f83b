# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the store, the document repository and the web layer.

Every error carries a stable ``code`` and a user-facing ``message``; the web
layer shows ``message`` as a flash message and never an HTTP error body.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class MdocsError(Exception):
    """Base class for all mdocs errors."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code} -> {self.message}"


# --- Not found ---


class NotFound(MdocsError):
    """A document or user does not exist."""


class DocumentNotFound(NotFound):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__("N01", f"{filename} was not found.")


class UserNotFound(NotFound):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("N02", f"User {username} was not found.")


# --- Validation ---


class ValidationError(MdocsError):
    """User input was rejected; the originating form should be shown again."""


class FilenameProblem(str, Enum):
    EMPTY = "empty"
    EXTENSION = "extension"
    CHARACTERS = "characters"


FILENAME_MESSAGES = {
    FilenameProblem.EMPTY: "Please enter a filename.",
    FilenameProblem.EXTENSION: "Filename must end in .md or .txt.",
    FilenameProblem.CHARACTERS: "Filename may only contain letters, numbers, underscores and hyphens.",
}


class FilenameError(ValidationError):
    def __init__(self, problem: FilenameProblem) -> None:
        self.problem = problem
        super().__init__("V01", FILENAME_MESSAGES[problem])


class DocumentExists(ValidationError):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__("V02", f"{filename} already exists.")


class DuplicateUser(ValidationError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("V03", f"Username {username} is already taken.")


class InvalidCredentialInput(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__("V04", message)


# --- Authorization ---

UNAUTHORIZED_MESSAGE = "Sorry, you are not authorized to do that."


class Unauthorized(MdocsError):
    def __init__(self, message: str = UNAUTHORIZED_MESSAGE) -> None:
        super().__init__("A01", message)


# --- Storage ---


class StoreCorrupt(MdocsError):
    """The credential file exists but does not hold a valid list of users."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__("S01", f"Credential store {path} is corrupt: {reason}")
