# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""JSON-backed credential store.

The backing file is a JSON array of ``{"username", "password", "role"}``
objects where ``password`` is a bcrypt hash. Nothing is cached: every read
re-parses the file and every mutation rewrites it as a whole.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from mdocs.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from mdocs.core.errors import DuplicateUser, InvalidCredentialInput, StoreCorrupt, UserNotFound

logger = logging.getLogger(__name__)


class Role(str, Enum):
    REGULAR = "regular"
    ADMIN = "admin"


# Files written before roles existed only knew this account as admin.
LEGACY_ADMIN_USERNAME = "admin"

SEED_USERS: Tuple[Tuple[str, str, Role], ...] = (
    ("admin", "secret", Role.ADMIN),
    ("frederik", "fredspassword", Role.REGULAR),
)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.@-]+$")


@dataclass(frozen=True)
class UserRecord:
    username: str
    password_hash: str
    role: Role = Role.REGULAR

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_json(self) -> dict:
        return {"username": self.username, "password": self.password_hash, "role": self.role.value}


# --- Mutation payloads ---


@dataclass(frozen=True)
class AddUser:
    new_username: str
    new_password: str
    role: Role = Role.REGULAR


@dataclass(frozen=True)
class EditUser:
    """Rename and/or re-password a user.

    An empty ``new_username`` keeps the current name, an empty ``new_password``
    keeps the current hash and ``role=None`` keeps the current role.
    """

    original_username: str
    new_username: str = ""
    new_password: str = ""
    role: Optional[Role] = None


@dataclass(frozen=True)
class DeleteUser:
    username: str


Operation = Union[AddUser, EditUser, DeleteUser]


# --- Helpers ---


def find_by_username(records: Iterable[UserRecord], username: str) -> Optional[UserRecord]:
    """Exact, case-sensitive lookup. First match wins."""
    for r in records:
        if r.username == username:
            return r
    return None


def _index_of(records: Sequence[UserRecord], username: str) -> Optional[int]:
    for i, r in enumerate(records):
        if r.username == username:
            return i
    return None


def _has_admin(records: Iterable[UserRecord]) -> bool:
    return any(r.is_admin for r in records)


def clean_username(username: str) -> str:
    u = (username or "").strip()
    if not u:
        raise InvalidCredentialInput("Please enter a username.")
    if not USERNAME_RE.match(u):
        raise InvalidCredentialInput("Username may only contain letters, numbers and the characters . _ @ -")
    return u


def check_password(password: str) -> str:
    if not password:
        raise InvalidCredentialInput("Please enter a password.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidCredentialInput(f"Password may not be longer than {MAX_PASSWORD_BYTES} bytes.")
    return password


def _record_from_json(raw: object, index: int, path: Path) -> UserRecord:
    if not isinstance(raw, dict):
        raise StoreCorrupt(path, f"entry {index} is not an object")
    username = raw.get("username")
    password_hash = raw.get("password")
    if not isinstance(username, str) or not username:
        raise StoreCorrupt(path, f"entry {index} has no username")
    if not isinstance(password_hash, str) or not password_hash:
        raise StoreCorrupt(path, f"entry {index} ({username}) has no password hash")

    role_raw = raw.get("role")
    if role_raw is None:
        role = Role.ADMIN if username == LEGACY_ADMIN_USERNAME else Role.REGULAR
    else:
        try:
            role = Role(role_raw)
        except ValueError:
            raise StoreCorrupt(path, f"entry {index} ({username}) has unknown role {role_raw!r}") from None
    return UserRecord(username=username, password_hash=password_hash, role=role)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("not-a-real-password")


class CredentialStore:
    """Read-modify-write access to the credential file at ``path``."""

    def __init__(self, path: Path, *, seed_users: Sequence[Tuple[str, str, Role]] = SEED_USERS) -> None:
        self.path = Path(path)
        self._seed_users = tuple(seed_users)
        # Single writer per store; concurrent processes are not coordinated.
        self._lock = threading.RLock()

    # --- reads ---

    def ensure_initialized(self) -> bool:
        """Create the file with the seed accounts if it is absent.

        Returns True when the file was created. An existing file is never
        touched, whatever its content.
        """
        with self._lock:
            if self.path.exists():
                return False
            records = [UserRecord(u, hash_password(p), role) for u, p, role in self._seed_users]
            self._persist(records)
            logger.info("Seeded credential store %s with %d users", self.path, len(records))
            return True

    def load_all(self) -> List[UserRecord]:
        self.ensure_initialized()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StoreCorrupt(self.path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
        except UnicodeDecodeError as e:
            raise StoreCorrupt(self.path, "file is not UTF-8 text") from e
        if not isinstance(raw, list):
            raise StoreCorrupt(self.path, "top-level value is not an array")
        return [_record_from_json(item, i, self.path) for i, item in enumerate(raw)]

    def get(self, username: str) -> Optional[UserRecord]:
        return find_by_username(self.load_all(), username)

    def authenticate(self, username: str, password: str) -> Optional[UserRecord]:
        """Return the record when the password matches, else None.

        An unknown username and a wrong password are indistinguishable to the
        caller, including in time spent (a dummy hash is checked).
        """
        u = self.get(username or "")
        if u is None:
            verify_password(_dummy_hash(), password)
            return None
        if not verify_password(u.password_hash, password):
            return None
        return u

    # --- writes ---

    def mutate(self, operation: Operation) -> bool:
        """Apply one operation and persist the full list.

        Returns False when nothing changed (deleting an unknown user), in
        which case the file is not rewritten.
        """
        with self._lock:
            records = self.load_all()
            if isinstance(operation, AddUser):
                updated = self._apply_add(records, operation)
            elif isinstance(operation, EditUser):
                updated = self._apply_edit(records, operation)
            elif isinstance(operation, DeleteUser):
                updated = self._apply_delete(records, operation)
                if updated is None:
                    return False
            else:
                raise TypeError(f"Unsupported operation: {operation!r}")

            if _has_admin(records) and not _has_admin(updated):
                raise InvalidCredentialInput("At least one admin account is required.")

            self._persist(updated)
        logger.info("Credential store %s: %s", self.path, _describe(operation))
        return True

    def add(self, new_username: str, new_password: str, role: Role = Role.REGULAR) -> bool:
        return self.mutate(AddUser(new_username, new_password, role))

    def edit(
        self,
        original_username: str,
        new_username: str = "",
        new_password: str = "",
        role: Optional[Role] = None,
    ) -> bool:
        return self.mutate(EditUser(original_username, new_username, new_password, role))

    def delete(self, username: str) -> bool:
        return self.mutate(DeleteUser(username))

    @staticmethod
    def _apply_add(records: List[UserRecord], op: AddUser) -> List[UserRecord]:
        username = clean_username(op.new_username)
        password = check_password(op.new_password)
        if find_by_username(records, username) is not None:
            raise DuplicateUser(username)
        return records + [UserRecord(username, hash_password(password), Role(op.role))]

    @staticmethod
    def _apply_edit(records: List[UserRecord], op: EditUser) -> List[UserRecord]:
        idx = _index_of(records, op.original_username)
        if idx is None:
            raise UserNotFound(op.original_username)
        current = records[idx]

        username = clean_username(op.new_username) if (op.new_username or "").strip() else current.username
        if username != current.username and find_by_username(records, username) is not None:
            raise DuplicateUser(username)

        if op.new_password:
            password_hash = hash_password(check_password(op.new_password))
        else:
            password_hash = current.password_hash
        role = Role(op.role) if op.role is not None else current.role

        out = list(records)
        out[idx] = UserRecord(username=username, password_hash=password_hash, role=role)
        return out

    @staticmethod
    def _apply_delete(records: List[UserRecord], op: DeleteUser) -> Optional[List[UserRecord]]:
        idx = _index_of(records, op.username)
        if idx is None:
            return None
        return records[:idx] + records[idx + 1 :]

    def _persist(self, records: Sequence[UserRecord]) -> None:
        """Write to a temp file next to the target, then rename over it."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([r.to_json() for r in records], indent=2, ensure_ascii=False)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload + "\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


def _describe(op: Operation) -> str:
    if isinstance(op, AddUser):
        return f"added user {op.new_username.strip()!r}"
    if isinstance(op, EditUser):
        return f"edited user {op.original_username!r}"
    return f"deleted user {op.username!r}"
