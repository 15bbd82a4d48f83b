# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

DEFAULT_SALT = "mdocs.session.v1"


@dataclass(frozen=True)
class SessionData:
    """Per-browser state: who is signed in and a one-shot flash message."""

    username: Optional[str] = None
    message: Optional[str] = None

    def with_message(self, message: Optional[str]) -> "SessionData":
        return replace(self, message=message)

    def without_message(self) -> "SessionData":
        return replace(self, message=None)

    @property
    def is_empty(self) -> bool:
        return not self.username and not self.message


ANONYMOUS = SessionData()


class SessionSigner:
    def __init__(self, secret_key: str, *, salt: str = DEFAULT_SALT, max_age: int = 28800) -> None:
        if not secret_key:
            raise RuntimeError("A secret key is required to sign sessions")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def sign(self, data: SessionData) -> str:
        payload = {}
        if data.username:
            payload["u"] = data.username
        if data.message:
            payload["m"] = data.message
        return self._serializer.dumps(payload)

    def verify(self, token: str) -> SessionData:
        """Decode a cookie value; anything unreadable is an anonymous session."""
        if not token:
            return ANONYMOUS
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return ANONYMOUS
        if not isinstance(data, dict):
            return ANONYMOUS
        u = str(data.get("u") or "").strip()
        m = str(data.get("m") or "").strip()
        return SessionData(username=u or None, message=m or None)
