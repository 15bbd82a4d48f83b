# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Anchor default data paths to the project root, not the current working directory.
BASE_DIR = Path(__file__).resolve().parents[2]

TRUTHY = {"1", "true", "yes", "y"}


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    documents_dir: Path = BASE_DIR / "user_files"
    users_path: Path = BASE_DIR / "data" / "credentials.json"
    cookie_name: str = "mdocs_session"
    session_max_age: int = 28800  # 8 hours
    cookie_secure: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("MDOCS_SECRET_KEY") or os.getenv("SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing MDOCS_SECRET_KEY (or SECRET_KEY) in environment")
        return cls(
            secret_key=secret,
            documents_dir=Path(os.getenv("MDOCS_DOCUMENTS_DIR", str(BASE_DIR / "user_files"))).resolve(),
            users_path=Path(os.getenv("MDOCS_USERS_PATH", str(BASE_DIR / "data" / "credentials.json"))).resolve(),
            cookie_name=os.getenv("MDOCS_COOKIE_NAME", "mdocs_session"),
            session_max_age=int(os.getenv("MDOCS_SESSION_MAX_AGE", "28800")),
            cookie_secure=env_flag("MDOCS_COOKIE_SECURE"),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
