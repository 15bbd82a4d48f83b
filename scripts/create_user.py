#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from mdocs.auth.users import CredentialStore, Role
from mdocs.config import BASE_DIR
from mdocs.core.errors import ValidationError

USERS_PATH = Path(os.getenv("MDOCS_USERS_PATH", str(BASE_DIR / "data" / "credentials.json"))).resolve()


def main() -> None:
    store = CredentialStore(USERS_PATH)

    username = input("Username: ").strip()
    role_in = input("Role [regular/admin]: ").strip().lower() or Role.REGULAR.value
    try:
        role = Role(role_in)
    except ValueError:
        raise SystemExit(f"Unknown role: {role_in}")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        if store.get(username) is None:
            store.add(username, pw1, role)
        else:
            store.edit(username, new_password=pw1, role=role)
    except ValidationError as e:
        raise SystemExit(e.message)
    print(f"OK -> {USERS_PATH}")


if __name__ == "__main__":
    main()
