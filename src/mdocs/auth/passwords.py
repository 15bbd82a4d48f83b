# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of the input.
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 12


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password longer than {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hash_value.encode("utf-8"))
    except ValueError:
        # Malformed hash ("Invalid salt")
        return False
