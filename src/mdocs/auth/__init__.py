# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (bcrypt)
- The JSON credential store (data/credentials.json)
- Signed session cookies (itsdangerous)
"""
