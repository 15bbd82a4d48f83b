# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""mdocs: a small multi-user manager for text and markdown documents."""

__version__ = "0.1.0"
