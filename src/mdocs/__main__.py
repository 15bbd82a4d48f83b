# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""mdocs entrypoint.

Run with:
  python -m mdocs

The app is built by ``mdocs.app:create_app`` on startup, so MDOCS_SECRET_KEY
must be set in the server's environment.
"""

import os

import uvicorn

from mdocs.config import env_flag


def main() -> None:
    uvicorn.run(
        "mdocs.app:create_app",
        factory=True,
        host=os.getenv("MDOCS_HOST", "127.0.0.1"),
        port=int(os.getenv("MDOCS_PORT", "8000")),
        reload=env_flag("MDOCS_RELOAD"),
    )


if __name__ == "__main__":
    main()
