# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Turn stored document bytes into a response body.

Markdown is converted with the ``markdown`` package and is NOT sanitized:
whoever can edit documents can inject HTML into the rendered page.
"""

from __future__ import annotations

from typing import Tuple

import markdown

MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def is_markdown(filename: str) -> bool:
    return (filename or "").lower().endswith(".md")


def render_document(filename: str, content: bytes) -> Tuple[str, str]:
    """Return (media_type, body) for a document."""
    text = content.decode("utf-8", errors="replace")
    if is_markdown(filename):
        return "text/html", render_markdown(text)
    return "text/plain", text
