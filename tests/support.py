"""
Constants and helpers shared by the API tests.
"""

from __future__ import annotations

import re

API = "/api/v1"
PASSWORD = "Secret123!"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def token_from(body: str, route: str) -> str:
    """Pull the raw token out of a verification or reset email."""
    match = re.search(rf"/auth/{route}/([0-9a-f]+)", body)
    assert match, f"no {route} link in email: {body}"
    return match.group(1)


def png(name: str = "photo.png", size: int = 0):
    data = PNG_BYTES if not size else b"\x89PNG" + b"\x00" * (size - 4)
    return (name, data, "image/png")
