"""Masking of credentials before URLs reach the logs."""

from __future__ import annotations

import re

_CREDENTIALS = re.compile(r"://([^:/@]+):([^@]+)@")


def redact_url(url: str) -> str:
    """Replace the user and password of a connection URL with asterisks."""

    return _CREDENTIALS.sub("://***:***@", url)


__all__ = ["redact_url"]
