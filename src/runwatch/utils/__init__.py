"""Utility helpers."""

from .redaction import redact_url
from .time import ensure_utc, parse_timestamp, utc_now

__all__ = ["ensure_utc", "parse_timestamp", "redact_url", "utc_now"]
