"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
from typing import Any


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def token_fingerprint(token: str | None) -> str:
    """Correlate a bearer token across log lines without writing any of its segments."""
    return safe_log_identifier(token, prefix="tok")


def mask_email(email: str | None) -> str:
    """Keep the first character and the domain: ``j***@example.com``."""
    text = (email or "").strip()
    local, sep, domain = text.partition("@")
    if not sep or not local:
        return safe_log_identifier(text, prefix="eml")
    return f"{local[0]}***@{domain}"
