# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from fastapi import Request


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canon_email(s: str) -> str:
    """Canonicalise emails for lookups (trim + lower)."""
    return (s or "").strip().lower()


def clean(s: Any) -> str:
    return str(s or "").strip()


def parse_age(value: Any) -> Optional[int]:
    """Parse an optional age field. Blank -> None, non-numeric -> ValueError."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    s = clean(value)
    if not s:
        return None
    return int(s, 10)


def wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def safe_next(url: str, default: str = "/") -> str:
    """Only allow local redirect targets (no scheme, no host)."""
    u = clean(url)
    if not u.startswith("/") or u.startswith("//"):
        return default
    return u


def theme_of(request: Request) -> str:
    return request.cookies.get("theme") or "light"


def strip_fields(doc: Optional[Dict[str, Any]], hidden: Iterable[str]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    hidden = set(hidden)
    return {k: v for k, v in doc.items() if k not in hidden}
