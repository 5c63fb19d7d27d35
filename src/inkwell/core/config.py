# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[3]


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    data_path: Path = BASE_DIR / "data" / "inkwell.yml"
    base_url: str = "http://localhost:8000"
    cookie_name: str = "inkwell_session"
    session_max_age: int = 28800  # 8 hours
    session_salt: str = "inkwell.session.v1"
    cookie_secure: bool = False
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True
    mail_from: str = "no-reply@inkwell.local"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SECRET_KEY") or os.getenv("INKWELL_SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing SECRET_KEY (or INKWELL_SECRET_KEY) in environment")
        return cls(
            secret_key=secret,
            data_path=Path(
                os.getenv("INKWELL_DATA_PATH", str(BASE_DIR / "data" / "inkwell.yml"))
            ).resolve(),
            base_url=os.getenv("INKWELL_BASE_URL", "http://localhost:8000").rstrip("/"),
            cookie_name=os.getenv("INKWELL_COOKIE_NAME", "inkwell_session"),
            session_max_age=int(os.getenv("INKWELL_SESSION_MAX_AGE", "28800")),
            session_salt=os.getenv("INKWELL_SESSION_SALT", "inkwell.session.v1"),
            cookie_secure=_get_bool(os.getenv("INKWELL_COOKIE_SECURE")),
            smtp_host=os.getenv("INKWELL_SMTP_HOST", ""),
            smtp_port=int(os.getenv("INKWELL_SMTP_PORT", "587")),
            smtp_user=os.getenv("INKWELL_SMTP_USER", ""),
            smtp_password=os.getenv("INKWELL_SMTP_PASSWORD", ""),
            smtp_starttls=_get_bool(os.getenv("INKWELL_SMTP_STARTTLS"), default=True),
            mail_from=os.getenv("INKWELL_MAIL_FROM", "no-reply@inkwell.local"),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
