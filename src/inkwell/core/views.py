# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from inkwell.core.utils import theme_of
from inkwell.permissions import current_user_optional

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render(request: Request, template_name: str, ctx: dict | None = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting theme and current user."""
    base_ctx = {
        "theme": theme_of(request),
        "current_user": current_user_optional(request),
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)
