# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from inkwell.auth.users import CurrentUser, Role
from inkwell.errors import Forbidden, Unauthenticated

_RESOLVED = "auth_resolved"


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    sessions = request.app.state.sessions
    token = request.cookies.get(request.app.state.settings.cookie_name, "")
    return sessions.resolve(token)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    """Resolve the session once per request and cache it on ``request.state``."""
    if getattr(request.state, _RESOLVED, False):
        return request.state.user
    u = load_user_from_request(request)
    request.state.user = u
    setattr(request.state, _RESOLVED, True)
    return u


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise Unauthenticated()


def require_role(role: Role):
    """Exact-match role check. Always runs after ``require_user``."""

    def _dep(u: CurrentUser = Depends(require_user)) -> CurrentUser:
        if u.role is not role:
            raise Forbidden()
        return u

    return _dep
