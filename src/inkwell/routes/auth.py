# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from inkwell.auth.reset import PasswordResetService, RedeemStatus
from inkwell.auth.session import SessionManager
from inkwell.auth.users import UserRepository, authenticate, register
from inkwell.core.config import Settings
from inkwell.core.utils import safe_next
from inkwell.core.views import render
from inkwell.deps import get_resets, get_sessions, get_settings, get_users
from inkwell.errors import Conflict, ValidationError
from inkwell.permissions import current_user_optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _login_response(sessions: SessionManager, settings: Settings, user: dict, next_url: str) -> RedirectResponse:
    token = sessions.establish(user)
    resp = RedirectResponse(url=safe_next(next_url), status_code=303)
    resp.set_cookie(
        settings.cookie_name,
        token,
        max_age=settings.session_max_age,
        **settings.cookie_settings(),
    )
    return resp


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/"):
    if current_user_optional(request):
        return RedirectResponse(url=safe_next(next), status_code=303)
    return render(request, "auth/login.html", {"title": "Sign in", "next": next, "error": ""})


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    users: UserRepository = Depends(get_users),
    sessions: SessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    u = authenticate(users, email, password)
    if not u:
        return render(
            request,
            "auth/login.html",
            {"title": "Sign in", "next": next, "error": "Invalid email or password."},
            status_code=401,
        )
    return _login_response(sessions, settings, u, next)


@router.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    return render(request, "auth/register.html", {"title": "Sign up", "error": "", "form": {}})


@router.post("/register")
def register_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    age: str = Form(""),
    users: UserRepository = Depends(get_users),
    sessions: SessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    try:
        u = register(users, name=name, email=email, password=password, age=age)
    except (ValidationError, Conflict) as e:
        return render(
            request,
            "auth/register.html",
            {"title": "Sign up", "error": e.detail, "form": {"name": name, "email": email, "age": age}},
            status_code=e.status_code,
        )
    return _login_response(sessions, settings, u, "/")


@router.post("/logout")
def logout_post(
    request: Request,
    sessions: SessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    sessions.terminate(request.cookies.get(settings.cookie_name, ""))
    resp = RedirectResponse(url="/auth/login", status_code=303)
    resp.delete_cookie(settings.cookie_name)
    return resp


@router.get("/forgot", response_class=HTMLResponse)
def forgot_get(request: Request):
    return render(request, "auth/forgot.html", {"title": "Forgot password", "message": None})


@router.post("/forgot", response_class=HTMLResponse)
def forgot_post(
    request: Request,
    email: str = Form(""),
    resets: PasswordResetService = Depends(get_resets),
):
    try:
        message = resets.request_reset(email)
    except ValidationError as e:
        return render(request, "auth/forgot.html", {"title": "Forgot password", "message": e.detail}, status_code=400)
    return render(request, "auth/forgot.html", {"title": "Forgot password", "message": message})


@router.get("/reset/{token}", response_class=HTMLResponse)
def reset_get(request: Request, token: str, resets: PasswordResetService = Depends(get_resets)):
    form = resets.view_reset_form(token)
    return render(
        request,
        "auth/reset.html",
        {"title": "Reset password", "token": form.token, "message": form.message},
        status_code=200 if form.valid else 404,
    )


@router.post("/reset/{token}")
def reset_post(
    request: Request,
    token: str,
    password: str = Form(""),
    resets: PasswordResetService = Depends(get_resets),
):
    result = resets.redeem_reset(token, password)
    if result.status is RedeemStatus.DONE:
        return RedirectResponse(url="/auth/login", status_code=303)
    status_code = 400 if result.status is RedeemStatus.TOO_SHORT else 404
    return render(
        request,
        "auth/reset.html",
        {"title": "Reset password", "token": result.token, "message": result.message},
        status_code=status_code,
    )
