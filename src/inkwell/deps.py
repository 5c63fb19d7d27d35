# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""FastAPI dependencies exposing the components built by ``create_app``.

Usage in route functions:
    users: UserRepository = Depends(get_users)
"""

from __future__ import annotations

from fastapi import Request

from inkwell.auth.reset import PasswordResetService
from inkwell.auth.session import SessionManager
from inkwell.auth.users import UserRepository
from inkwell.core.config import Settings
from inkwell.services.article_service import ArticleRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_users(request: Request) -> UserRepository:
    return request.app.state.users


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_resets(request: Request) -> PasswordResetService:
    return request.app.state.resets


def get_articles(request: Request) -> ArticleRepository:
    return request.app.state.articles
