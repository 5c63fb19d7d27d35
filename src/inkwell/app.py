# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse

from inkwell import __version__
from inkwell.auth.reset import PasswordResetService
from inkwell.auth.session import SessionManager
from inkwell.auth.users import UserRepository
from inkwell.core.config import Settings
from inkwell.core.utils import utcnow, wants_html
from inkwell.core.views import render
from inkwell.errors import AppError, ServerError, Unauthenticated
from inkwell.infra.document_store import MemoryDocumentStore, StoreError, YamlDocumentStore
from inkwell.infra.mailer import Mailer, mailer_from_settings
from inkwell.routes import articles, auth, users
from inkwell.services.article_service import ArticleRepository

logger = logging.getLogger(__name__)


def _error_response(request: Request, err: AppError):
    if wants_html(request):
        return PlainTextResponse(err.detail, status_code=err.status_code)
    return JSONResponse({"detail": err.detail}, status_code=err.status_code)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated):
        if wants_html(request):
            next_url = request.url.path
            if request.url.query:
                next_url += "?" + request.url.query
            return RedirectResponse(url=f"/auth/login?next={quote(next_url)}", status_code=303)
        return JSONResponse(
            {"detail": exc.detail},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return _error_response(request, exc)

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.exception("Store failure on %s %s", request.method, request.url.path)
        return _error_response(request, ServerError())


def create_app(
    *,
    settings: Optional[Settings] = None,
    store: Optional[MemoryDocumentStore] = None,
    mailer: Optional[Mailer] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Build the application.

    Every component gets the store handle explicitly; tests pass a
    ``MemoryDocumentStore``, a recording mailer and a fixed clock.
    """
    settings = settings or Settings.from_env()
    store = store if store is not None else YamlDocumentStore(settings.data_path)
    mailer = mailer or mailer_from_settings(settings)

    app = FastAPI(title="Inkwell", version=__version__)

    user_repo = UserRepository(store, clock=clock)
    app.state.settings = settings
    app.state.store = store
    app.state.users = user_repo
    app.state.articles = ArticleRepository(store, clock=clock)
    app.state.sessions = SessionManager(
        store,
        user_repo,
        secret_key=settings.secret_key,
        salt=settings.session_salt,
        max_age=settings.session_max_age,
        clock=clock,
    )
    app.state.resets = PasswordResetService(user_repo, mailer, base_url=settings.base_url, clock=clock)

    _install_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(articles.router)

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        return render(request, "index.html", {"title": "Inkwell"})

    @app.get("/health")
    def health():
        try:
            ok = store.ping()
        except StoreError:
            ok = False
        if not ok:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store unavailable")
        return {"status": "healthy"}

    return app
