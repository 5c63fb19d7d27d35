# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application error taxonomy.

Every error carries the HTTP status it maps to and a ``detail`` string that is
safe to show to the client. Store/driver faults live in
``inkwell.infra.document_store`` and are downgraded to ``ServerError`` by the
handlers registered in ``inkwell.app``.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500
    default_detail = "Server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    default_detail = "Invalid input"


class Unauthenticated(AppError):
    status_code = 401
    default_detail = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_detail = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_detail = "Not found"


class Conflict(AppError):
    status_code = 409
    default_detail = "Conflict"


class ServerError(AppError):
    status_code = 500
    default_detail = "Server error"
