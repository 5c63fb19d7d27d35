# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Password reset protocol.

Per user: ``NoResetPending -> ResetPending -> NoResetPending``. A request
issues (or overwrites) ``resetToken``/``resetTokenExpiry``; a redemption
consumes them. Expiry is only checked when a token is looked up.

The service returns plain result values; ``inkwell.routes.auth`` turns them
into pages.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from inkwell.auth.passwords import hash_password
from inkwell.auth.users import UserRepository
from inkwell.core.utils import canon_email, clean, utcnow
from inkwell.errors import ValidationError
from inkwell.infra.mailer import Mailer

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits -> 64 hex chars
TOKEN_TTL = timedelta(hours=1)
MIN_PASSWORD_LENGTH = 6

ACKNOWLEDGEMENT = "If this email is registered, you will receive a message with reset instructions."
INVALID_TOKEN_MESSAGE = "The password reset link is invalid or has expired."
SHORT_PASSWORD_MESSAGE = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
MISSING_EMAIL_MESSAGE = "Please enter your email."

MAIL_SUBJECT = "Reset the password for your account"
MAIL_TEMPLATE = (
    "<p>You asked to reset your password. Follow this link to choose a new one:</p>"
    '<p><a href="{link}">{link}</a></p>'
    "<p>The link is valid for 1 hour.</p>"
)


class RedeemStatus(str, Enum):
    DONE = "done"
    INVALID = "invalid"
    TOO_SHORT = "too_short"


@dataclass(frozen=True)
class ResetForm:
    token: Optional[str]
    message: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.token is not None


@dataclass(frozen=True)
class RedeemResult:
    status: RedeemStatus
    token: Optional[str] = None
    message: Optional[str] = None


class PasswordResetService:
    def __init__(
        self,
        users: UserRepository,
        mailer: Mailer,
        *,
        base_url: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = users
        self.mailer = mailer
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    def reset_link(self, token: str) -> str:
        return f"{self.base_url}/auth/reset/{token}"

    def _valid_token_filter(self, token: str) -> Dict[str, Any]:
        return {"resetToken": token, "resetTokenExpiry": {"$gt": self.clock()}}

    def find_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        t = clean(token)
        if not t:
            return None
        return self.users.users.find_one(self._valid_token_filter(t))

    def request_reset(self, email: str) -> str:
        """Issue a token and mail the link. Always returns ``ACKNOWLEDGEMENT``."""
        e = canon_email(email)
        if not e:
            raise ValidationError(MISSING_EMAIL_MESSAGE)

        user = self.users.find_by_email(e)
        if not user:
            logger.info("Password reset requested for unknown email")
            return ACKNOWLEDGEMENT

        token = secrets.token_hex(TOKEN_BYTES)
        self.users.update_fields(
            user["_id"],
            {"resetToken": token, "resetTokenExpiry": self.clock() + TOKEN_TTL},
        )

        link = self.reset_link(token)
        try:
            self.mailer.send(to=user["email"], subject=MAIL_SUBJECT, html=MAIL_TEMPLATE.format(link=link))
        except Exception:
            # Same answer as the unknown-email branch.
            logger.exception("Failed to send password reset email for user %s", user["_id"])
        return ACKNOWLEDGEMENT

    def view_reset_form(self, token: str) -> ResetForm:
        if not self.find_by_token(token):
            return ResetForm(token=None, message=INVALID_TOKEN_MESSAGE)
        return ResetForm(token=token)

    def redeem_reset(self, token: str, new_password: str) -> RedeemResult:
        user = self.find_by_token(token)
        if not user:
            return RedeemResult(RedeemStatus.INVALID, message=INVALID_TOKEN_MESSAGE)

        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            return RedeemResult(RedeemStatus.TOO_SHORT, token=token, message=SHORT_PASSWORD_MESSAGE)

        res = self.users.update_fields(
            user["_id"],
            {"password": hash_password(new_password), "resetToken": None, "resetTokenExpiry": None},
            guard=self._valid_token_filter(token),
        )
        if not res.matched_count:
            # Consumed or expired between the lookup and the write.
            return RedeemResult(RedeemStatus.INVALID, message=INVALID_TOKEN_MESSAGE)

        logger.info("Password reset completed for user %s", user["_id"])
        return RedeemResult(RedeemStatus.DONE)
