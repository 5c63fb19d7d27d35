# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from inkwell.auth.users import CurrentUser, UserRepository
from inkwell.core.utils import clean, utcnow
from inkwell.infra.document_store import MemoryDocumentStore

logger = logging.getLogger(__name__)

SESSIONS_COLLECTION = "sessions"
DEFAULT_MAX_AGE_SECONDS = 28800  # 8 hours


class SessionManager:
    """Server-side sessions referenced by a signed, timestamped cookie.

    The session record stores the user id only. Role and profile are re-read
    from the users collection on every ``resolve``.
    """

    def __init__(
        self,
        store: MemoryDocumentStore,
        users: UserRepository,
        *,
        secret_key: str,
        salt: str = "inkwell.session.v1",
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret_key:
            raise RuntimeError("Missing session secret key")
        self.sessions = store.collection(SESSIONS_COLLECTION)
        self.users = users
        self.max_age = max_age
        self.clock = clock
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def _session_id(self, handle: str, *, check_age: bool = True) -> Optional[str]:
        if not handle:
            return None
        try:
            data = self._serializer.loads(handle, max_age=self.max_age if check_age else None)
        except (BadSignature, BadTimeSignature):
            return None
        sid = clean((data or {}).get("sid") if isinstance(data, dict) else "")
        return sid or None

    def _expired(self, sess: Dict[str, Any]) -> bool:
        created = sess.get("createdAt")
        if not isinstance(created, datetime):
            return True
        return created + timedelta(seconds=self.max_age) <= self.clock()

    def prune_expired(self) -> int:
        """Delete every session record older than ``max_age``."""
        cutoff = self.clock() - timedelta(seconds=self.max_age)
        removed = 0
        for sess in self.sessions.find({"createdAt": {"$lte": cutoff}}):
            removed += self.sessions.delete_one({"_id": sess["_id"]}).deleted_count
        if removed:
            logger.info("Pruned %d expired sessions", removed)
        return removed

    def establish(self, user: Dict[str, Any]) -> str:
        self.prune_expired()
        sid = secrets.token_urlsafe(32)
        self.sessions.insert_one({"_id": sid, "userId": str(user["_id"]), "createdAt": self.clock()})
        logger.info("Session established for user %s", user["_id"])
        return self._serializer.dumps({"sid": sid})

    def resolve(self, handle: str) -> Optional[CurrentUser]:
        sid = self._session_id(handle, check_age=False)
        if not sid:
            return None
        sess = self.sessions.find_one({"_id": sid})
        if not sess:
            return None
        if self._expired(sess) or not self._session_id(handle):
            self.sessions.delete_one({"_id": sid})
            logger.info("Session expired for user %s", sess.get("userId"))
            return None
        u = self.users.find_by_id(sess.get("userId") or "")
        if not u:
            return None
        return CurrentUser.from_doc(u)

    def terminate(self, handle: str) -> None:
        sid = self._session_id(handle, check_age=False)
        if not sid:
            return
        if self.sessions.delete_one({"_id": sid}).deleted_count:
            logger.info("Session terminated")
