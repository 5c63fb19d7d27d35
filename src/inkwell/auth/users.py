# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from inkwell.auth.passwords import dummy_hash, hash_password, verify_password
from inkwell.core.utils import canon_email, clean, parse_age, strip_fields, utcnow
from inkwell.errors import Conflict, ValidationError
from inkwell.infra.document_store import DuplicateKeyError, MemoryDocumentStore, UpdateResult

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

# Never leave the server in a JSON payload or a session.
HIDDEN_FIELDS = ("password", "resetToken", "resetTokenExpiry")


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        try:
            return cls(clean(value).lower())
        except ValueError:
            return None


DEFAULT_ROLE = Role.ADMIN


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    email: str
    role: Optional[Role]
    age: Optional[int] = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "CurrentUser":
        return cls(
            id=str(doc["_id"]),
            name=clean(doc.get("name")),
            email=clean(doc.get("email")),
            role=Role.parse(doc.get("role")),
            age=doc.get("age"),
        )


def public_user(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return strip_fields(doc, HIDDEN_FIELDS)


class UserRepository:
    """Credential store over the ``users`` collection."""

    def __init__(self, store: MemoryDocumentStore, *, clock: Callable[[], datetime] = utcnow):
        self.users = store.collection(USERS_COLLECTION)
        self.users.create_index("email", unique=True)
        self.clock = clock

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        e = canon_email(email)
        if not e:
            return None
        return self.users.find_one({"email": e})

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        uid = clean(user_id)
        if not uid:
            return None
        return self.users.find_one({"_id": uid})

    def list(self) -> List[Dict[str, Any]]:
        return self.users.find(sort=[("createdAt", 1)])

    def create(
        self,
        *,
        name: str,
        email: str,
        password: str,
        age: Optional[int] = None,
        role: Role = DEFAULT_ROLE,
    ) -> Dict[str, Any]:
        now = self.clock()
        doc = {
            "name": clean(name),
            "email": canon_email(email),
            "password": hash_password(password),
            "age": age,
            "role": role.value,
            "resetToken": None,
            "resetTokenExpiry": None,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.users.insert_one(doc)
        return doc

    def update_fields(
        self,
        user_id: str,
        fields: Dict[str, Any],
        *,
        guard: Optional[Dict[str, Any]] = None,
    ) -> UpdateResult:
        """Set fields on one user and refresh ``updatedAt``.

        ``guard`` adds conditions to the filter; the update only applies while
        they still hold at write time.
        """
        flt = {"_id": clean(user_id), **(guard or {})}
        return self.users.update_one(flt, {"$set": {**fields, "updatedAt": self.clock()}})

    def delete(self, user_id: str) -> bool:
        return self.users.delete_one({"_id": clean(user_id)}).deleted_count > 0


def authenticate(repo: UserRepository, email: str, password: str) -> Optional[Dict[str, Any]]:
    u = repo.find_by_email(email)
    if not u:
        # same argon2 cost as a wrong password
        verify_password(dummy_hash(), password)
        return None
    if not verify_password(u.get("password") or "", password):
        return None
    return u


def check_email(email: str) -> str:
    if "@" not in email:
        raise ValidationError("Invalid email address.")
    return email


def validate_new_user(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise and check registration/creation input."""
    name = clean(fields.get("name"))
    email = canon_email(fields.get("email") or "")
    password = str(fields.get("password") or "")
    if not name or not email or not password:
        raise ValidationError("Fields marked * are required: name, email, password.")
    check_email(email)
    try:
        age = parse_age(fields.get("age"))
    except ValueError:
        raise ValidationError("Age must be a whole number.") from None
    return {"name": name, "email": email, "password": password, "age": age}


def register(repo: UserRepository, *, name: str, email: str, password: str, age: Any = None) -> Dict[str, Any]:
    """Create a new account with the default role.

    The pre-check gives the common duplicate case a clean error; the unique
    index on ``email`` rejects the concurrent case that slips past it.
    """
    data = validate_new_user({"name": name, "email": email, "password": password, "age": age})
    if repo.find_by_email(data["email"]):
        raise Conflict("A user with this email is already registered.")
    try:
        user = repo.create(**data)
    except DuplicateKeyError:
        raise Conflict("A user with this email is already registered.") from None
    logger.info("Registered user %s", user["_id"])
    return user
