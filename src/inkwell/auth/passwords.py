# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_PH = PasswordHasher()


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        # Mismatch and malformed digests are both "no match".
        return False


@lru_cache(maxsize=1)
def dummy_hash() -> str:
    """A throwaway digest to verify against when no account matches."""
    return _PH.hash(secrets.token_hex(16))
