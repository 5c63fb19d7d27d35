# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication core.

This package provides:
- Password hashing/verification (argon2)
- Account lookup, login and registration against the ``users`` collection
- Server-side sessions carried by signed cookies (itsdangerous)
- The password-reset token protocol
"""
