# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Inkwell: server-rendered articles/users backend with session auth."""

__version__ = "0.1.0"
