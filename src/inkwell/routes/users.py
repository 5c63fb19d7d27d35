# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from inkwell.auth.users import UserRepository, check_email, public_user, validate_new_user
from inkwell.core.utils import canon_email, clean, parse_age, wants_html
from inkwell.core.views import render
from inkwell.deps import get_users
from inkwell.errors import Conflict, NotFound, ValidationError
from inkwell.infra.document_store import DuplicateKeyError
from inkwell.permissions import require_user

router = APIRouter(prefix="/users", dependencies=[Depends(require_user)])


def _get_or_404(users: UserRepository, user_id: str) -> Dict[str, Any]:
    u = users.find_by_id(user_id)
    if not u:
        raise NotFound("User not found")
    return u


@router.get("")
def list_users(request: Request, users: UserRepository = Depends(get_users)):
    rows = [public_user(u) for u in users.list()]
    if wants_html(request):
        return render(request, "users.html", {"title": "Users", "users": rows})
    return JSONResponse(jsonable_encoder(rows))


@router.post("", status_code=201)
def create_user(payload: Dict[str, Any] = Body(...), users: UserRepository = Depends(get_users)):
    data = validate_new_user(payload)
    if users.find_by_email(data["email"]):
        raise Conflict("A user with this email is already registered.")
    try:
        u = users.create(**data)
    except DuplicateKeyError:
        raise Conflict("A user with this email is already registered.") from None
    return JSONResponse(
        jsonable_encoder({"message": "User created!", "userId": u["_id"], "user": public_user(u)}),
        status_code=201,
    )


@router.get("/{user_id}")
def get_user(request: Request, user_id: str, users: UserRepository = Depends(get_users)):
    u = public_user(_get_or_404(users, user_id))
    if wants_html(request):
        return render(request, "user_profile.html", {"title": u.get("name") or "User", "profile": u})
    return JSONResponse(jsonable_encoder(u))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(...),
    users: UserRepository = Depends(get_users),
):
    """Partial profile update. Password and role are not editable here."""
    updates: Dict[str, Any] = {}
    if clean(payload.get("name")):
        updates["name"] = clean(payload["name"])
    if clean(payload.get("email")):
        updates["email"] = check_email(canon_email(payload["email"]))
    if payload.get("age") is not None:
        try:
            age = parse_age(payload["age"])
        except ValueError:
            raise ValidationError("Age must be a whole number.") from None
        if age is not None:
            updates["age"] = age
    if not updates:
        raise ValidationError("No update data")

    try:
        res = users.update_fields(user_id, updates)
    except DuplicateKeyError:
        raise Conflict("A user with this email is already registered.") from None
    if not res.matched_count:
        raise NotFound("User not found")
    u = public_user(_get_or_404(users, user_id))
    return JSONResponse(jsonable_encoder({"message": f"User {user_id} is updated", "user": u}))


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: str, users: UserRepository = Depends(get_users)):
    if not users.delete(user_id):
        raise NotFound("User not found")
    return Response(status_code=204)
