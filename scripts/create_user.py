#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from inkwell.auth.users import Role, UserRepository, validate_new_user
from inkwell.core.config import Settings
from inkwell.infra.document_store import YamlDocumentStore


def main() -> None:
    settings = Settings.from_env()
    repo = UserRepository(YamlDocumentStore(settings.data_path))

    name = input("Name: ").strip()
    email = input("Email: ").strip()
    age = input("Age (optional): ").strip()
    role = Role.parse(input("Role [admin/user]: ").strip() or "admin")
    if role is None:
        raise SystemExit("Unknown role")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    data = validate_new_user({"name": name, "email": email, "password": pw1, "age": age})
    if repo.find_by_email(data["email"]):
        raise SystemExit(f"{data['email']} is already registered")
    user = repo.create(**data, role=role)
    print(f"OK -> {user['_id']} ({settings.data_path})")


if __name__ == "__main__":
    main()
