import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import re
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from inkwell.app import create_app
from inkwell.auth.users import Role
from inkwell.core.config import Settings
from inkwell.infra.document_store import MemoryDocumentStore
from inkwell.infra.mailer import MailError, Mailer

HTML = {"accept": "text/html"}


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingMailer(Mailer):
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, *, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise MailError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})

    def last_token(self) -> str:
        assert self.sent, "no mail was sent"
        m = re.search(r"/auth/reset/([0-9a-f]+)", self.sent[-1]["html"])
        assert m, self.sent[-1]["html"]
        return m.group(1)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def settings() -> Settings:
    return Settings(secret_key="test-secret", base_url="http://testserver")


@pytest.fixture()
def app(settings, store, mailer, clock):
    return create_app(settings=settings, store=store, mailer=mailer, clock=clock)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def users(app):
    return app.state.users


@pytest.fixture()
def make_user(users):
    def _make(email="a@x.com", password="secret1", *, name="A", age=30, role=Role.ADMIN):
        return users.create(name=name, email=email, password=password, age=age, role=role)

    return _make


def login(client: TestClient, email: str, password: str):
    return client.post(
        "/auth/login",
        data={"email": email, "password": password},
        follow_redirects=False,
    )
