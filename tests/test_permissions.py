from types import SimpleNamespace

import pytest

from inkwell.auth.users import CurrentUser, Role
from inkwell.errors import Forbidden, Unauthenticated
from inkwell.permissions import current_user_optional, require_role, require_user


class _FakeSessions:
    def __init__(self, user=None):
        self.user = user
        self.calls = 0

    def resolve(self, token):
        self.calls += 1
        return self.user if token else None


def _request(sessions, cookies=None):
    app = SimpleNamespace(state=SimpleNamespace(sessions=sessions, settings=SimpleNamespace(cookie_name="sid")))
    return SimpleNamespace(app=app, state=SimpleNamespace(), cookies=cookies or {})


def _user(role):
    return CurrentUser(id="u1", name="A", email="a@x.com", role=role)


def test_require_user_without_session_is_unauthenticated():
    with pytest.raises(Unauthenticated):
        require_user(_request(_FakeSessions()))


def test_require_user_attaches_user_and_resolves_once():
    sessions = _FakeSessions(_user(Role.ADMIN))
    request = _request(sessions, {"sid": "token"})

    u = require_user(request)
    assert request.state.user is u
    assert current_user_optional(request) is u
    assert sessions.calls == 1


def test_require_role_passes_matching_role():
    u = _user(Role.ADMIN)
    assert require_role(Role.ADMIN)(u) is u


@pytest.mark.parametrize("role", [Role.USER, None])
def test_require_role_forbids_other_roles(role):
    with pytest.raises(Forbidden):
        require_role(Role.ADMIN)(_user(role))


def test_role_parse_is_closed():
    assert Role.parse("admin") is Role.ADMIN
    assert Role.parse(" USER ") is Role.USER
    assert Role.parse("superuser") is None
    assert Role.parse(None) is None
