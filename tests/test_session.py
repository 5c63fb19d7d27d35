import pytest

from inkwell.auth import users as users_module
from inkwell.auth.passwords import dummy_hash
from inkwell.auth.session import SessionManager
from inkwell.auth.users import Role, UserRepository


@pytest.fixture()
def repo(store, clock):
    return UserRepository(store, clock=clock)


@pytest.fixture()
def sessions(store, repo, clock):
    return SessionManager(store, repo, secret_key="k", clock=clock)


def test_establish_and_resolve(sessions, repo):
    u = repo.create(name="A", email="a@x.com", password="secret1", age=30)
    handle = sessions.establish(u)

    current = sessions.resolve(handle)
    assert current.id == u["_id"]
    assert current.email == "a@x.com"
    assert current.role is Role.ADMIN


def test_session_record_holds_only_the_user_id(sessions, repo, store):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)

    [record] = store.collection("sessions").find()
    assert set(record) == {"_id", "userId", "createdAt"}
    assert record["userId"] == u["_id"]
    assert u["password"] not in handle


def test_resolve_refetches_role(sessions, repo):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)
    repo.update_fields(u["_id"], {"role": Role.USER.value})

    assert sessions.resolve(handle).role is Role.USER


def test_resolve_rejects_tampered_or_foreign_handles(sessions, store, repo):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)
    other = SessionManager(store, repo, secret_key="other-key")

    assert sessions.resolve("") is None
    assert sessions.resolve(handle + "x") is None
    assert other.resolve(handle) is None


def test_resolve_fails_once_user_is_deleted(sessions, repo):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)
    repo.delete(u["_id"])
    assert sessions.resolve(handle) is None


def test_terminate_is_idempotent(sessions, repo):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)

    sessions.terminate(handle)
    assert sessions.resolve(handle) is None
    sessions.terminate(handle)
    sessions.terminate("garbage")
    sessions.terminate("")


def test_missing_secret_is_refused(store, repo):
    with pytest.raises(RuntimeError):
        SessionManager(store, repo, secret_key="")


def test_expired_session_is_rejected_and_removed(sessions, repo, store, clock):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    handle = sessions.establish(u)

    clock.advance(hours=7, minutes=59)
    assert sessions.resolve(handle) is not None

    clock.advance(minutes=1)
    assert sessions.resolve(handle) is None
    assert store.collection("sessions").count() == 0


def test_new_login_prunes_stale_sessions(sessions, repo, store, clock):
    u = repo.create(name="A", email="a@x.com", password="secret1")
    for _ in range(3):
        sessions.establish(u)
    clock.advance(hours=9)

    fresh = sessions.establish(u)
    assert store.collection("sessions").count() == 1
    assert sessions.resolve(fresh).id == u["_id"]
    assert sessions.prune_expired() == 0


def test_authenticate_runs_a_verify_for_unknown_email(repo, monkeypatch):
    repo.create(name="A", email="a@x.com", password="secret1")
    seen = []
    real_verify = users_module.verify_password

    def _recording_verify(hash_value, plain):
        seen.append(hash_value)
        return real_verify(hash_value, plain)

    monkeypatch.setattr(users_module, "verify_password", _recording_verify)

    assert users_module.authenticate(repo, "ghost@x.com", "secret1") is None
    assert seen == [dummy_hash()]
    assert users_module.authenticate(repo, "a@x.com", "secret1")["email"] == "a@x.com"
    assert len(seen) == 2
