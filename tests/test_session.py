"""Client session context tests."""

import pytest

from chatgate.client.session import SessionContext, SessionNotLoadedError, SessionStorage
from chatgate.schemas.auth import PublicUser

USER = PublicUser(id="u1", email="a@b.com", name="A")


@pytest.fixture()
def storage(tmp_path):
    return SessionStorage(tmp_path / "session.json")


def test_state_is_unavailable_until_loaded(storage):
    ctx = SessionContext(storage)
    assert not ctx.ready
    with pytest.raises(SessionNotLoadedError):
        ctx.is_authenticated
    ctx.load()
    assert ctx.ready
    assert not ctx.is_authenticated
    assert ctx.user is None


def test_login_persists_across_loads(storage):
    SessionContext(storage).load().login("tok-123", USER)

    again = SessionContext(storage).load()
    assert again.is_authenticated
    assert again.token == "tok-123"
    assert again.user == USER


def test_token_without_user_is_not_a_session(storage):
    storage.write({"token": "tok-123"})
    assert not SessionContext(storage).load().is_authenticated


def test_corrupt_storage_loads_empty(storage):
    storage.path.write_text("{not json")
    ctx = SessionContext(storage).load()
    assert not ctx.is_authenticated


def test_logout_keeps_chat_history(storage):
    ctx = SessionContext(storage).load()
    ctx.login("tok-123", USER)
    ctx.append_message("user", "hello")
    ctx.append_message("assistant", "hi!")
    ctx.logout()

    again = SessionContext(storage).load()
    assert not again.is_authenticated
    assert [(m.role, m.content) for m in again.messages()] == [
        ("user", "hello"),
        ("assistant", "hi!"),
    ]


def test_clear_messages(storage):
    ctx = SessionContext(storage).load()
    ctx.append_message("user", "hello")
    ctx.clear_messages()
    assert ctx.messages() == []


def test_cookie_headers(storage):
    ctx = SessionContext(storage).load()
    assert ctx.cookie_header() is None
    ctx.login("tok-123", USER)
    assert ctx.cookie_header() == "token=tok-123; Path=/"
    assert ctx.clear_cookie_header() == "token=; Path=/; Expires=Thu, 01 Jan 1970 00:00:00 GMT"
