"""Tests for the session store."""

import pytest

from cartify.constants import KEY_CART, KEY_PREFERENCES, KEY_THEME, KEY_TOKEN, KEY_USER
from cartify.db.sqlite import Storage
from cartify.services.session import SessionStore

from conftest import BUYER, SELLER


@pytest.fixture
def storage(db_path):
    return Storage("session-test", db_path)


@pytest.fixture
def session(storage):
    return SessionStore(storage)


def test_starts_logged_out(session):
    assert session.user is None
    assert session.token is None
    assert not session.is_authenticated


def test_login_stores_user_and_token(session, storage):
    user = session.login(BUYER, "tok")

    assert user.id == "u-buyer"
    assert session.is_authenticated
    assert session.is_buyer and not session.is_seller and not session.is_admin
    assert storage.get(KEY_TOKEN) == "tok"
    assert storage.get(KEY_USER)["email"] == "ada@example.com"


def test_session_is_restored_from_storage(session, storage):
    session.login(SELLER, "tok-s")
    restored = SessionStore(storage)
    assert restored.is_authenticated
    assert restored.is_seller
    assert restored.user.name == "Sam"


def test_user_without_token_is_not_authenticated(session):
    session.login(BUYER)
    assert session.user is not None
    assert not session.is_authenticated


def test_unparseable_user_clears_auth_keys(storage):
    storage.set(KEY_TOKEN, "tok")
    storage.set_raw(KEY_USER, "{broken")

    session = SessionStore(storage)

    assert not session.is_authenticated
    assert storage.get_raw(KEY_TOKEN) is None
    assert storage.get_raw(KEY_USER) is None


def test_user_without_role_clears_auth_keys(storage):
    storage.set(KEY_TOKEN, "tok")
    storage.set(KEY_USER, {"id": "1", "email": "x@example.com"})
    session = SessionStore(storage)
    assert session.user is None
    assert storage.get_raw(KEY_TOKEN) is None


def test_logout_clears_session_cart_and_preferences_but_keeps_theme(session, storage):
    session.login(BUYER, "tok")
    storage.set(KEY_CART, [])
    session.update_preferences(currency="NGN")
    session.theme = "dark"

    session.logout()

    assert not session.is_authenticated
    for key in (KEY_TOKEN, KEY_USER, KEY_CART, KEY_PREFERENCES):
        assert storage.get_raw(key) is None
    assert storage.get(KEY_THEME) == "dark"


def test_expire_only_drops_credentials(session, storage):
    session.login(BUYER, "tok")
    storage.set(KEY_CART, [{"id": "a", "price": "1"}])
    session.expire()
    assert session.user is None and session.token is None
    assert storage.get_raw(KEY_CART) is not None


def test_update_user_replaces_record(session, storage):
    session.login(BUYER, "tok")
    session.update_user({**BUYER, "name": "Ada L."})
    assert session.user.name == "Ada L."
    assert SessionStore(storage).user.name == "Ada L."


def test_has_role(session):
    session.login(SELLER, "tok")
    assert session.has_role("seller")
    assert not session.has_role("admin")


def test_preferences_merge(session):
    session.update_preferences(a=1)
    session.update_preferences(b=2)
    assert session.preferences == {"a": 1, "b": 2}


def test_theme_defaults_and_validation(session):
    assert session.theme == "light"
    session.theme = "DARK"
    assert session.theme == "dark"
    with pytest.raises(ValueError):
        session.theme = "neon"
