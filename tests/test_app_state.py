"""Tests for AppState wiring: login, restore and logout."""

import asyncio

import httpx
import pytest

from cartify.api.exceptions import AuthenticationRequired, NetworkError
from cartify.services.app_state import signup_data

from conftest import BUYER

LOGIN_OK = {"success": True, "message": "Login successful", "token": "jwt-1", "user": BUYER}


def test_login_stores_session(state, backend):
    backend.on("POST", "/api/auth/login", body=LOGIN_OK)

    user = asyncio.run(state.login(" Ada@Example.com ", "secret"))

    assert user.email == "ada@example.com"
    assert state.session.token == "jwt-1"
    assert backend.last_json() == {"email": "ada@example.com", "password": "secret"}


def test_bad_credentials(state, backend):
    backend.on("POST", "/api/auth/login", status=401, body={"success": False, "message": "Invalid credentials"})
    with pytest.raises(AuthenticationRequired, match="Invalid credentials"):
        asyncio.run(state.login("ada@example.com", "wrong"))
    assert not state.session.is_authenticated


def test_login_validates_email_before_calling(state, backend):
    with pytest.raises(ValueError):
        asyncio.run(state.login("not-an-email", "x"))
    assert backend.requests == []


def test_register(state, backend):
    backend.on("POST", "/api/auth/register", status=201, body=LOGIN_OK)
    data = {
        "name": "Ada",
        "email": "ada@example.com",
        "password": "secret1",
        "role": "buyer",
        "phone": "0800",
        "address": "Lagos",
    }
    asyncio.run(state.register(data, "secret1"))
    assert state.session.is_buyer


def test_register_password_mismatch(state, backend):
    data = {"name": "A", "email": "a@b.co", "password": "x", "role": "buyer", "phone": "1", "address": "2"}
    with pytest.raises(ValueError, match="Passwords do not match"):
        asyncio.run(state.register(data, "y"))
    assert backend.requests == []


def test_restore_refreshes_user(buyer_state, backend):
    backend.on("GET", "/api/auth/me", body={"success": True, "user": {**BUYER, "name": "Ada Lovelace"}})
    assert asyncio.run(buyer_state.restore()) is True
    assert buyer_state.session.user.name == "Ada Lovelace"


@pytest.mark.parametrize("status", [401, 500])
def test_restore_failure_logs_out(buyer_state, backend, status):
    backend.on("GET", "/api/auth/me", status=status)
    buyer_state.cart.add_to_cart({"id": "a", "name": "A", "price": 1})

    assert asyncio.run(buyer_state.restore()) is False
    assert not buyer_state.session.is_authenticated
    assert len(buyer_state.cart) == 0
    assert backend.calls("POST", "/api/auth/logout") == []


def test_restore_without_token_skips_network(state, backend):
    assert asyncio.run(state.restore()) is False
    assert backend.requests == []


def test_any_401_expires_session(buyer_state, backend):
    backend.on("GET", "/api/buyer/orders", status=401)
    with pytest.raises(AuthenticationRequired):
        asyncio.run(buyer_state.buyer.get_orders())
    assert buyer_state.session.token is None


def test_network_error_keeps_session(buyer_state):
    def down(request):
        raise httpx.ConnectError("down", request=request)

    buyer_state.api._transport = httpx.MockTransport(down)
    with pytest.raises(NetworkError):
        asyncio.run(buyer_state.buyer.get_orders())
    assert buyer_state.session.is_authenticated


def test_logout_clears_session_and_cart(make_state, buyer_state):
    buyer_state.cart.add_to_cart({"id": "a", "name": "A", "price": 1})
    asyncio.run(buyer_state.logout())

    assert not buyer_state.session.is_authenticated
    assert len(buyer_state.cart) == 0
    fresh = make_state()
    assert not fresh.session.is_authenticated
    assert len(fresh.cart) == 0


def test_scopes_do_not_share_carts(make_state):
    a = make_state("tg:1")
    b = make_state("tg:2")
    a.cart.add_to_cart({"id": "x", "name": "X", "price": 1})
    assert len(b.cart) == 0


def test_logout_tells_the_backend(buyer_state, backend):
    backend.on("POST", "/api/auth/logout", body={"success": True})
    asyncio.run(buyer_state.logout())

    [call] = backend.calls("POST", "/api/auth/logout")
    assert call.headers["Authorization"] == "Bearer tok-buyer"
    assert not buyer_state.session.is_authenticated


def test_logout_survives_backend_failure(buyer_state, backend):
    backend.on("POST", "/api/auth/logout", status=500)
    asyncio.run(buyer_state.logout())
    assert not buyer_state.session.is_authenticated


def test_logout_when_logged_out_skips_network(state, backend):
    asyncio.run(state.logout())
    assert backend.requests == []


def test_register_short_password(state, backend):
    data = {"name": "A", "email": "a@b.co", "password": "abc", "role": "buyer", "phone": "1", "address": "2"}
    with pytest.raises(ValueError, match="at least 6"):
        asyncio.run(state.register(data, "abc"))
    assert backend.requests == []


def test_signup_data_for_seller():
    data = signup_data("seller", " Sam Stores ", "sam@example.com", "secret1",
                       business_type="Fashion", business_address="Yaba")
    assert data == {
        "name": "Sam Stores",
        "email": "sam@example.com",
        "password": "secret1",
        "role": "seller",
        "businessName": "Sam Stores",
        "businessType": "fashion",
        "businessAddress": "Yaba",
    }
