"""Shared pytest fixtures for the Cartify client tests."""

import json
import os
import tempfile

# settings are read at import time, point them at a throwaway directory first
_TMP = tempfile.mkdtemp(prefix="cartify-tests-")
os.environ["STORAGE_PATH"] = os.path.join(_TMP, "cartify.db")
os.environ["EXPORT_DIR"] = os.path.join(_TMP, "exports")
os.environ["BACKUP_DIR"] = os.path.join(_TMP, "backups")
os.environ["CARTIFY_API_URL"] = "https://api.test"
os.environ["API_RETRIES"] = "1"
os.environ["CURRENCY"] = "NGN"
os.environ["DECIMALS"] = "2"
os.environ["SHIPPING_FEE"] = "500"
os.environ["TAX_RATE"] = "0.08"

import httpx  # noqa: E402
import pytest  # noqa: E402

from cartify.services.app_state import AppState  # noqa: E402

BUYER = {"_id": "u-buyer", "email": "ada@example.com", "role": "buyer", "name": "Ada"}
SELLER = {"id": "u-seller", "email": "sam@example.com", "role": "seller", "name": "Sam"}


class FakeBackend:
    """Routes httpx requests to canned responses and records them."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, status=200, body=None, text=None, handler=None):
        if handler is None:
            if text is not None:
                handler = lambda request: httpx.Response(status, text=text)  # noqa: E731
            else:
                handler = lambda request: httpx.Response(status, json=body)  # noqa: E731
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "message": f"No route {request.url.path}"})
        return handler(request)

    def last_json(self):
        return json.loads(self.requests[-1].content)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cartify.db")


@pytest.fixture
def make_state(db_path, backend):
    def _make(scope="test"):
        return AppState(
            scope,
            db_path=db_path,
            base_url="https://api.test",
            transport=httpx.MockTransport(backend),
        )

    return _make


@pytest.fixture
def state(make_state):
    return make_state()


@pytest.fixture
def buyer_state(state):
    state.session.login(BUYER, "tok-buyer")
    return state


@pytest.fixture
def seller_state(state):
    state.session.login(SELLER, "tok-seller")
    return state
