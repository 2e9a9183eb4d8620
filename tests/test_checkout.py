"""Tests for checkout totals, order placement and server cart sync."""

import asyncio
from decimal import Decimal

import pytest

from cartify.api.exceptions import AuthenticationRequired, ServerError
from cartify.services.cart import CartItem
from cartify.services.checkout import (
    order_payload,
    place_order,
    summarize,
    sync_add,
    sync_quantity,
    sync_remove,
)

ORDER = {
    "success": True,
    "order": {
        "_id": "o-1",
        "status": "pending",
        "totalAmount": 35,
        "paymentMethod": "card",
        "items": [
            {"product": "a", "productName": "A", "quantity": 2, "price": 10},
            {"product": "b", "productName": "B", "quantity": 3, "price": 5},
        ],
    },
}


def fill(cart):
    cart.add_to_cart({"id": "a", "name": "A", "price": 10, "quantity": 2})
    cart.add_to_cart({"id": "b", "name": "B", "price": 5, "quantity": 3})


class TestSummary:
    def test_summary_adds_shipping_and_tax(self, state):
        fill(state.cart)
        s = summarize(state.cart)
        assert s.subtotal == Decimal("35.00")
        assert s.shipping == Decimal("500.00")
        assert s.tax == Decimal("2.80")
        assert s.total == Decimal("537.80")

    def test_empty_cart_is_all_zero(self, state):
        s = summarize(state.cart)
        assert s.subtotal == s.shipping == s.tax == s.total == 0

    def test_payload(self, state):
        fill(state.cart)
        payload = order_payload(state.cart, "12 Allen Ave, Ikeja", "card", "ring twice")
        assert payload == {
            "items": [{"productId": "a", "quantity": 2}, {"productId": "b", "quantity": 3}],
            "shippingAddress": "12 Allen Ave, Ikeja",
            "paymentMethod": "card",
            "notes": "ring twice",
        }


class TestPlaceOrder:
    def test_success_clears_cart(self, buyer_state, backend):
        backend.on("POST", "/api/buyer/orders", status=201, body=ORDER)
        fill(buyer_state.cart)

        order = asyncio.run(place_order(buyer_state, "Lagos", "CARD"))

        assert order.id == "o-1"
        assert len(buyer_state.cart) == 0
        sent = backend.last_json()
        assert sent["paymentMethod"] == "card"
        assert sent["items"][0] == {"productId": "a", "quantity": 2}
        assert backend.requests[-1].headers["Authorization"] == "Bearer tok-buyer"

    def test_backend_failure_keeps_cart(self, buyer_state, backend):
        backend.on("POST", "/api/buyer/orders", status=500, body={"message": "db down"})
        fill(buyer_state.cart)

        with pytest.raises(ServerError):
            asyncio.run(place_order(buyer_state, "Lagos", "card"))
        assert buyer_state.cart.get_cart_items_count() == 5

    def test_requires_login(self, state):
        fill(state.cart)
        with pytest.raises(AuthenticationRequired):
            asyncio.run(place_order(state, "Lagos", "card"))

    def test_requires_buyer(self, seller_state):
        fill(seller_state.cart)
        with pytest.raises(ValueError, match="buyers"):
            asyncio.run(place_order(seller_state, "Lagos", "card"))

    @pytest.mark.parametrize(
        "address,method,match",
        [("Lagos", "bitcoin", "Payment method"), ("", "card", "address")],
    )
    def test_validation(self, buyer_state, backend, address, method, match):
        fill(buyer_state.cart)
        with pytest.raises(ValueError, match=match):
            asyncio.run(place_order(buyer_state, address, method))
        assert backend.requests == []

    def test_empty_cart(self, buyer_state):
        with pytest.raises(ValueError, match="empty"):
            asyncio.run(place_order(buyer_state, "Lagos", "card"))


class TestSync:
    ITEM = CartItem(id="a", name="A", price=Decimal("10"), quantity=2)

    def test_add_pushes_to_server(self, buyer_state, backend):
        backend.on("POST", "/api/buyer/cart/add", body={"success": True})
        assert asyncio.run(sync_add(buyer_state, self.ITEM)) is True
        assert backend.last_json() == {"productId": "a", "quantity": 2}

    def test_failure_is_reported_not_raised(self, buyer_state, backend):
        buyer_state.cart.add_to_cart(self.ITEM)
        backend.on("POST", "/api/buyer/cart/add", status=500)
        assert asyncio.run(sync_add(buyer_state, self.ITEM)) is False
        # local cart is left alone
        assert buyer_state.cart.get("a").quantity == 2

    def test_auth_failure_propagates(self, buyer_state, backend):
        backend.on("DELETE", "/api/buyer/cart/a", status=401)
        with pytest.raises(AuthenticationRequired):
            asyncio.run(sync_remove(buyer_state, "a"))
        assert not buyer_state.session.is_authenticated

    def test_logged_out_does_nothing(self, state, backend):
        assert asyncio.run(sync_add(state, self.ITEM)) is False
        assert backend.requests == []

    def test_quantity_zero_removes_on_server(self, buyer_state, backend):
        backend.on("DELETE", "/api/buyer/cart/a", body={"success": True})
        backend.on("PUT", "/api/buyer/cart/a", body={"success": True})
        asyncio.run(sync_quantity(buyer_state, "a", 0))
        asyncio.run(sync_quantity(buyer_state, "a", 4))
        assert [r.method for r in backend.requests] == ["DELETE", "PUT"]
        assert backend.last_json() == {"quantity": 4}
