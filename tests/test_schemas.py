"""Tests for response normalization at the API boundary."""

from decimal import Decimal

import pytest

from cartify.api.exceptions import InvalidResponse
from cartify.api.schemas import (
    parse_auth,
    parse_order,
    parse_orders,
    parse_product,
    parse_products,
    parse_user,
    unwrap,
)
from cartify.constants import PLACEHOLDER_IMAGE, UNKNOWN_SELLER


class TestProductImage:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"imageUrl": "u1", "image": "u2"}, "u1"),
            ({"image": "u2", "images": ["u3"]}, "u2"),
            ({"images": [{"url": "u4"}]}, "u4"),
            ({"images": [{"secure_url": "u5"}]}, "u5"),
            ({"images": ["u3"]}, "u3"),
            ({"images": []}, PLACEHOLDER_IMAGE),
            ({}, PLACEHOLDER_IMAGE),
        ],
    )
    def test_image_resolution(self, raw, expected):
        assert parse_product({"_id": "p1", **raw}).image == expected


class TestProductSeller:
    def test_embedded_seller_name(self):
        p = parse_product({"_id": "p1", "seller": {"_id": "s1", "name": "Bola", "businessName": "Bola Ltd"}})
        assert p.seller == "Bola"
        assert p.seller_id == "s1"

    def test_embedded_seller_business_name(self):
        assert parse_product({"_id": "p1", "seller": {"businessName": "Bola Ltd"}}).seller == "Bola Ltd"

    def test_seller_id_with_seller_name(self):
        p = parse_product({"_id": "p1", "seller": "s9", "sellerName": "Chi"})
        assert p.seller == "Chi"
        assert p.seller_id == "s9"

    def test_unknown_seller(self):
        assert parse_product({"_id": "p1"}).seller == UNKNOWN_SELLER


class TestProductFields:
    def test_price_parsing(self):
        assert parse_product({"id": 7, "price": "1500.50"}).price == Decimal("1500.50")
        assert parse_product({"id": 7, "price": 12.5}).price == Decimal("12.5")
        assert parse_product({"id": 7, "price": "n/a"}).price == 0
        assert parse_product({"id": 7}).price == 0

    def test_id_is_string(self):
        assert parse_product({"id": 7}).id == "7"

    def test_cart_line_with_embedded_product(self):
        p = parse_product({"_id": "line1", "quantity": 2, "product": {"_id": "p1", "name": "Shoe", "price": 10}})
        assert p.id == "p1"
        assert p.name == "Shoe"

    def test_missing_id_is_rejected(self):
        with pytest.raises(InvalidResponse):
            parse_product({"name": "No id"})

    def test_non_object_is_rejected(self):
        with pytest.raises(InvalidResponse):
            parse_product(["nope"])

    def test_envelopes(self):
        assert parse_product({"success": True, "product": {"_id": "p1"}}).id == "p1"
        products = parse_products({"success": True, "data": {"products": [{"_id": "a"}, {"_id": "b"}]}})
        assert [p.id for p in products] == ["a", "b"]
        assert parse_products([{"_id": "c"}])[0].id == "c"

    def test_products_must_be_a_list(self):
        with pytest.raises(InvalidResponse):
            parse_products({"products": {"_id": "a"}})


def test_unwrap_failed_envelope():
    with pytest.raises(InvalidResponse, match="nope"):
        unwrap({"success": False, "message": "nope"}, "products")


class TestUsersAndAuth:
    def test_parse_user_keeps_extra_fields(self):
        user = parse_user({"_id": "u1", "email": "a@b.co", "role": "seller", "businessName": "Shop"})
        assert user.id == "u1"
        assert user.model_dump()["businessName"] == "Shop"

    def test_parse_user_rejects_unknown_role(self):
        with pytest.raises(InvalidResponse):
            parse_user({"id": "u1", "email": "a@b.co", "role": "root"})

    def test_parse_auth(self):
        result = parse_auth(
            {
                "success": True,
                "token": "jwt",
                "user": {"id": "u1", "email": "a@b.co", "role": "buyer", "name": "A"},
                "redirectTo": "/buyer/dashboard",
            }
        )
        assert result.token == "jwt"
        assert result.user.role == "buyer"
        assert result.redirect_to == "/buyer/dashboard"

    def test_parse_auth_nested_data(self):
        result = parse_auth({"success": True, "data": {"token": "t", "user": {"id": "1", "email": "a@b.co", "role": "admin"}}})
        assert result.user.role == "admin"

    def test_parse_auth_requires_token(self):
        with pytest.raises(InvalidResponse):
            parse_auth({"success": True, "user": {"id": "1", "email": "a@b.co", "role": "buyer"}})


class TestOrders:
    RAW = {
        "_id": "o1",
        "status": "pending",
        "totalAmount": 35,
        "paymentMethod": "card",
        "seller": {"businessName": "Bola Ltd"},
        "items": [
            {"product": {"_id": "p1", "name": "Shoe"}, "quantity": 2, "price": 10},
            {"product": "p2", "productName": "Hat", "quantity": 3, "price": "5"},
        ],
    }

    def test_parse_order(self):
        order = parse_order({"success": True, "order": self.RAW})
        assert order.id == "o1"
        assert order.total_amount == 35
        assert order.seller == "Bola Ltd"
        assert [(i.product_id, i.name, i.quantity) for i in order.items] == [("p1", "Shoe", 2), ("p2", "Hat", 3)]

    def test_parse_orders(self):
        assert len(parse_orders({"orders": [self.RAW, self.RAW]})) == 2

    def test_zero_quantity_item_is_rejected(self):
        raw = dict(self.RAW, items=[{"product": "p1", "quantity": 0}])
        with pytest.raises(InvalidResponse):
            parse_order(raw)
