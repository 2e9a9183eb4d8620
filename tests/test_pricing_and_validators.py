from decimal import Decimal

import pytest

from cartify.services.pricing import calc_commission, round_money, seller_net
from cartify.utils.formatters import conversation_line, money, order_text, product_line, user_line
from cartify.api.schemas import parse_order, parse_product
from cartify.utils.validators import (
    parse_amount,
    parse_quantity,
    require_bvn,
    require_choice,
    require_email,
    require_password,
    require_payment_method,
    require_signup_fields,
)


@pytest.mark.parametrize(
    "amount,expected",
    [
        ("2.345", "2.34"),
        ("2.355", "2.36"),
        ("0.125", "0.12"),
        ("10", "10.00"),
    ],
)
def test_round_money_is_bankers(amount, expected):
    assert round_money(Decimal(amount)) == Decimal(expected)


def test_round_money_places():
    assert round_money(Decimal("1.5"), 0) == Decimal("2")
    assert round_money(Decimal("2.5"), 0) == Decimal("2")


def test_commission():
    assert calc_commission(Decimal("1000")) == Decimal("50.00")
    assert seller_net(Decimal("1000")) == Decimal("950.00")


class TestParsing:
    @pytest.mark.parametrize("text,expected", [("12", "12"), (" 2,5 ", "2.5"), ("0.01", "0.01")])
    def test_amount(self, text, expected):
        assert parse_amount(text) == Decimal(expected)

    @pytest.mark.parametrize("text", ["0", "-3", "abc", "nan", "inf"])
    def test_bad_amount(self, text):
        with pytest.raises(ValueError):
            parse_amount(text)

    def test_quantity(self):
        assert parse_quantity(" 3 ") == 3
        assert parse_quantity("0") == 0
        with pytest.raises(ValueError, match="whole number"):
            parse_quantity("1.5")


class TestValidators:
    def test_email_normalized(self):
        assert require_email("  Ada@Example.COM ") == "ada@example.com"

    @pytest.mark.parametrize("email", ["", "ada", "ada@", "a b@c.d", None])
    def test_bad_email(self, email):
        with pytest.raises(ValueError):
            require_email(email)

    def test_payment_method(self):
        assert require_payment_method(" Cash_On_Delivery ") == "cash_on_delivery"
        with pytest.raises(ValueError):
            require_payment_method("crypto")

    def test_signup_buyer_needs_contact(self):
        data = {"email": "a@b.co", "password": "x", "role": "buyer", "name": "A"}
        with pytest.raises(ValueError, match="phone and address"):
            require_signup_fields(data)
        require_signup_fields(dict(data, phone="1", address="Lagos"))

    def test_signup_seller_needs_business(self):
        data = {"email": "a@b.co", "password": "x", "role": "seller", "name": "A"}
        with pytest.raises(ValueError, match="business"):
            require_signup_fields(data)
        require_signup_fields(
            dict(data, businessName="Shop", businessType="fashion", businessAddress="Abuja")
        )

    def test_signup_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown role"):
            require_signup_fields({"email": "a@b.co", "password": "x", "role": "god", "name": "A"})

    def test_signup_missing_fields(self):
        with pytest.raises(ValueError, match="email, password"):
            require_signup_fields({"role": "buyer", "name": "A"})


def test_money_format():
    assert money(Decimal("1234.5")) == "1,234.50 NGN"


def test_product_line_escapes_html():
    p = parse_product({"_id": "p<1>", "name": "Tom & Jerry", "price": 3, "sellerName": "A<b>"})
    line = product_line(p)
    assert "p&lt;1&gt;" in line
    assert "Tom &amp; Jerry" in line
    assert "A&lt;b&gt;" in line


def test_order_text():
    order = parse_order(
        {"_id": "o1", "status": "shipped", "totalAmount": 20, "items": [{"product": "p", "name": "Pen", "quantity": 2, "price": 10}]}
    )
    text = order_text(order)
    assert "Order o1" in text
    assert "Pen × 2" in text
    assert "20.00 NGN" in text


@pytest.mark.parametrize("bvn", ["1234567890", "123456789012", "1234567890a", ""])
def test_bvn_must_be_11_digits(bvn):
    with pytest.raises(ValueError, match="11-digit"):
        require_bvn(bvn)


def test_bvn_ok():
    assert require_bvn(" 12345678901 ") == "12345678901"


def test_password_length():
    assert require_password("secret") == "secret"
    with pytest.raises(ValueError, match="at least 6"):
        require_password("12345")


def test_choice_is_case_insensitive():
    assert require_choice(" Shipped ", ("pending", "shipped"), "status") == "shipped"
    with pytest.raises(ValueError, match="status must be one of: pending, shipped"):
        require_choice("lost", ("pending", "shipped"), "status")


def test_seller_signup_checks_business_type():
    data = {
        "name": "Sam",
        "email": "sam@example.com",
        "password": "secret1",
        "role": "seller",
        "businessName": "Sam",
        "businessType": "groceries",
        "businessAddress": "Yaba",
    }
    with pytest.raises(ValueError, match="business type"):
        require_signup_fields(data)


def test_conversation_line_without_messages():
    line = conversation_line({"id": "c1", "buyer": {"name": "<Ada>"}})
    assert "&lt;Ada&gt;" in line
    assert "No messages yet" in line
    assert "🔴" not in line


def test_user_line_marks_inactive():
    assert "⛔" in user_line({"_id": "u1", "name": "Sam", "status": "inactive"})
    assert "⛔" not in user_line({"_id": "u2", "name": "Ada", "isActive": True})
