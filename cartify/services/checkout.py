"""Checkout: order summary, order placement and server cart sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from cartify.api.exceptions import AuthenticationRequired, CartifyError
from cartify.api.schemas import Order
from cartify.config import settings
from cartify.services.app_state import AppState
from cartify.services.cart import CartItem, CartStore
from cartify.services.pricing import round_money
from cartify.utils.validators import require_payment_method

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderSummary:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def summarize(cart: CartStore) -> OrderSummary:
    subtotal = cart.get_cart_total()
    if not len(cart):
        zero = round_money(Decimal("0"))
        return OrderSummary(zero, zero, zero, zero)
    shipping = settings.shipping_fee
    tax = subtotal * settings.tax_rate
    return OrderSummary(
        subtotal=round_money(subtotal),
        shipping=round_money(shipping),
        tax=round_money(tax),
        total=round_money(subtotal + shipping + tax),
    )


def order_payload(
    cart: CartStore,
    shipping_address: Any,
    payment_method: str,
    notes: Optional[str] = None,
) -> dict:
    payload = {
        "items": [{"productId": it.id, "quantity": it.quantity} for it in cart.items],
        "shippingAddress": shipping_address,
        "paymentMethod": payment_method,
    }
    if notes:
        payload["notes"] = notes
    return payload


async def place_order(
    state: AppState,
    shipping_address: Any,
    payment_method: str,
    notes: Optional[str] = None,
) -> Order:
    """Create an order from the local cart and empty the cart on success.

    Raises:
        AuthenticationRequired: Nobody is logged in
        ValueError: Not a buyer, empty cart, missing address or bad payment method
        CartifyError: The backend rejected the order (cart is left untouched)
    """
    if not state.session.is_authenticated:
        raise AuthenticationRequired("Please log in to check out.")
    if not state.session.is_buyer:
        raise ValueError("Only buyers can place orders")
    if not len(state.cart):
        raise ValueError("Your cart is empty")
    if not shipping_address:
        raise ValueError("Shipping address is required")
    method = require_payment_method(payment_method)

    payload = order_payload(state.cart, shipping_address, method, notes)
    order = await state.buyer.create_order(payload)

    state.cart.clear_cart()
    logger.info("Order %s placed by %s: %s items, total %s", order.id, state.session.user.email, len(payload["items"]), order.total_amount)
    return order


async def _sync(action: str, call) -> bool:
    try:
        await call
    except AuthenticationRequired:
        raise
    except CartifyError as e:
        logger.warning("Server cart %s failed, keeping local cart: %s", action, e)
        return False
    return True


async def sync_add(state: AppState, item: CartItem) -> bool:
    """Best-effort push of a local add to the server cart.

    The local cart is not reconciled with the server response.
    """
    if not state.session.is_authenticated:
        return False
    return await _sync("add", state.buyer.add_to_cart(item.id, item.quantity))


async def sync_quantity(state: AppState, item_id: str, quantity: int) -> bool:
    if not state.session.is_authenticated:
        return False
    if quantity < 1:
        return await _sync("remove", state.buyer.remove_from_cart(str(item_id)))
    return await _sync("update", state.buyer.update_cart_item(str(item_id), quantity))


async def sync_remove(state: AppState, item_id: str) -> bool:
    if not state.session.is_authenticated:
        return False
    return await _sync("remove", state.buyer.remove_from_cart(str(item_id)))
