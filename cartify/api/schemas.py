"""Response models for the Cartify backend.

The backend returns loosely shaped JSON: ids as ``_id`` or ``id``, product
images in several places, sellers as ids, names or embedded objects, and
payloads wrapped in ``{"success": ..., "<name>": ...}`` envelopes. Everything
is normalized here once so callers only ever see these models.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cartify.constants import PLACEHOLDER_IMAGE, UNKNOWN_SELLER

from .exceptions import InvalidResponse

Role = Literal["buyer", "seller", "admin"]


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: str
    role: Role
    name: str = ""


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = "Product"
    price: Decimal = Decimal("0")
    image: str = PLACEHOLDER_IMAGE
    seller: str = UNKNOWN_SELLER
    seller_id: Optional[str] = None
    category: str = "other"
    stock: int = 0
    description: str = ""


class OrderItem(BaseModel):
    product_id: str
    name: str = "Product"
    quantity: int = Field(ge=1)
    price: Decimal = Decimal("0")


class Order(BaseModel):
    id: str
    status: str = "pending"
    total_amount: Decimal = Decimal("0")
    items: List[OrderItem] = Field(default_factory=list)
    seller: str = UNKNOWN_SELLER
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    shipping_address: Any = None
    created_at: Optional[str] = None


class AuthResult(BaseModel):
    token: str
    user: User
    redirect_to: Optional[str] = None


def unwrap(payload: Any, *keys: str) -> Any:
    """Strip a ``{"success": ..., key: value}`` envelope, looking into ``data`` too."""
    if isinstance(payload, dict):
        if payload.get("success") is False:
            raise InvalidResponse(payload.get("message") or "Request was not successful")
        for key in keys:
            if key in payload:
                return payload[key]
        if isinstance(payload.get("data"), (dict, list)):
            return unwrap(payload["data"], *keys)
    return payload


def _ident(obj: dict) -> Optional[str]:
    value = obj.get("_id") or obj.get("id")
    return str(value) if value not in (None, "") else None


def _decimal(value: Any) -> Decimal:
    # parseFloat(x) || 0
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def resolve_image(product: dict) -> str:
    if product.get("imageUrl"):
        return str(product["imageUrl"])
    if product.get("image"):
        return str(product["image"])
    images = product.get("images")
    if isinstance(images, list) and images:
        first = images[0]
        if isinstance(first, dict):
            url = first.get("url") or first.get("secure_url")
            if url:
                return str(url)
        elif first:
            return str(first)
    return PLACEHOLDER_IMAGE


def resolve_seller(product: dict) -> tuple[str, Optional[str]]:
    """Return (display name, seller id)."""
    seller = product.get("seller")
    if isinstance(seller, dict):
        name = seller.get("name") or seller.get("businessName") or "Seller"
        return str(name), _ident(seller)
    seller_id = str(seller) if isinstance(seller, (str, int)) and seller != "" else None
    return str(product.get("sellerName") or UNKNOWN_SELLER), seller_id


def _validate(model, data: dict, what: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidResponse(f"Malformed {what} in response: {e.error_count()} error(s)") from e


def parse_user(raw: Any) -> User:
    raw = unwrap(raw, "user")
    if not isinstance(raw, dict):
        raise InvalidResponse("Expected a user object")
    data = dict(raw)
    data["id"] = _ident(raw)
    data.pop("_id", None)
    return _validate(User, data, "user")


def parse_auth(payload: Any) -> AuthResult:
    if not isinstance(payload, dict):
        raise InvalidResponse("Expected an auth response object")
    body = unwrap(payload)
    if not isinstance(body, dict) or not body.get("token"):
        raise InvalidResponse("Auth response has no token")
    return AuthResult(
        token=str(body["token"]),
        user=parse_user(unwrap(body, "user")),
        redirect_to=body.get("redirectTo"),
    )


def parse_product(raw: Any) -> Product:
    raw = unwrap(raw, "product")
    if not isinstance(raw, dict):
        raise InvalidResponse("Expected a product object")
    # cart lines from the server embed the product
    product = raw["product"] if isinstance(raw.get("product"), dict) else raw
    seller, seller_id = resolve_seller(product)
    data = {
        "id": _ident(product) or _ident(raw),
        "name": product.get("name") or "Product",
        "price": _decimal(product.get("price")),
        "image": resolve_image(product),
        "seller": seller,
        "seller_id": seller_id,
        "category": product.get("category") or "other",
        "stock": _int(product.get("stock")),
        "description": product.get("description") or "",
    }
    return _validate(Product, data, "product")


def parse_products(payload: Any) -> List[Product]:
    items = unwrap(payload, "products", "items")
    if not isinstance(items, list):
        raise InvalidResponse("Expected a list of products")
    return [parse_product(p) for p in items]


def _parse_order_item(raw: Any) -> dict:
    if not isinstance(raw, dict):
        raise InvalidResponse("Expected an order item object")
    product = raw.get("product")
    if isinstance(product, dict):
        product_id = _ident(product)
        name = raw.get("productName") or product.get("name")
    else:
        product_id = str(product) if product else raw.get("productId")
        name = raw.get("productName") or raw.get("name")
    return {
        "product_id": product_id,
        "name": name or "Product",
        "quantity": _int(raw.get("quantity"), 1),
        "price": _decimal(raw.get("price")),
    }


def parse_order(raw: Any) -> Order:
    raw = unwrap(raw, "order")
    if not isinstance(raw, dict):
        raise InvalidResponse("Expected an order object")
    seller = raw.get("seller")
    if isinstance(seller, dict):
        seller_name = seller.get("businessName") or seller.get("name") or "Seller"
    else:
        seller_name = UNKNOWN_SELLER
    data = {
        "id": _ident(raw),
        "status": raw.get("status") or "pending",
        "total_amount": _decimal(raw.get("totalAmount", raw.get("total"))),
        "items": [_parse_order_item(i) for i in raw.get("items") or []],
        "seller": seller_name,
        "payment_method": raw.get("paymentMethod"),
        "payment_status": raw.get("paymentStatus"),
        "shipping_address": raw.get("shippingAddress"),
        "created_at": raw.get("createdAt"),
    }
    return _validate(Order, data, "order")


def parse_orders(payload: Any) -> List[Order]:
    items = unwrap(payload, "orders")
    if not isinstance(items, list):
        raise InvalidResponse("Expected a list of orders")
    return [parse_order(o) for o in items]
