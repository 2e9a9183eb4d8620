"""Client-side cart.

The local cart is the authoritative copy for display and checkout. It makes
no network calls; pushing changes to the server cart is a separate,
best-effort step (see ``cartify.services.checkout``) and the two are never
reconciled.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, List, Optional

from cartify.api.schemas import Product
from cartify.constants import KEY_CART, PLACEHOLDER_IMAGE, UNKNOWN_SELLER
from cartify.db.sqlite import Storage

logger = logging.getLogger(__name__)


@dataclass
class CartItem:
    id: str
    name: str
    price: Decimal
    image: str = PLACEHOLDER_IMAGE
    seller: str = UNKNOWN_SELLER
    quantity: int = 1

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.price = Decimal(str(self.price))
        self.quantity = int(self.quantity)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            id=data["id"],
            name=data.get("name") or "Product",
            price=data.get("price", 0),
            image=data.get("image") or PLACEHOLDER_IMAGE,
            seller=data.get("seller") or UNKNOWN_SELLER,
            quantity=data.get("quantity", 1),
        )

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            image=product.image,
            seller=product.seller,
            quantity=quantity,
        )


def _coerce(item: Any) -> CartItem:
    if isinstance(item, CartItem):
        return replace(item)
    if isinstance(item, Product):
        return CartItem.from_product(item)
    if isinstance(item, dict):
        return CartItem.from_dict(item)
    raise TypeError(f"Cannot add {type(item).__name__} to cart")


class CartStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._items: List[CartItem] = []
        self._load()

    def _load(self) -> None:
        try:
            raw = self._storage.get(KEY_CART, [])
            items = [CartItem.from_dict(d) for d in raw or []]
        except (ValueError, KeyError, TypeError, AttributeError, InvalidOperation) as e:
            logger.warning("Stored cart for scope %s is unreadable, starting empty: %s", self._storage.scope, e)
            self._items = []
            return
        self._items = []
        for it in items:
            if it.quantity >= 1:
                self._merge(it, it.quantity)

    def _save(self) -> None:
        self._storage.set(KEY_CART, [it.to_dict() for it in self._items])

    def _find(self, item_id) -> Optional[CartItem]:
        key = str(item_id)
        for it in self._items:
            if it.id == key:
                return it
        return None

    def _merge(self, item: CartItem, quantity: int) -> None:
        quantity = quantity if quantity >= 1 else 1
        existing = self._find(item.id)
        if existing:
            existing.quantity += quantity
        else:
            item.quantity = quantity
            self._items.append(item)

    @property
    def items(self) -> List[CartItem]:
        return [replace(it) for it in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id) -> bool:
        return self._find(item_id) is not None

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items)

    def get(self, item_id) -> Optional[CartItem]:
        it = self._find(item_id)
        return replace(it) if it else None

    def add_to_cart(self, item: Any, quantity: Optional[int] = None) -> CartItem:
        """Add an item, or bump the quantity of the entry with the same id."""
        new = _coerce(item)
        self._merge(new, new.quantity if quantity is None else int(quantity))
        self._save()
        return self.get(new.id)

    def update_quantity(self, item_id, new_quantity: int) -> None:
        if new_quantity < 1:
            self.remove_from_cart(item_id)
            return
        it = self._find(item_id)
        if not it:
            return
        it.quantity = int(new_quantity)
        self._save()

    def remove_from_cart(self, item_id) -> None:
        it = self._find(item_id)
        if not it:
            return
        self._items.remove(it)
        self._save()

    def clear_cart(self) -> None:
        self._items = []
        self._storage.remove(KEY_CART)

    def get_cart_total(self) -> Decimal:
        return sum((it.line_total for it in self._items), Decimal("0"))

    def get_cart_items_count(self) -> int:
        return sum(it.quantity for it in self._items)
