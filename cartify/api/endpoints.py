"""Per-role endpoint groups of the Cartify backend."""

from decimal import Decimal
from typing import Any, Callable, List, Optional

from cartify.constants import ROLE_BUYER

from .client import ApiClient
from .schemas import (
    AuthResult,
    Order,
    Product,
    User,
    parse_auth,
    parse_order,
    parse_orders,
    parse_product,
    parse_products,
    parse_user,
)


class _Group:
    prefix = "/api"

    def __init__(self, client: ApiClient):
        self.client = client

    def _url(self, path: str = "") -> str:
        return f"{self.prefix}{path}"


class AuthAPI(_Group):
    prefix = "/api/auth"

    async def login(self, email: str, password: str) -> AuthResult:
        payload = await self.client.post(self._url("/login"), {"email": email.strip().lower(), "password": password})
        return parse_auth(payload)

    async def register(self, data: dict) -> AuthResult:
        payload = await self.client.post(self._url("/register"), data)
        return parse_auth(payload)

    async def get_current_user(self) -> User:
        return parse_user(await self.client.get(self._url("/me")))

    async def logout(self) -> Any:
        return await self.client.post(self._url("/logout"))


class UserAPI(_Group):
    prefix = "/api/user"

    async def get_profile(self) -> User:
        return parse_user(await self.client.get(self._url("/profile")))

    async def update_notifications(self, email: bool, push: bool, sms: bool) -> Any:
        return await self.client.put(self._url("/notifications"), {"email": email, "push": push, "sms": sms})

    async def update_password(self, current_password: str, new_password: str) -> Any:
        return await self.client.put(
            self._url("/password"),
            {"currentPassword": current_password, "newPassword": new_password},
        )


class BuyerAPI(_Group):
    prefix = "/api/buyer"

    async def get_products(self, category: Optional[str] = None, page: Optional[int] = None) -> List[Product]:
        params = {}
        if category:
            params["category"] = category
        if page:
            params["page"] = page
        return parse_products(await self.client.get(self._url("/products"), params=params or None))

    async def search_products(self, query: str) -> List[Product]:
        return parse_products(await self.client.get(self._url("/products/search"), params={"q": query}))

    async def get_product(self, product_id: str) -> Product:
        return parse_product(await self.client.get(self._url(f"/products/{product_id}")))

    async def get_orders(self) -> List[Order]:
        return parse_orders(await self.client.get(self._url("/orders")))

    async def get_order(self, order_id: str) -> Order:
        return parse_order(await self.client.get(self._url(f"/orders/{order_id}")))

    async def create_order(self, payload: dict) -> Order:
        return parse_order(await self.client.post(self._url("/orders"), payload))

    async def cancel_order(self, order_id: str) -> Order:
        return parse_order(await self.client.put(self._url(f"/orders/{order_id}/cancel")))

    # server-side cart

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> Any:
        return await self.client.post(self._url("/cart/add"), {"productId": product_id, "quantity": quantity})

    async def update_cart_item(self, product_id: str, quantity: int) -> Any:
        return await self.client.put(self._url(f"/cart/{product_id}"), {"quantity": quantity})

    async def remove_from_cart(self, product_id: str) -> Any:
        return await self.client.delete(self._url(f"/cart/{product_id}"))

    async def clear_cart(self) -> Any:
        return await self.client.delete(self._url("/cart"))


class SellerAPI(_Group):
    prefix = "/api/seller"

    async def get_products(self) -> List[Product]:
        return parse_products(await self.client.get(self._url("/products")))

    async def create_product(self, data: dict, images: Optional[dict] = None) -> Product:
        return parse_product(await self.client.post(self._url("/products"), data, files=images))

    async def update_product_status(self, product_id: str, status: str) -> Any:
        return await self.client.put(self._url(f"/products/{product_id}/status"), {"status": status})

    async def get_orders(self) -> List[Order]:
        return parse_orders(await self.client.get(self._url("/orders")))

    async def update_order_status(self, order_id: str, status: str) -> Order:
        return parse_order(await self.client.put(self._url(f"/orders/{order_id}/status"), {"status": status}))

    async def get_wallet(self) -> Any:
        return await self.client.get(self._url("/payouts/wallet"))

    async def request_payout(self, amount: Decimal, payout_method: str = "bank") -> Any:
        return await self.client.post(
            self._url("/payouts/request"),
            {"amount": float(amount), "payoutMethod": payout_method},
        )

    async def get_payouts(self) -> Any:
        return await self.client.get(self._url("/payouts/history"))

    async def get_verification_status(self) -> Any:
        return await self.client.get(self._url("/verification/status"))

    async def submit_bvn(self, bvn: str) -> Any:
        return await self.client.post(self._url("/verification/bvn"), {"bvn": bvn})

    async def submit_id(self, id_type: str, id_number: str) -> Any:
        return await self.client.post(self._url("/verification/id"), {"idType": id_type, "idNumber": id_number})

    async def submit_bank_details(self, bank_name: str, account_number: str, account_name: str) -> Any:
        return await self.client.post(
            self._url("/verification/bank"),
            {"bankName": bank_name, "accountNumber": account_number, "accountName": account_name},
        )


class AdminAPI(_Group):
    prefix = "/api/admin"

    async def get_users(self, role: Optional[str] = None) -> Any:
        return await self.client.get(self._url("/users"), params={"role": role} if role else None)

    async def update_user_status(self, user_id: str, status: str) -> Any:
        return await self.client.put(self._url(f"/users/{user_id}/status"), {"status": status})

    async def get_pending_verifications(self) -> Any:
        return await self.client.get(self._url("/verifications/pending"))

    async def approve_verification(self, verification_id: str) -> Any:
        return await self.client.put(self._url(f"/verifications/{verification_id}/approve"))

    async def get_total_earnings(self) -> Any:
        return await self.client.get(self._url("/earnings/total"))


class MessagesAPI(_Group):
    """Buyer/seller chat. Routes live under the caller's role prefix."""

    def __init__(self, client: ApiClient, role_provider: Optional[Callable[[], Optional[str]]] = None):
        super().__init__(client)
        self._role_provider = role_provider

    @property
    def prefix(self) -> str:
        role = self._role_provider() if self._role_provider else None
        return f"/api/{role or ROLE_BUYER}/messages"

    async def get_conversations(self) -> Any:
        return await self.client.get(self._url("/conversations"))

    async def create_conversation(self, seller_id: str, initial_message: str) -> Any:
        return await self.client.post(
            self._url("/conversations"),
            {"sellerId": seller_id, "initialMessage": initial_message},
        )

    async def get_messages(self, conversation_id: str) -> Any:
        return await self.client.get(self._url(f"/conversations/{conversation_id}"))

    async def send_message(self, conversation_id: str, text: str) -> Any:
        return await self.client.post(self._url("/send"), {"conversationId": conversation_id, "text": text})

    async def mark_as_read(self, conversation_id: str) -> Any:
        return await self.client.put(self._url(f"/conversations/{conversation_id}/read"))


class HelpAPI(_Group):
    prefix = "/api/help"

    async def get_faqs(self) -> Any:
        return await self.client.get(self._url("/faqs"))

    async def contact_support(self, name: str, email: str, subject: str, message: str) -> Any:
        return await self.client.post(
            self._url("/contact"),
            {"name": name, "email": email, "subject": subject, "message": message},
        )
