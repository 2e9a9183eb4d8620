"""Explicitly constructed client state: storage, session, cart and API.

One ``AppState`` exists per scope (a Telegram user, or the local web UI).
Front ends build it once and pass it down; nothing else holds session or
cart data.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from cartify.api.client import ApiClient
from cartify.api.endpoints import (
    AdminAPI,
    AuthAPI,
    BuyerAPI,
    HelpAPI,
    MessagesAPI,
    SellerAPI,
    UserAPI,
)
from cartify.api.exceptions import CartifyError
from cartify.api.schemas import User
from cartify.constants import ROLE_BUYER, ROLE_SELLER
from cartify.db.sqlite import Storage
from cartify.services.cart import CartStore
from cartify.services.session import SessionStore
from cartify.utils.validators import (
    require_email,
    require_password,
    require_passwords_match,
    require_signup_fields,
)

logger = logging.getLogger(__name__)


def signup_data(
    role: str,
    name: str,
    email: str,
    password: str,
    phone: str = "",
    address: str = "",
    business_type: str = "",
    business_address: str = "",
) -> dict:
    """Registration body. Sellers sign up under their business name."""
    data = {"name": name.strip(), "email": email.strip(), "password": password, "role": role}
    if role == ROLE_BUYER:
        data.update(phone=phone.strip(), address=address.strip())
    elif role == ROLE_SELLER:
        data.update(
            businessName=name.strip(),
            businessType=business_type.strip().lower(),
            businessAddress=business_address.strip(),
        )
    return data


class AppState:
    def __init__(
        self,
        scope: str,
        db_path: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.scope = str(scope)
        self.storage = Storage(self.scope, db_path)
        self.session = SessionStore(self.storage)
        self.cart = CartStore(self.storage)
        self.api = ApiClient(
            base_url=base_url,
            token_provider=lambda: self.session.token,
            clear_credentials=self.session.expire,
            transport=transport,
        )
        self.auth = AuthAPI(self.api)
        self.user = UserAPI(self.api)
        self.buyer = BuyerAPI(self.api)
        self.seller = SellerAPI(self.api)
        self.admin = AdminAPI(self.api)
        self.messages = MessagesAPI(self.api, role_provider=self._role)
        self.help = HelpAPI(self.api)

    def _role(self) -> Optional[str]:
        return self.session.user.role if self.session.user else None

    async def login(self, email: str, password: str) -> User:
        email = require_email(email)
        if not password:
            raise ValueError("Password is required")
        result = await self.auth.login(email, password)
        return self.session.login(result.user, result.token)

    async def register(self, data: dict, confirm_password: str) -> User:
        require_signup_fields(data)
        require_passwords_match(data["password"], confirm_password)
        require_password(data["password"])
        data = dict(data, email=require_email(data["email"]))
        result = await self.auth.register(data)
        return self.session.login(result.user, result.token)

    async def restore(self) -> bool:
        """Re-validate a persisted token against the backend.

        Any failure logs the scope out, same as a missing token.
        """
        if not self.session.token:
            return False
        try:
            user = await self.auth.get_current_user()
        except CartifyError as e:
            logger.warning("Auth check failed for scope %s, clearing auth data: %s", self.scope, e)
            await self.logout(notify_server=False)
            return False
        self.session.update_user(user)
        return True

    async def logout(self, notify_server: bool = True) -> None:
        """Local teardown always happens; telling the backend is best effort."""
        if notify_server and self.session.is_authenticated:
            try:
                await self.auth.logout()
            except CartifyError as e:
                logger.info("Server logout failed for scope %s: %s", self.scope, e)
        self.session.logout()
        self.cart.clear_cart()
