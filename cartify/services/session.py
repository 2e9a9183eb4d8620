"""Authenticated principal and bearer token, mirrored to client storage."""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from cartify.api.exceptions import InvalidResponse
from cartify.api.schemas import User, parse_user
from cartify.constants import (
    AUTH_KEYS,
    KEY_PREFERENCES,
    KEY_THEME,
    KEY_TOKEN,
    KEY_USER,
    LOGOUT_KEYS,
    ROLE_ADMIN,
    ROLE_BUYER,
    ROLE_SELLER,
    THEMES,
)
from cartify.db.sqlite import Storage

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self._restore()

    def _restore(self) -> None:
        try:
            token = self._storage.get(KEY_TOKEN)
            raw_user = self._storage.get(KEY_USER)
            user = parse_user(raw_user) if raw_user is not None else None
        except (ValueError, InvalidResponse) as e:
            # битые данные -> считаем, что не залогинен
            logger.warning("Stored session for scope %s is unreadable, logging out: %s", self._storage.scope, e)
            self._storage.remove(*AUTH_KEYS)
            return
        self.token = str(token) if token else None
        self.user = user

    def login(self, user_data: Union[User, dict], token: Optional[str] = None) -> User:
        user = user_data if isinstance(user_data, User) else parse_user(user_data)
        if token:
            self.token = token
            self._storage.set(KEY_TOKEN, token)
        self.user = user
        self._storage.set(KEY_USER, user.model_dump(mode="json"))
        logger.info("User logged in: %s (%s)", user.email, user.role)
        return user

    def logout(self) -> None:
        self._storage.remove(*LOGOUT_KEYS)
        self.token = None
        self.user = None
        logger.info("Logout completed for scope %s", self._storage.scope)

    def expire(self) -> None:
        """Drop token and user after the backend rejected them."""
        self._storage.remove(*AUTH_KEYS)
        self.token = None
        self.user = None

    def update_user(self, user_data: Union[User, dict]) -> User:
        user = user_data if isinstance(user_data, User) else parse_user(user_data)
        self.user = user
        self._storage.set(KEY_USER, user.model_dump(mode="json"))
        return user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)

    def has_role(self, role: str) -> bool:
        return self.user is not None and self.user.role == role

    @property
    def is_buyer(self) -> bool:
        return self.has_role(ROLE_BUYER)

    @property
    def is_seller(self) -> bool:
        return self.has_role(ROLE_SELLER)

    @property
    def is_admin(self) -> bool:
        return self.has_role(ROLE_ADMIN)

    # preferences

    @property
    def preferences(self) -> dict:
        try:
            prefs = self._storage.get(KEY_PREFERENCES, {})
        except ValueError:
            return {}
        return prefs if isinstance(prefs, dict) else {}

    def update_preferences(self, **changes: Any) -> dict:
        prefs = self.preferences
        prefs.update(changes)
        self._storage.set(KEY_PREFERENCES, prefs)
        return prefs

    @property
    def theme(self) -> str:
        try:
            theme = self._storage.get(KEY_THEME)
        except ValueError:
            theme = None
        return theme if theme in THEMES else THEMES[0]

    @theme.setter
    def theme(self, value: str) -> None:
        value = (value or "").strip().lower()
        if value not in THEMES:
            raise ValueError(f"Theme must be one of: {', '.join(THEMES)}")
        self._storage.set(KEY_THEME, value)
