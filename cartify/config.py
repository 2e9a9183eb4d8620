from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../cartify repo root
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_decimal(*keys: str, default: str) -> Decimal:
    return Decimal(_get_env(*keys, default=default) or default)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    api_timeout: float
    api_retries: int
    health_timeout: float
    bot_token: str
    storage_path: str
    export_dir: str
    backup_dir: str
    currency: str
    decimals: int
    shipping_fee: Decimal
    tax_rate: Decimal
    login_path: str


settings = Settings(
    api_base_url=_get_env("CARTIFY_API_URL", "API_BASE_URL", default="https://carttifys-1.onrender.com")
    or "https://carttifys-1.onrender.com",
    api_timeout=_get_float("API_TIMEOUT", default=15.0),
    api_retries=_get_int("API_RETRIES", default=1) or 0,
    health_timeout=_get_float("HEALTH_TIMEOUT", default=5.0),
    bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
    storage_path=_get_path("STORAGE_PATH", "DB_PATH", default=str(ROOT_DIR / "data" / "cartify.db")),
    export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
    backup_dir=_get_path("BACKUP_DIR", default=str(ROOT_DIR / "backups")),
    currency=_get_env("CURRENCY", default="NGN") or "NGN",
    decimals=_get_int("DECIMALS", default=2),
    shipping_fee=_get_decimal("SHIPPING_FEE", default="500"),
    tax_rate=_get_decimal("TAX_RATE", default="0.08"),
    login_path=_get_env("LOGIN_PATH", default="/login") or "/login",
)


def require_bot_token() -> str:
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Set BOT_TOKEN in .env")
    return settings.bot_token
