import re
from decimal import Decimal, InvalidOperation

from cartify.constants import BUSINESS_TYPES, PAYMENT_METHODS, ROLE_BUYER, ROLE_SELLER, USER_ROLES

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_positive_number(v, name: str = "value") -> None:
    if v <= 0:
        raise ValueError(f"{name} must be > 0")


def parse_amount(text: str, name: str = "amount") -> Decimal:
    try:
        value = Decimal(str(text).strip().replace(",", "."))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number") from None
    if not value.is_finite():
        raise ValueError(f"{name} must be a number")
    require_positive_number(value, name)
    return value


def parse_quantity(text: str) -> int:
    try:
        qty = int(str(text).strip())
    except ValueError:
        raise ValueError("quantity must be a whole number") from None
    return qty


def require_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValueError("Please enter a valid email address")
    return email


def require_passwords_match(password: str, confirm: str) -> None:
    if password != confirm:
        raise ValueError("Passwords do not match")


def require_signup_fields(data: dict) -> None:
    missing = [k for k in ("email", "password", "role", "name") if not data.get(k)]
    if missing:
        raise ValueError(f"Required fields missing: {', '.join(missing)}")
    role = data["role"]
    if role not in USER_ROLES:
        raise ValueError(f"Unknown role: {role}")
    if role == ROLE_BUYER and not (data.get("phone") and data.get("address")):
        raise ValueError("Buyer requires phone and address")
    if role == ROLE_SELLER and not (
        data.get("businessName") and data.get("businessType") and data.get("businessAddress")
    ):
        raise ValueError("Seller requires business details")
    if role == ROLE_SELLER:
        require_choice(data["businessType"], BUSINESS_TYPES, "business type")


def require_payment_method(method: str) -> str:
    method = (method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def require_choice(value: str, options, name: str = "value") -> str:
    value = (value or "").strip().lower()
    if value not in options:
        raise ValueError(f"{name} must be one of: {', '.join(options)}")
    return value


def require_bvn(bvn: str) -> str:
    bvn = (bvn or "").strip()
    if len(bvn) != 11 or not bvn.isdigit():
        raise ValueError("Please enter a valid 11-digit BVN")
    return bvn


def require_password(password: str, min_length: int = 6) -> str:
    if len(password or "") < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    return password
