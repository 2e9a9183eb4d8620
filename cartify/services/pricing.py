from decimal import ROUND_HALF_EVEN, Decimal

from cartify.config import settings
from cartify.constants import COMMISSION_RATE


def round_money(amount: Decimal, places: int | None = None) -> Decimal:
    """Round to the configured decimal places using banker's rounding."""
    places = settings.decimals if places is None else places
    return Decimal(amount).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)


def calc_commission(amount: Decimal) -> Decimal:
    return round_money(Decimal(amount) * COMMISSION_RATE)


def seller_net(amount: Decimal) -> Decimal:
    return round_money(Decimal(amount) - calc_commission(amount))
