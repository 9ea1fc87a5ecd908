"""
Fee splitting between the platform and a competition organizer.

All amounts are integer cents. Percentages are Decimals in [0, 100].

Policies (chosen explicitly by the caller, never defaulted here):
    - Entry fees use the competition's platform_fee_percentage
    - Recurring dues use PLATFORM_ONLY_PERCENT (organizer receives nothing)

Usage:
    from payments.fees import PLATFORM_ONLY_PERCENT, split, to_cents

    fee = split(10000, Decimal("8.00"))
    fee.platform_fee_cents  # 800
    fee.net_cents           # 9200

    dues = split(2000, PLATFORM_ONLY_PERCENT)  # (2000, 0)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from payments.exceptions import InvalidAmountError

PLATFORM_ONLY_PERCENT = Decimal("100")

_ONE_CENT = Decimal("1")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class FeeSplit:
    """
    Result of splitting a charge.

    Attributes:
        amount_cents: The charge being split
        platform_fee_cents: Portion kept by the platform
        net_cents: Portion routed to the organizer
    """

    amount_cents: int
    platform_fee_cents: int
    net_cents: int


def _as_percent(fee_percent: Decimal | int | str) -> Decimal:
    if isinstance(fee_percent, float):
        # Floats can't represent most percentages exactly.
        fee_percent = str(fee_percent)
    try:
        percent = Decimal(fee_percent)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(
            f"Invalid fee percentage: {fee_percent!r}",
            details={"fee_percent": str(fee_percent)},
        )
    if not percent.is_finite() or percent < 0 or percent > _HUNDRED:
        raise InvalidAmountError(
            f"Fee percentage must be between 0 and 100, got {percent}",
            details={"fee_percent": str(percent)},
        )
    return percent


def split(amount_cents: int, fee_percent: Decimal | int | str) -> FeeSplit:
    """
    Split ``amount_cents`` into platform fee and organizer net.

    platform_fee_cents = round_half_up(amount_cents * fee_percent / 100)
    net_cents = amount_cents - platform_fee_cents

    Raises:
        InvalidAmountError: amount is negative or not an integer, or the
            percentage is outside [0, 100]
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmountError(
            f"Amount must be an integer number of cents, got {amount_cents!r}",
            details={"amount_cents": repr(amount_cents)},
        )
    if amount_cents < 0:
        raise InvalidAmountError(
            f"Amount must not be negative, got {amount_cents}",
            details={"amount_cents": amount_cents},
        )

    percent = _as_percent(fee_percent)
    platform_fee = (Decimal(amount_cents) * percent / _HUNDRED).quantize(
        _ONE_CENT, rounding=ROUND_HALF_UP
    )
    platform_fee_cents = int(platform_fee)

    return FeeSplit(
        amount_cents=amount_cents,
        platform_fee_cents=platform_fee_cents,
        net_cents=amount_cents - platform_fee_cents,
    )


def to_cents(amount: Decimal | int | str) -> int:
    """
    Convert a currency amount (e.g. Decimal("100.00")) to integer cents.

    Raises:
        InvalidAmountError: amount is negative or not a number
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(
            f"Invalid currency amount: {amount!r}",
            details={"amount": str(amount)},
        )
    if not value.is_finite() or value < 0:
        raise InvalidAmountError(
            f"Currency amount must not be negative, got {value}",
            details={"amount": str(value)},
        )
    return int((value * _HUNDRED).quantize(_ONE_CENT, rounding=ROUND_HALF_UP))
