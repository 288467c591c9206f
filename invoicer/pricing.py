# invoicer/pricing.py
"""Price conversion and the platform/connected-account routing decision."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel

from .errors import ValidationError
from .models import RoutingMethod

CENT = Decimal("1")


class ChargePlan(BaseModel):
    routing_method: RoutingMethod
    price_cents: int
    fee_cents: int = 0
    # what the customer is charged on the checkout page
    amount_cents: int
    destination: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.routing_method == "connected_account"


def to_minor_units(price: Any) -> int:
    """Convert a decimal price (e.g. 100.5 or "100.50") to cents."""
    if price is None or isinstance(price, bool):
        raise ValidationError("Invalid or missing price in job data")
    try:
        value = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid or missing price in job data")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invalid or missing price in job data")
    cents = int((value * 100).quantize(CENT, rounding=ROUND_HALF_UP))
    if cents <= 0:
        raise ValidationError("Invalid or missing price in job data")
    return cents


def platform_fee(price_cents: int, fee_percent: Decimal) -> int:
    fee = Decimal(price_cents) * Decimal(fee_percent) / Decimal(100)
    return int(fee.quantize(CENT, rounding=ROUND_HALF_UP))


def plan_charge(
    price_cents: int,
    account_id: Optional[str],
    account_connected: bool,
    platform_account_id: Optional[str],
    fee_percent: Decimal,
    fee_mode: str = "included",
) -> ChargePlan:
    """
    Decide how a job is billed.

    Platform-only (no fee, no transfer) unless the company has a connected
    account that is verified and is not the platform's own account. In
    connected mode the fee is either taken out of the price ("included") or
    charged on top of it ("on_top").
    """
    if (
        not account_id
        or not account_connected
        or (platform_account_id and account_id == platform_account_id)
    ):
        return platform_only(price_cents)

    fee_cents = platform_fee(price_cents, fee_percent)
    amount_cents = price_cents + fee_cents if fee_mode == "on_top" else price_cents
    return ChargePlan(
        routing_method="connected_account",
        price_cents=price_cents,
        fee_cents=fee_cents,
        amount_cents=amount_cents,
        destination=account_id,
    )


def platform_only(price_cents: int) -> ChargePlan:
    return ChargePlan(
        routing_method="platform_only",
        price_cents=price_cents,
        amount_cents=price_cents,
    )


def format_cents(cents: int) -> str:
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))
