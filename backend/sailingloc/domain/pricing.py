"""Price quote for a rental: daily price times billable days plus service fee."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from sailingloc.domain.date_range import DateRange

MONEY_PLACES = Decimal("0.01")
SERVICE_FEE_RATE = Decimal("0.10")


def to_money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


@dataclass(slots=True)
class PriceQuote:
    """Breakdown of what the renter pays for a range."""

    daily_price: Decimal
    days: int
    subtotal: Decimal
    service_fee_rate: Decimal
    service_fee: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_price": f"{self.daily_price:.2f}",
            "days": self.days,
            "subtotal": f"{self.subtotal:.2f}",
            "service_fee_rate": str(self.service_fee_rate),
            "service_fee": f"{self.service_fee:.2f}",
            "total": f"{self.total:.2f}",
        }


def quote(
    daily_price: Decimal | float | int | str,
    date_range: DateRange,
    *,
    service_fee_rate: Decimal = SERVICE_FEE_RATE,
) -> PriceQuote:
    price = to_money(daily_price)
    days = date_range.day_count
    subtotal = to_money(price * days)
    service_fee = to_money(subtotal * service_fee_rate)
    return PriceQuote(
        daily_price=price,
        days=days,
        subtotal=subtotal,
        service_fee_rate=service_fee_rate,
        service_fee=service_fee,
        total=subtotal + service_fee,
    )
