"""Rental price quotes."""

from datetime import date
from decimal import Decimal

from sailingloc.domain.date_range import DateRange
from sailingloc.domain.pricing import quote, to_money


def test_total_adds_ten_percent_service_fee() -> None:
    result = quote(Decimal("100"), DateRange(date(2030, 7, 10), date(2030, 7, 13)))

    assert result.days == 3
    assert result.subtotal == Decimal("300.00")
    assert result.service_fee == Decimal("30.00")
    assert result.total == Decimal("330.00")


def test_money_rounds_half_up_to_cents() -> None:
    assert to_money("10.005") == Decimal("10.01")
    result = quote("33.35", DateRange(date(2030, 7, 10), date(2030, 7, 11)))
    assert result.service_fee == Decimal("3.34")
    assert result.to_dict()["total"] == "36.69"
