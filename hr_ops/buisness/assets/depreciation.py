"""
Straight-line depreciation

Value drops by rate% of the purchase cost for each whole year since purchase
and never goes below zero.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from hr_ops.buisness.core.validation import to_datetime, to_decimal
from hr_ops.utils.time_utils import utcnow_naive

TWO_PLACES = Decimal('0.01')
DAYS_PER_YEAR = 365


def whole_years_between(start: datetime, end: datetime) -> int:
    """floor(days / 365), never negative"""
    return max(0, (end - start).days // DAYS_PER_YEAR)


def compute_current_value(cost, purchase_date, rate, now=None) -> Optional[Decimal]:
    """
    Compute the depreciated value of an asset.

    Args:
        cost: Purchase cost, >= 0
        purchase_date: When the asset was bought; raw cost is returned when absent
        rate: Yearly depreciation in percent, 0..100; raw cost is returned when absent
        now: Valuation instant, defaults to the current UTC time

    Returns:
        Decimal rounded half-up to two places, or None when there is no cost

    Raises:
        ValidationFailure: For a negative cost or a rate outside 0..100
    """
    cost = to_decimal(cost, 'purchase_cost', action='compute_current_value', minimum=0)
    rate = to_decimal(rate, 'depreciation_rate', action='compute_current_value', minimum=0, maximum=100)
    purchase_date = to_datetime(purchase_date, 'purchase_date', action='compute_current_value')
    if cost is None:
        return None
    if purchase_date is None or rate is None:
        return cost.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    now = to_datetime(now, 'now', action='compute_current_value') or utcnow_naive()
    years = whole_years_between(purchase_date, now)
    value = cost - cost * (rate / Decimal(100)) * years
    return max(Decimal(0), value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
