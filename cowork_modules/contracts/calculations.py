"""
Rent Calculation Pure Functions.

Domain math for the amount a contract owes in its current billing period:
- Contract-year lookup (1-based, 365.25-day years)
- Tiered (escalating) rent schedule lookup, clamped to the last tier
- Billing-cycle multiplication

Rents are passed through uninterpreted; a negative or zero base rent is
the caller's concern.
"""

import math
from datetime import date
from decimal import Decimal

from cowork_modules.contracts.models import Contract, PaymentCycle, RentTier

DAYS_PER_YEAR = Decimal("365.25")


def contract_year(start_date: date, as_of: date) -> int:
    """
    1-based contract year containing ``as_of``.

    year = floor(days_elapsed / 365.25) + 1, so the start date itself is
    year 1.  Dates before the start yield 0 or less.
    """
    days = (as_of - start_date).days
    return math.floor(Decimal(days) / DAYS_PER_YEAR) + 1


def select_tier(tiers: tuple[RentTier, ...], year: int) -> RentTier | None:
    """
    Tier for ``year``; when none matches, the tier with the greatest year.

    Returns None only for an empty schedule.
    """
    if not tiers:
        return None
    for tier in tiers:
        if tier.year == year:
            return tier
    return max(tiers, key=lambda t: t.year)


def current_monthly_rent(contract: Contract, as_of: date) -> Decimal:
    """
    Monthly rent in effect on ``as_of``.

    Without a tier schedule or a start date the base ``monthly_rent`` is
    returned unchanged.
    """
    if not contract.tiered_pricing or contract.start_date is None:
        return contract.monthly_rent

    year = contract_year(contract.start_date, as_of)
    tier = select_tier(contract.tiered_pricing, year)
    return tier.monthly_rent


def cycle_multiplier(cycle: PaymentCycle | str | None) -> int:
    """Months per billing period; unrecognised cycles count as monthly."""
    if isinstance(cycle, PaymentCycle):
        return cycle.months
    try:
        return PaymentCycle(cycle).months
    except ValueError:
        return 1


def period_amount(contract: Contract, as_of: date) -> Decimal:
    """Amount due for the billing period containing ``as_of``."""
    return current_monthly_rent(contract, as_of) * cycle_multiplier(contract.payment_cycle)
