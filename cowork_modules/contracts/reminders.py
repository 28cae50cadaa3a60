"""
Renewal Reminders (``cowork_modules.contracts.reminders``).

Pure helpers behind the renewal reminder list: days until expiry, urgency
buckets, per-status counts and the default reminder message text.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from cowork_kernel.db.types import round_money
from cowork_modules.contracts.calculations import current_monthly_rent, period_amount
from cowork_modules.contracts.config import ContractsConfig
from cowork_modules.contracts.models import Contract, PaymentCycle, RenewalStatus


class ReminderUrgency(Enum):
    """How soon a contract expires."""
    EXPIRED = "expired"
    URGENT = "urgent"
    WARNING = "warning"
    UPCOMING = "upcoming"
    NORMAL = "normal"


@dataclass(frozen=True)
class RenewalReminder:
    """One row of the renewal reminder list."""
    contract: Contract
    days_until_expiry: int | None
    urgency: ReminderUrgency
    current_monthly_rent: Decimal
    period_amount: Decimal


def days_until_expiry(contract: Contract, as_of: date) -> int | None:
    """Days from ``as_of`` to the end date; negative once expired."""
    if contract.end_date is None:
        return None
    return (contract.end_date - as_of).days


def urgency(days: int | None, config: ContractsConfig | None = None) -> ReminderUrgency:
    config = config or ContractsConfig.with_defaults()
    if days is None:
        return ReminderUrgency.NORMAL
    if days <= 0:
        return ReminderUrgency.EXPIRED
    if days <= config.urgent_days:
        return ReminderUrgency.URGENT
    if days <= config.warning_days:
        return ReminderUrgency.WARNING
    if days <= config.upcoming_days:
        return ReminderUrgency.UPCOMING
    return ReminderUrgency.NORMAL


def build_reminder(
    contract: Contract,
    as_of: date,
    config: ContractsConfig | None = None,
) -> RenewalReminder:
    days = days_until_expiry(contract, as_of)
    return RenewalReminder(
        contract=contract,
        days_until_expiry=days,
        urgency=urgency(days, config),
        current_monthly_rent=current_monthly_rent(contract, as_of),
        period_amount=period_amount(contract, as_of),
    )


def status_counts(contracts: Iterable[Contract]) -> dict[RenewalStatus, int]:
    """Contracts per renewal status; every status present, zero-filled."""
    counts = {status: 0 for status in RenewalStatus}
    for contract in contracts:
        counts[contract.renewal_status] += 1
    return counts


def filter_reminders(
    reminders: Iterable[RenewalReminder],
    status: RenewalStatus | str | None = None,
) -> list[RenewalReminder]:
    """Reminders whose contract is in ``status`` (all when None)."""
    if status is None:
        return list(reminders)
    wanted = RenewalStatus.parse(status)
    return [r for r in reminders if r.contract.renewal_status is wanted]


def reminder_message(
    contract: Contract,
    as_of: date,
    config: ContractsConfig | None = None,
) -> str:
    """Default reminder text sent to the customer."""
    config = config or ContractsConfig.with_defaults()
    amount = round_money(period_amount(contract, as_of), 0)
    cycle = contract.payment_cycle
    cycle_label = cycle.label if isinstance(cycle, PaymentCycle) else str(cycle)
    end = contract.end_date.isoformat() if contract.end_date else "the end of its term"
    return (
        f"Hello, this is a reminder that contract {contract.contract_number} "
        f"expires on {end}. The renewal amount is {config.default_currency} "
        f"{amount:,} ({cycle_label}). Would you like to renew?"
    )
