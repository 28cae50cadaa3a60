"""
Contract Domain Models (``cowork_modules.contracts.models``).

Responsibility
--------------
Frozen dataclass value objects for the renewal-relevant slice of a
co-working lease contract: the contract itself, its tiered rent schedule,
and the renewal / invoice / payment-cycle enumerations.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``calculations``, ``renewal``, ``reminders`` and ``ContractRenewalService``.

Invariants enforced
-------------------
* All models are ``frozen=True``; updates produce a new value.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A missing renewal status is normalised to ``RenewalStatus.NONE`` here, at
  the load boundary, so transition logic never sees "unset".
* At most one ``RentTier`` per contract year.

Failure modes
-------------
* ``DataError`` when a stored record cannot be interpreted (non-numeric
  tier amount, duplicate tier year, unknown stored status).
* ``InvalidValueError`` when a caller supplies an unknown status value.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from cowork_kernel.exceptions import DataError, InvalidValueError
from cowork_kernel.logging_config import get_logger

logger = get_logger("modules.contracts.models")


class RenewalStatus(Enum):
    """Renewal process states, in happy-path order."""
    NONE = "none"
    NOTIFIED = "notified"
    CONFIRMED = "confirmed"
    PAID = "paid"
    INVOICED = "invoiced"
    SIGNED = "signed"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: RenewalStatus | str | None) -> RenewalStatus:
        """Accept an enum member, its string value, or None (== NONE)."""
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidValueError("renewal_status", value) from None


class InvoiceStatus(Enum):
    """Invoice tag attached to a renewal.  A label, not a workflow."""
    PENDING_TAX_ID = "pending_tax_id"
    ISSUED_PERSONAL = "issued_personal"
    ISSUED_BUSINESS = "issued_business"

    @classmethod
    def parse(cls, value: InvoiceStatus | str) -> InvoiceStatus:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidValueError("invoice_status", value) from None


class PaymentCycle(Enum):
    """Billing recurrence; the value of ``months`` is the period multiplier."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        return _CYCLE_MONTHS[self]

    @property
    def label(self) -> str:
        return _CYCLE_LABELS[self]


_CYCLE_MONTHS = {
    PaymentCycle.MONTHLY: 1,
    PaymentCycle.QUARTERLY: 3,
    PaymentCycle.SEMI_ANNUAL: 6,
    PaymentCycle.ANNUAL: 12,
}

_CYCLE_LABELS = {
    PaymentCycle.MONTHLY: "monthly",
    PaymentCycle.QUARTERLY: "quarterly",
    PaymentCycle.SEMI_ANNUAL: "semi-annual",
    PaymentCycle.ANNUAL: "annual",
}


@dataclass(frozen=True)
class RentTier:
    """Rent override for one contract year (1-based).

    ``monthly_rent`` is normalised through ``parse_amount`` so every tier
    carries a finite Decimal, however it was built.

    Raises:
        DataError: non-integer year or non-numeric amount.
    """
    year: int
    monthly_rent: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise DataError("tiered_pricing.year", self.year, "tier year must be an integer")
        object.__setattr__(
            self,
            "monthly_rent",
            parse_amount("tiered_pricing.monthly_rent", self.monthly_rent),
        )

    def to_record(self) -> dict[str, Any]:
        # Amounts travel as strings so JSON storage stays exact.
        return {"year": self.year, "monthly_rent": str(self.monthly_rent)}


@dataclass(frozen=True)
class Contract:
    """
    A co-working lease contract, renewal fields only.

    ``payment_cycle`` holds the raw stored string when it is not a known
    cycle; rent calculations treat such values as monthly.
    """
    id: UUID
    contract_number: str = ""
    monthly_rent: Decimal = Decimal("0")
    payment_cycle: PaymentCycle | str = PaymentCycle.MONTHLY
    start_date: date | None = None
    end_date: date | None = None
    tiered_pricing: tuple[RentTier, ...] = ()
    renewal_status: RenewalStatus = RenewalStatus.NONE
    renewal_notes: str | None = None
    renewal_notified_at: datetime | None = None
    renewal_confirmed_at: datetime | None = None
    renewal_paid_at: datetime | None = None
    invoice_status: InvoiceStatus | None = None
    messaging_user_id: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Contract:
        """
        Build a Contract from a backend row (dict-like).

        Tiered pricing is read from ``tiered_pricing`` or, as the REST views
        expose it, from ``metadata.tiered_pricing``.
        """
        tiers = record.get("tiered_pricing")
        if tiers is None:
            metadata = record.get("metadata") or {}
            if not isinstance(metadata, Mapping):
                raise DataError("metadata", metadata, "expected a mapping")
            tiers = metadata.get("tiered_pricing")

        raw_id = record["id"]
        return cls(
            id=raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id)),
            contract_number=record.get("contract_number") or "",
            monthly_rent=parse_amount("monthly_rent", record.get("monthly_rent") or 0),
            payment_cycle=parse_cycle(record.get("payment_cycle")),
            start_date=_parse_date("start_date", record.get("start_date")),
            end_date=_parse_date("end_date", record.get("end_date")),
            tiered_pricing=parse_tiers(tiers),
            renewal_status=_stored_enum(RenewalStatus, "renewal_status", record.get("renewal_status"))
            or RenewalStatus.NONE,
            renewal_notes=record.get("renewal_notes"),
            renewal_notified_at=_parse_datetime("renewal_notified_at", record.get("renewal_notified_at")),
            renewal_confirmed_at=_parse_datetime("renewal_confirmed_at", record.get("renewal_confirmed_at")),
            renewal_paid_at=_parse_datetime("renewal_paid_at", record.get("renewal_paid_at")),
            invoice_status=_stored_enum(InvoiceStatus, "invoice_status", record.get("invoice_status")),
            messaging_user_id=record.get("messaging_user_id"),
        )


# =============================================================================
# Load-boundary parsing
# =============================================================================


def parse_amount(field: str, value: Any) -> Decimal:
    """
    Interpret a stored rent amount as Decimal.

    Accepts int, float, Decimal, or a string holding a finite decimal
    literal.  Booleans, None, other strings and NaN/Infinity raise DataError.
    """
    if isinstance(value, bool) or value is None:
        raise DataError(field, value, "amount is not numeric")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise DataError(field, value, "amount is not numeric") from None
    else:
        raise DataError(field, value, "amount is not numeric")
    if not amount.is_finite():
        raise DataError(field, value, "amount is not finite")
    return amount


def parse_tiers(raw: Sequence[Any] | None) -> tuple[RentTier, ...]:
    """
    Parse a stored tiered-pricing schedule, preserving its order.

    None or empty yields ``()``.  Entries may be ``RentTier`` instances or
    mappings with ``year`` and ``monthly_rent``.
    """
    if not raw:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise DataError("tiered_pricing", raw, "expected a list of tiers")

    tiers: list[RentTier] = []
    seen_years: set[int] = set()
    for entry in raw:
        if isinstance(entry, RentTier):
            tier = entry
        elif isinstance(entry, Mapping):
            tier = RentTier(year=entry.get("year"), monthly_rent=entry.get("monthly_rent"))
        else:
            raise DataError("tiered_pricing", entry, "tier entry must be a mapping")
        if tier.year in seen_years:
            raise DataError("tiered_pricing.year", tier.year, "duplicate tier year")
        seen_years.add(tier.year)
        tiers.append(tier)
    return tuple(tiers)


def parse_cycle(value: PaymentCycle | str | None) -> PaymentCycle | str:
    """Known cycles become ``PaymentCycle``; unknown strings are kept raw."""
    if value is None:
        return PaymentCycle.MONTHLY
    if isinstance(value, PaymentCycle):
        return value
    try:
        return PaymentCycle(value)
    except ValueError:
        logger.warning("unknown_payment_cycle", extra={"payment_cycle": value})
        return value


def _stored_enum(enum_cls: type[Enum], field: str, value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise DataError(field, value, "unknown stored value") from None


def _parse_date(field: str, value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise DataError(field, value, "not an ISO date") from None


def _parse_datetime(field: str, value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise DataError(field, value, "not an ISO timestamp") from None
