"""
Module: cowork_modules.contracts.orm
Responsibility:
    SQLAlchemy ORM persistence model for co-working contracts.  Maps the
    frozen ``Contract`` DTO from ``cowork_modules.contracts.models`` to the
    ``cowork_contracts`` table.

Architecture position:
    **Modules layer** -- ORM model inheriting from ``TrackedBase``
    (kernel DB base).

Invariants enforced:
    - Monetary fields use Decimal (Numeric(38,9) via the base type map).
    - Enum fields stored as String(50).
    - ``renewal_status`` may be NULL in legacy rows; ``to_dto()`` reads
      NULL as ``none``.
    - Tier amounts are stored as strings inside the JSON column.

Failure modes:
    - IntegrityError on duplicate ``contract_number``.
    - ``DataError`` from ``to_dto()`` when a stored value is malformed.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cowork_kernel.db.base import TrackedBase
from cowork_kernel.db.types import as_utc


class ContractModel(TrackedBase):
    """
    A co-working lease contract row.

    Guarantees:
        - ``contract_number`` is unique (uq_contract_number).
        - ``renewal_status`` is NULL or one of the seven renewal states.
        - ``invoice_status`` is NULL or one of the three invoice tags.
    """

    __tablename__ = "cowork_contracts"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_contract_number"),
        Index("idx_contract_end_date", "end_date"),
        Index("idx_contract_renewal_status", "renewal_status"),
    )

    contract_number: Mapped[str] = mapped_column(String(100), nullable=False)
    monthly_rent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    payment_cycle: Mapped[str] = mapped_column(String(50), default="monthly")
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    tiered_pricing: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    renewal_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    renewal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    renewal_notified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    renewal_confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    renewal_paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    invoice_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    messaging_user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self):
        from cowork_modules.contracts.models import Contract

        return Contract.from_record({
            "id": self.id,
            "contract_number": self.contract_number,
            "monthly_rent": self.monthly_rent,
            "payment_cycle": self.payment_cycle,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "tiered_pricing": self.tiered_pricing,
            "renewal_status": self.renewal_status,
            "renewal_notes": self.renewal_notes,
            "renewal_notified_at": as_utc(self.renewal_notified_at),
            "renewal_confirmed_at": as_utc(self.renewal_confirmed_at),
            "renewal_paid_at": as_utc(self.renewal_paid_at),
            "invoice_status": self.invoice_status,
            "messaging_user_id": self.messaging_user_id,
        })

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ContractModel":
        from cowork_modules.contracts.models import PaymentCycle

        cycle = dto.payment_cycle
        return cls(
            id=dto.id,
            contract_number=dto.contract_number,
            monthly_rent=dto.monthly_rent,
            payment_cycle=cycle.value if isinstance(cycle, PaymentCycle) else cycle,
            start_date=dto.start_date,
            end_date=dto.end_date,
            tiered_pricing=[t.to_record() for t in dto.tiered_pricing] or None,
            renewal_status=dto.renewal_status.value,
            renewal_notes=dto.renewal_notes,
            renewal_notified_at=dto.renewal_notified_at,
            renewal_confirmed_at=dto.renewal_confirmed_at,
            renewal_paid_at=dto.renewal_paid_at,
            invoice_status=dto.invoice_status.value if dto.invoice_status else None,
            messaging_user_id=dto.messaging_user_id,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ContractModel {self.contract_number} renewal={self.renewal_status}>"
