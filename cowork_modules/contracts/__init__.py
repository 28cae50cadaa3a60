"""
Contracts Module (``cowork_modules.contracts``).

Responsibility
--------------
Renewal tracking for co-working lease contracts: tiered and cyclical rent
calculation, the renewal status workflow with first-entry timestamps, the
invoice tag, and the renewal reminder list.

Architecture position
---------------------
**Modules layer** -- pure models, calculations and workflow operations,
plus a service facade that persists through SQLAlchemy.

Invariants enforced
-------------------
* ``RENEWAL_WORKFLOW`` is the single source of truth for legal renewal
  status changes.
* No backward transition once a renewal is ``paid``.
* First-entry timestamps are never overwritten.
* All amounts are ``Decimal``.

Failure modes
-------------
* ``IllegalTransitionError``, ``InvalidValueError``, ``DataError``,
  ``OptimisticLockError``, ``ContractNotFoundError`` (see
  ``cowork_kernel.exceptions``).
"""

from cowork_modules.contracts.calculations import (
    contract_year,
    current_monthly_rent,
    cycle_multiplier,
    period_amount,
)
from cowork_modules.contracts.config import ContractsConfig
from cowork_modules.contracts.models import (
    Contract,
    InvoiceStatus,
    PaymentCycle,
    RenewalStatus,
    RentTier,
)
from cowork_modules.contracts.renewal import (
    apply_transition,
    set_invoice_status,
    update_notes,
)
from cowork_modules.contracts.workflows import (
    RENEWAL_WORKFLOW,
    can_transition,
    status_display,
    valid_targets,
)

__all__ = [
    "Contract",
    "ContractsConfig",
    "InvoiceStatus",
    "PaymentCycle",
    "RenewalStatus",
    "RentTier",
    "RENEWAL_WORKFLOW",
    "apply_transition",
    "can_transition",
    "contract_year",
    "current_monthly_rent",
    "cycle_multiplier",
    "period_amount",
    "set_invoice_status",
    "status_display",
    "update_notes",
    "valid_targets",
]
