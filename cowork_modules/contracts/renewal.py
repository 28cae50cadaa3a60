"""
Renewal Operations (``cowork_modules.contracts.renewal``).

Responsibility
--------------
Pure operations over a ``Contract`` value: apply a renewal status
transition, update renewal notes, and set the invoice tag.  Each returns a
new ``Contract``; nothing is persisted here.

Invariants enforced
-------------------
* Legality comes only from ``RENEWAL_WORKFLOW``.  A same-state target is
  always legal and updates notes only.
* ``renewal_notified_at`` / ``renewal_confirmed_at`` / ``renewal_paid_at``
  are stamped on first entry into their state and never overwritten or
  cleared, including by backward transitions.
* A rejected request raises before any field is touched.

Failure modes
-------------
* ``IllegalTransitionError`` -- pair not in the transition table.
* ``InvalidValueError`` -- unknown renewal or invoice status value.
"""

from __future__ import annotations

from dataclasses import replace

from cowork_kernel.domain.clock import Clock, SystemClock
from cowork_kernel.exceptions import IllegalTransitionError
from cowork_kernel.logging_config import get_logger
from cowork_modules.contracts.models import Contract, InvoiceStatus, RenewalStatus
from cowork_modules.contracts.workflows import can_transition

logger = get_logger("modules.contracts.renewal")

# State entered -> timestamp field stamped on first entry
_FIRST_ENTRY_STAMPS = {
    RenewalStatus.NOTIFIED: "renewal_notified_at",
    RenewalStatus.CONFIRMED: "renewal_confirmed_at",
    RenewalStatus.PAID: "renewal_paid_at",
}


def apply_transition(
    contract: Contract,
    target: RenewalStatus | str,
    notes: str | None = None,
    *,
    clock: Clock | None = None,
) -> Contract:
    """
    Move ``contract`` to ``target`` renewal status.

    Args:
        contract: Current contract value.
        target: Desired status (enum member or its string value).
        notes: When not None, replaces ``renewal_notes``.
        clock: Source of first-entry timestamps; defaults to system time.

    Returns:
        The updated contract.

    Raises:
        IllegalTransitionError: ``current -> target`` is not a legal edge.
        InvalidValueError: ``target`` is not a renewal status.
    """
    target_status = RenewalStatus.parse(target)
    current = contract.renewal_status

    if not can_transition(current, target_status):
        logger.info(
            "renewal_transition_rejected",
            extra={
                "contract_id": str(contract.id),
                "from_status": current.value,
                "to_status": target_status.value,
            },
        )
        raise IllegalTransitionError(current.value, target_status.value)

    changes: dict = {"renewal_status": target_status}
    stamp_field = _FIRST_ENTRY_STAMPS.get(target_status)
    if (
        stamp_field is not None
        and target_status is not current
        and getattr(contract, stamp_field) is None
    ):
        changes[stamp_field] = (clock or SystemClock()).now()
    if notes is not None:
        changes["renewal_notes"] = notes

    updated = replace(contract, **changes)
    logger.info(
        "renewal_transition_applied",
        extra={
            "contract_id": str(contract.id),
            "from_status": current.value,
            "to_status": target_status.value,
            "notes_updated": notes is not None,
            "stamped": stamp_field if stamp_field in changes else None,
        },
    )
    return updated


def update_notes(contract: Contract, notes: str) -> Contract:
    """Replace renewal notes without changing status or timestamps."""
    return apply_transition(contract, contract.renewal_status, notes)


def set_invoice_status(
    contract: Contract,
    status: InvoiceStatus | str,
    notes: str | None = None,
) -> Contract:
    """
    Tag the contract's renewal invoice.

    Any recognised value may replace any other at any time.

    Raises:
        InvalidValueError: ``status`` is not a recognised invoice status.
    """
    invoice_status = InvoiceStatus.parse(status)
    changes: dict = {"invoice_status": invoice_status}
    if notes is not None:
        changes["renewal_notes"] = notes

    logger.info(
        "invoice_status_set",
        extra={
            "contract_id": str(contract.id),
            "previous": contract.invoice_status.value if contract.invoice_status else None,
            "invoice_status": invoice_status.value,
        },
    )
    return replace(contract, **changes)
