"""
Contract Renewal Service (``cowork_modules.contracts.service``).

Responsibility
--------------
Loads contracts, applies the pure renewal operations from ``renewal.py``,
persists the result, and hands reminder delivery to an external notifier
once the status change is stored.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``ContractRenewalService`` is the sole
public entry point for persisted renewal operations.  All legality rules
live in ``workflows.py`` / ``renewal.py``; this module only loads, locks,
saves and logs.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary (``commit`` on
  success, ``rollback`` on failure or exception).
* Transitions on the same contract are serialised: the row is read
  ``SELECT ... FOR UPDATE`` and written with a compare-and-swap on
  ``renewal_status``.  A lost race raises ``OptimisticLockError`` instead
  of recording a status the transition table never allowed.
* Reminder delivery happens only after the ``notified`` transition has
  been committed.

Failure modes
-------------
* ``ContractNotFoundError`` -- unknown contract id.
* ``IllegalTransitionError`` / ``InvalidValueError`` -- from ``renewal``.
* ``OptimisticLockError`` -- concurrent status change detected.
* ``ReminderNotApplicableError`` -- reminder requested for a contract that
  is past the notification stage or has no messaging channel.
* Notifier exceptions propagate after the committed transition.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from cowork_kernel.domain.clock import Clock, SystemClock
from cowork_kernel.exceptions import (
    ContractNotFoundError,
    OptimisticLockError,
    ReminderNotApplicableError,
)
from cowork_kernel.logging_config import LogContext, get_logger
from cowork_modules.contracts import renewal
from cowork_modules.contracts.config import ContractsConfig
from cowork_modules.contracts.models import Contract, InvoiceStatus, RenewalStatus
from cowork_modules.contracts.orm import ContractModel
from cowork_modules.contracts.reminders import (
    RenewalReminder,
    build_reminder,
    filter_reminders,
    reminder_message,
)

logger = get_logger("modules.contracts.service")

REMINDER_SENT_NOTE = "Renewal reminder sent"

# Statuses from which a reminder (and the move to notified) makes sense
_REMINDABLE = frozenset({RenewalStatus.NONE, RenewalStatus.NOTIFIED})


@runtime_checkable
class RenewalNotifier(Protocol):
    """Delivers a renewal reminder to the customer (chat, e-mail, ...)."""

    def send_reminder(self, contract: Contract, message: str) -> None: ...


class ContractRenewalService:
    """
    Persisted renewal workflow over ``cowork_contracts``.

    Contract
    --------
    * Write methods return the updated ``Contract`` as stored.
    * Read methods never commit.

    Guarantees
    ----------
    * A failed write leaves the stored row unchanged.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT retry on ``OptimisticLockError``; the caller re-reads and
      decides.
    * Does NOT queue or retry reminder delivery.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: RenewalNotifier | None = None,
        config: ContractsConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._config = config or ContractsConfig.with_defaults()

    # =========================================================================
    # Registration and lookup
    # =========================================================================

    def register_contract(self, contract: Contract, actor_id: UUID) -> Contract:
        """Persist a contract created by the contract-creation workflow."""
        with LogContext.bind(contract_id=contract.id, actor_id=actor_id, operation="register"):
            try:
                self._session.add(ContractModel.from_dto(contract, created_by_id=actor_id))
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("contract_registration_failed", exc_info=True)
                raise
            logger.info(
                "contract_registered",
                extra={"contract_number": contract.contract_number},
            )
            return self.get_contract(contract.id)

    def get_contract(self, contract_id: UUID) -> Contract:
        """
        Raises:
            ContractNotFoundError: no row with this id.
        """
        return self._load(contract_id).to_dto()

    # =========================================================================
    # Renewal workflow
    # =========================================================================

    def transition(
        self,
        contract_id: UUID,
        target: RenewalStatus | str,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> Contract:
        """Apply a renewal status transition and store it."""
        with LogContext.bind(contract_id=contract_id, actor_id=actor_id, operation="transition"):
            try:
                row = self._load(contract_id, for_update=True)
                current = row.to_dto()
                updated = renewal.apply_transition(current, target, notes, clock=self._clock)
                self._compare_and_swap(current.renewal_status, updated, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            return updated

    def update_notes(
        self,
        contract_id: UUID,
        notes: str,
        actor_id: UUID | None = None,
    ) -> Contract:
        """Replace renewal notes; status and timestamps are untouched."""
        with LogContext.bind(contract_id=contract_id, actor_id=actor_id, operation="update_notes"):
            try:
                row = self._load(contract_id, for_update=True)
                current = row.to_dto()
                updated = renewal.update_notes(current, notes)
                self._compare_and_swap(current.renewal_status, updated, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            return updated

    def set_invoice_status(
        self,
        contract_id: UUID,
        status: InvoiceStatus | str,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> Contract:
        """Set the renewal invoice tag."""
        with LogContext.bind(contract_id=contract_id, actor_id=actor_id, operation="set_invoice_status"):
            try:
                row = self._load(contract_id, for_update=True)
                current = row.to_dto()
                updated = renewal.set_invoice_status(current, status, notes)
                self._compare_and_swap(current.renewal_status, updated, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            return updated

    # =========================================================================
    # Reminders
    # =========================================================================

    def send_renewal_reminder(
        self,
        contract_id: UUID,
        message: str | None = None,
        actor_id: UUID | None = None,
    ) -> Contract:
        """
        Mark the contract notified, then deliver the reminder.

        Raises:
            ReminderNotApplicableError: status is past ``notified``, the
                contract has no messaging channel, or no notifier is set.
        """
        if self._notifier is None:
            raise ReminderNotApplicableError(contract_id, "no notifier configured")

        with LogContext.bind(contract_id=contract_id, actor_id=actor_id, operation="send_reminder"):
            # Eligibility is checked on the locked row, in the writing transaction.
            try:
                current = self._load(contract_id, for_update=True).to_dto()
                if current.renewal_status not in _REMINDABLE:
                    raise ReminderNotApplicableError(
                        contract_id, f"renewal already {current.renewal_status.value}"
                    )
                if not current.messaging_user_id:
                    raise ReminderNotApplicableError(contract_id, "no messaging channel")
                updated = renewal.apply_transition(
                    current, RenewalStatus.NOTIFIED, REMINDER_SENT_NOTE, clock=self._clock
                )
                self._compare_and_swap(current.renewal_status, updated, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            text = message or reminder_message(current, self._clock.today(), self._config)
            try:
                self._notifier.send_reminder(updated, text)
            except Exception:
                logger.error("renewal_reminder_delivery_failed", exc_info=True)
                raise
            logger.info(
                "renewal_reminder_sent",
                extra={"messaging_user_id": updated.messaging_user_id},
            )
        return updated

    def list_renewal_reminders(
        self,
        as_of: date | None = None,
        within_days: int | None = None,
        status: RenewalStatus | str | None = None,
    ) -> list[RenewalReminder]:
        """
        Contracts expiring within the window, soonest first.

        The window runs from ``expired_lookback_days`` before ``as_of`` to
        ``within_days`` (default ``reminder_window_days``) after it.
        """
        as_of = as_of or self._clock.today()
        window = within_days if within_days is not None else self._config.reminder_window_days
        earliest = as_of - timedelta(days=self._config.expired_lookback_days)
        latest = as_of + timedelta(days=window)

        rows = self._session.execute(
            select(ContractModel)
            .where(ContractModel.end_date.is_not(None))
            .where(ContractModel.end_date >= earliest)
            .where(ContractModel.end_date <= latest)
            .order_by(ContractModel.end_date, ContractModel.contract_number)
        ).scalars().all()

        reminders = [build_reminder(row.to_dto(), as_of, self._config) for row in rows]
        result = filter_reminders(reminders, status)
        logger.debug(
            "renewal_reminders_listed",
            extra={"as_of": as_of, "window_days": window, "count": len(result)},
        )
        return result

    # =========================================================================
    # Persistence helpers
    # =========================================================================

    def _load(self, contract_id: UUID, for_update: bool = False) -> ContractModel:
        stmt = (
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise ContractNotFoundError(contract_id)
        return row

    def _compare_and_swap(
        self,
        expected: RenewalStatus,
        updated: Contract,
        actor_id: UUID | None,
    ) -> None:
        """
        Write renewal fields only if ``renewal_status`` still equals
        ``expected`` (NULL counts as ``none``).

        Raises:
            OptimisticLockError: the stored status has moved on.
        """
        if expected is RenewalStatus.NONE:
            status_matches = or_(
                ContractModel.renewal_status.is_(None),
                ContractModel.renewal_status == RenewalStatus.NONE.value,
            )
        else:
            status_matches = ContractModel.renewal_status == expected.value

        stmt = (
            update(ContractModel)
            .where(ContractModel.id == updated.id)
            .where(status_matches)
            .values(
                renewal_status=updated.renewal_status.value,
                renewal_notes=updated.renewal_notes,
                renewal_notified_at=updated.renewal_notified_at,
                renewal_confirmed_at=updated.renewal_confirmed_at,
                renewal_paid_at=updated.renewal_paid_at,
                invoice_status=updated.invoice_status.value if updated.invoice_status else None,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "renewal_status_conflict",
                extra={"expected_status": expected.value},
            )
            raise OptimisticLockError("Contract", updated.id)
