"""
Tests for ContractRenewalService and the contract ORM model.

Validates:
- ContractModel <-> Contract round trip, NULL status normalisation
- transition / update_notes / set_invoice_status persist and commit
- rejected requests leave the stored row unchanged
- compare-and-swap detects a concurrent status change
- send_renewal_reminder: transition first, then delivery
- list_renewal_reminders: window, ordering, status filter
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from cowork_kernel.exceptions import (
    ContractNotFoundError,
    IllegalTransitionError,
    InvalidValueError,
    OptimisticLockError,
    ReminderNotApplicableError,
)
from cowork_modules.contracts.models import (
    InvoiceStatus,
    PaymentCycle,
    RenewalStatus,
    RentTier,
)
from cowork_modules.contracts.orm import ContractModel
from cowork_modules.contracts.reminders import ReminderUrgency
from cowork_modules.contracts.service import (
    REMINDER_SENT_NOTE,
    ContractRenewalService,
    RenewalNotifier,
)
from tests.conftest import TEST_ACTOR_ID

# =============================================================================
# Fixtures
# =============================================================================


class RecordingNotifier:
    """Notifier that records deliveries and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple] = []
        self.fail = fail

    def send_reminder(self, contract, message):
        if self.fail:
            raise ConnectionError("messaging gateway unavailable")
        self.sent.append((contract, message))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def renewal_service(session, deterministic_clock, notifier):
    """Provide ContractRenewalService for integration testing."""
    return ContractRenewalService(
        session=session,
        clock=deterministic_clock,
        notifier=notifier,
    )


@pytest.fixture
def stored_contract(renewal_service, make_contract):
    return renewal_service.register_contract(
        make_contract(
            monthly_rent=Decimal("1500"),
            payment_cycle=PaymentCycle.QUARTERLY,
            messaging_user_id="U-line-001",
        ),
        actor_id=TEST_ACTOR_ID,
    )


def _stored_status(session, contract_id):
    session.expire_all()
    return session.get(ContractModel, contract_id).renewal_status


# =============================================================================
# ORM
# =============================================================================


class TestContractORM:
    """Persistence mapping."""

    def test_round_trip(self, renewal_service, make_contract):
        original = make_contract(
            start_date=date(2024, 1, 1),
            tiered_pricing=(
                RentTier(1, Decimal("1000")),
                RentTier(2, Decimal("1200.50")),
            ),
            payment_cycle=PaymentCycle.ANNUAL,
            invoice_status=InvoiceStatus.PENDING_TAX_ID,
        )
        stored = renewal_service.register_contract(original, actor_id=TEST_ACTOR_ID)
        assert stored.id == original.id
        assert stored.tiered_pricing == original.tiered_pricing
        assert stored.payment_cycle is PaymentCycle.ANNUAL
        assert stored.invoice_status is InvoiceStatus.PENDING_TAX_ID
        assert stored.monthly_rent == Decimal("1500")

    def test_null_status_loads_as_none(self, session, stored_contract, renewal_service):
        session.execute(
            update(ContractModel)
            .where(ContractModel.id == stored_contract.id)
            .values(renewal_status=None)
        )
        session.commit()
        assert renewal_service.get_contract(stored_contract.id).renewal_status is RenewalStatus.NONE

    def test_audit_columns_populated(self, session, stored_contract):
        row = session.get(ContractModel, stored_contract.id)
        assert row.created_by_id == TEST_ACTOR_ID
        assert row.created_at is not None

    def test_unknown_contract(self, renewal_service):
        with pytest.raises(ContractNotFoundError) as exc_info:
            renewal_service.get_contract(uuid4())
        assert exc_info.value.code == "CONTRACT_NOT_FOUND"


# =============================================================================
# Transitions
# =============================================================================


class TestServiceTransitions:
    """Persisted renewal workflow."""

    def test_transition_persists(self, session, renewal_service, stored_contract, deterministic_clock):
        updated = renewal_service.transition(
            stored_contract.id, RenewalStatus.NOTIFIED, notes="called customer", actor_id=TEST_ACTOR_ID,
        )
        assert updated.renewal_status is RenewalStatus.NOTIFIED
        assert _stored_status(session, stored_contract.id) == "notified"

        reloaded = renewal_service.get_contract(stored_contract.id)
        assert reloaded.renewal_notified_at == deterministic_clock.now()
        assert reloaded.renewal_notes == "called customer"
        assert session.get(ContractModel, stored_contract.id).updated_by_id == TEST_ACTOR_ID

    def test_illegal_transition_leaves_row_unchanged(self, session, renewal_service, stored_contract):
        renewal_service.transition(stored_contract.id, "notified", notes="first")
        before = renewal_service.get_contract(stored_contract.id)

        with pytest.raises(IllegalTransitionError):
            renewal_service.transition(stored_contract.id, "paid", notes="skipped ahead")

        assert renewal_service.get_contract(stored_contract.id) == before

    def test_scenario_through_service(self, renewal_service, stored_contract, deterministic_clock):
        cid = stored_contract.id
        renewal_service.transition(cid, "notified")
        with pytest.raises(IllegalTransitionError):
            renewal_service.transition(cid, "paid")
        deterministic_clock.advance_days(2)
        renewal_service.transition(cid, "confirmed")
        deterministic_clock.advance_days(3)
        paid = renewal_service.transition(cid, "paid")
        assert paid.renewal_paid_at == deterministic_clock.now()
        with pytest.raises(IllegalTransitionError):
            renewal_service.transition(cid, "notified")

        for step in ("invoiced", "signed", "completed"):
            deterministic_clock.advance_days(1)
            renewal_service.transition(cid, step)
        final = renewal_service.get_contract(cid)
        assert final.renewal_status is RenewalStatus.COMPLETED
        assert final.renewal_paid_at == paid.renewal_paid_at

    def test_update_notes(self, renewal_service, stored_contract):
        renewal_service.transition(stored_contract.id, "notified")
        before = renewal_service.get_contract(stored_contract.id)
        updated = renewal_service.update_notes(stored_contract.id, "prefers annual billing")
        assert updated.renewal_notes == "prefers annual billing"
        assert updated.renewal_status is RenewalStatus.NOTIFIED
        assert updated.renewal_notified_at == before.renewal_notified_at

    def test_set_invoice_status(self, renewal_service, stored_contract):
        updated = renewal_service.set_invoice_status(stored_contract.id, "issued_business")
        assert updated.invoice_status is InvoiceStatus.ISSUED_BUSINESS
        assert renewal_service.get_contract(stored_contract.id).invoice_status is InvoiceStatus.ISSUED_BUSINESS

    def test_invalid_invoice_status(self, renewal_service, stored_contract):
        with pytest.raises(InvalidValueError):
            renewal_service.set_invoice_status(stored_contract.id, "issued")
        assert renewal_service.get_contract(stored_contract.id).invoice_status is None

    def test_transition_logs_context(self, renewal_service, stored_contract, captured_logs):
        renewal_service.transition(stored_contract.id, "notified", actor_id=TEST_ACTOR_ID)
        applied = [r for r in captured_logs() if r["message"] == "renewal_transition_applied"]
        assert applied
        assert applied[0]["contract_id"] == str(stored_contract.id)
        assert applied[0]["actor_id"] == str(TEST_ACTOR_ID)
        assert applied[0]["operation"] == "transition"


class TestConcurrentTransitions:
    """Compare-and-swap on renewal_status."""

    def test_racing_writer_detected_and_rolled_back(
        self, session, deterministic_clock, stored_contract,
    ):
        class RacingService(ContractRenewalService):
            """Another writer moves the status between our read and our write."""

            def _compare_and_swap(self, expected, updated, actor_id):
                self._session.execute(
                    update(ContractModel)
                    .where(ContractModel.id == updated.id)
                    .values(renewal_status=RenewalStatus.CONFIRMED.value)
                    .execution_options(synchronize_session=False)
                )
                super()._compare_and_swap(expected, updated, actor_id)

        ContractRenewalService(session, clock=deterministic_clock).transition(
            stored_contract.id, "notified",
        )
        racing = RacingService(session, clock=deterministic_clock)

        with pytest.raises(OptimisticLockError) as exc_info:
            racing.transition(stored_contract.id, RenewalStatus.NONE)
        assert exc_info.value.entity_id == str(stored_contract.id)
        assert _stored_status(session, stored_contract.id) == "notified"

    def test_stale_expected_status_rejected(self, session, renewal_service, stored_contract):
        stale = renewal_service.get_contract(stored_contract.id)
        renewal_service.transition(stored_contract.id, "notified")

        with pytest.raises(OptimisticLockError):
            renewal_service._compare_and_swap(RenewalStatus.NONE, stale, None)
        session.rollback()
        assert _stored_status(session, stored_contract.id) == "notified"


# =============================================================================
# Reminders
# =============================================================================


class TestSendRenewalReminder:
    """Transition to notified, then deliver."""

    def test_sends_and_marks_notified(self, renewal_service, stored_contract, notifier):
        updated = renewal_service.send_renewal_reminder(stored_contract.id, actor_id=TEST_ACTOR_ID)
        assert updated.renewal_status is RenewalStatus.NOTIFIED
        assert updated.renewal_notes == REMINDER_SENT_NOTE
        assert len(notifier.sent) == 1
        sent_contract, message = notifier.sent[0]
        assert sent_contract.renewal_status is RenewalStatus.NOTIFIED
        assert stored_contract.contract_number in message

    def test_custom_message(self, renewal_service, stored_contract, notifier):
        renewal_service.send_renewal_reminder(stored_contract.id, message="Please call us")
        assert notifier.sent[0][1] == "Please call us"

    def test_resend_keeps_first_notified_at(
        self, renewal_service, stored_contract, notifier, deterministic_clock,
    ):
        first = renewal_service.send_renewal_reminder(stored_contract.id)
        deterministic_clock.advance_days(3)
        second = renewal_service.send_renewal_reminder(stored_contract.id)
        assert second.renewal_notified_at == first.renewal_notified_at
        assert len(notifier.sent) == 2

    def test_not_applicable_after_confirmation(self, renewal_service, stored_contract, notifier):
        renewal_service.transition(stored_contract.id, "notified")
        renewal_service.transition(stored_contract.id, "confirmed")
        with pytest.raises(ReminderNotApplicableError):
            renewal_service.send_renewal_reminder(stored_contract.id)
        assert notifier.sent == []
        assert renewal_service.get_contract(stored_contract.id).renewal_status is RenewalStatus.CONFIRMED

    def test_requires_messaging_channel(self, renewal_service, make_contract, notifier):
        contract = renewal_service.register_contract(make_contract(), actor_id=TEST_ACTOR_ID)
        with pytest.raises(ReminderNotApplicableError) as exc_info:
            renewal_service.send_renewal_reminder(contract.id)
        assert exc_info.value.reason == "no messaging channel"

    def test_delivery_failure_after_committed_transition(
        self, session, deterministic_clock, stored_contract,
    ):
        service = ContractRenewalService(
            session, clock=deterministic_clock, notifier=RecordingNotifier(fail=True),
        )
        with pytest.raises(ConnectionError):
            service.send_renewal_reminder(stored_contract.id)
        assert _stored_status(session, stored_contract.id) == "notified"

    def test_concurrent_confirmation_is_not_reverted(
        self, session, deterministic_clock, stored_contract, notifier,
    ):
        ContractRenewalService(session, clock=deterministic_clock).transition(
            stored_contract.id, "notified",
        )

        class ConfirmedMeanwhileService(ContractRenewalService):
            """Another operator confirms just before the reminder locks the row."""

            def _load(self, contract_id, for_update=False):
                if for_update:
                    ContractRenewalService(self._session, clock=self._clock).transition(
                        contract_id, "confirmed", notes="customer confirmed 2y",
                    )
                return super()._load(contract_id, for_update=for_update)

        service = ConfirmedMeanwhileService(
            session, clock=deterministic_clock, notifier=notifier,
        )
        with pytest.raises(ReminderNotApplicableError):
            service.send_renewal_reminder(stored_contract.id)

        assert notifier.sent == []
        stored = ContractRenewalService(session).get_contract(stored_contract.id)
        assert stored.renewal_status is RenewalStatus.CONFIRMED
        assert stored.renewal_notes == "customer confirmed 2y"

    def test_notifier_protocol(self, notifier):
        assert isinstance(notifier, RenewalNotifier)


class TestListRenewalReminders:
    """Expiry-window listing."""

    @pytest.fixture
    def portfolio(self, renewal_service, make_contract):
        today = date(2025, 3, 1)
        ends = {
            "expired-long-ago": today - timedelta(days=90),
            "expired-recently": today - timedelta(days=3),
            "urgent": today + timedelta(days=5),
            "warning": today + timedelta(days=25),
            "far": today + timedelta(days=200),
        }
        stored = {}
        for number, end in ends.items():
            stored[number] = renewal_service.register_contract(
                make_contract(contract_number=number, end_date=end), actor_id=TEST_ACTOR_ID,
            )
        renewal_service.register_contract(
            make_contract(contract_number="open-ended", end_date=None), actor_id=TEST_ACTOR_ID,
        )
        return stored

    def test_window_and_order(self, renewal_service, portfolio):
        reminders = renewal_service.list_renewal_reminders(as_of=date(2025, 3, 1))
        assert [r.contract.contract_number for r in reminders] == [
            "expired-recently", "urgent", "warning",
        ]
        assert [r.urgency for r in reminders] == [
            ReminderUrgency.EXPIRED, ReminderUrgency.URGENT, ReminderUrgency.WARNING,
        ]

    def test_defaults_to_clock_today(self, renewal_service, portfolio):
        # deterministic clock is 2025-03-01
        assert len(renewal_service.list_renewal_reminders()) == 3

    def test_custom_window(self, renewal_service, portfolio):
        reminders = renewal_service.list_renewal_reminders(as_of=date(2025, 3, 1), within_days=365)
        assert "far" in [r.contract.contract_number for r in reminders]

    def test_status_filter(self, renewal_service, portfolio):
        renewal_service.transition(portfolio["urgent"].id, "notified")
        reminders = renewal_service.list_renewal_reminders(as_of=date(2025, 3, 1), status="notified")
        assert [r.contract.contract_number for r in reminders] == ["urgent"]
