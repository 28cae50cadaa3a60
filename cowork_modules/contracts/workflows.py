"""Contract Renewal Workflows.

State machine for the renewal process of a co-working contract.
"""

from dataclasses import dataclass

from cowork_kernel.domain.workflow import Transition, Workflow
from cowork_kernel.logging_config import get_logger
from cowork_modules.contracts.models import RenewalStatus

logger = get_logger("modules.contracts.workflows")


# Backward edges only exist before payment; from paid onward the record
# moves forward only.
RENEWAL_WORKFLOW = Workflow(
    name="contract_renewal",
    description="Renewal of a co-working contract past its end date",
    initial_state=RenewalStatus.NONE.value,
    states=tuple(s.value for s in RenewalStatus),
    transitions=(
        Transition("none", "notified", action="notify"),
        Transition("notified", "confirmed", action="confirm"),
        Transition("notified", "none", action="reopen", reverts=True),
        Transition("confirmed", "paid", action="record_payment"),
        Transition("confirmed", "notified", action="unconfirm", reverts=True),
        Transition("paid", "invoiced", action="issue_invoice"),
        Transition("invoiced", "signed", action="sign"),
        Transition("signed", "completed", action="complete"),
    ),
    terminal_states=("completed",),
)

logger.info(
    "renewal_workflow_registered",
    extra={
        "workflow_name": RENEWAL_WORKFLOW.name,
        "state_count": len(RENEWAL_WORKFLOW.states),
        "transition_count": len(RENEWAL_WORKFLOW.transitions),
    },
)


def valid_targets(status: RenewalStatus | str | None) -> frozenset[RenewalStatus]:
    """Statuses reachable from ``status`` in one step (same-state excluded)."""
    current = RenewalStatus.parse(status)
    return frozenset(RenewalStatus(s) for s in RENEWAL_WORKFLOW.targets(current.value))


def can_transition(
    from_status: RenewalStatus | str | None,
    to_status: RenewalStatus | str | None,
) -> bool:
    """True for a legal edge, or for a same-state (notes-only) update."""
    source = RenewalStatus.parse(from_status)
    target = RenewalStatus.parse(to_status)
    return source is target or target in valid_targets(source)


def is_backward(
    from_status: RenewalStatus | str | None,
    to_status: RenewalStatus | str | None,
) -> bool:
    """True when the pair is a legal corrective (backward) edge."""
    transition = RENEWAL_WORKFLOW.find(
        RenewalStatus.parse(from_status).value,
        RenewalStatus.parse(to_status).value,
    )
    return transition is not None and transition.reverts


@dataclass(frozen=True)
class StatusDisplay:
    """Presentation metadata for a renewal status badge."""
    label: str
    tone: str
    hint: str | None = None


_STATUS_DISPLAY = {
    RenewalStatus.NONE: StatusDisplay("Pending", "gray"),
    RenewalStatus.NOTIFIED: StatusDisplay("Notified", "blue"),
    RenewalStatus.CONFIRMED: StatusDisplay("Confirmed", "purple"),
    RenewalStatus.PAID: StatusDisplay("Paid", "green", hint="awaiting signature"),
    RenewalStatus.INVOICED: StatusDisplay("Invoiced", "teal"),
    RenewalStatus.SIGNED: StatusDisplay("Signed", "orange"),
    RenewalStatus.COMPLETED: StatusDisplay("Completed", "emerald"),
}


def status_display(status: RenewalStatus | str | None) -> StatusDisplay:
    """Badge metadata for ``status``.  Says nothing about legality."""
    return _STATUS_DISPLAY[RenewalStatus.parse(status)]
