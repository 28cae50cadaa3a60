"""
Typed exception hierarchy for the co-working contract kernel.

Every error is a typed class with a machine-readable ``code`` class
attribute and structured attributes, so callers catch by type and render
by data instead of parsing messages:

    try:
        service.transition(contract_id, RenewalStatus.PAID)
    except IllegalTransitionError as e:
        show_choices(valid_targets(e.from_status))
        api_response(code=e.code, from_status=e.from_status, to_status=e.to_status)

Hierarchy::

    CoworkKernelError (base)
    |
    +-- ContractError
    |   +-- ContractNotFoundError
    |
    +-- RenewalError
    |   +-- IllegalTransitionError
    |   +-- ReminderNotApplicableError
    |
    +-- ValidationError
    |   +-- InvalidValueError
    |
    +-- DataError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

Codes:

Category     | Code                       | When raised
-------------|----------------------------|-----------------------------------------
Contract     | CONTRACT_NOT_FOUND         | Contract ID doesn't exist
Renewal      | ILLEGAL_TRANSITION         | Status change not in the renewal table
             | REMINDER_NOT_APPLICABLE    | Reminder requested for wrong status/channel
Validation   | INVALID_VALUE              | Value outside the recognised domain
Data         | DATA_ERROR                 | Stored record malformed (e.g. tier amount)
Concurrency  | OPTIMISTIC_LOCK_CONFLICT   | Renewal status changed underneath us

All errors are raised synchronously.  Nothing in the kernel retries, and a
failed operation leaves the record unchanged.
"""

from typing import Any


class CoworkKernelError(Exception):
    """
    Base exception for all kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "COWORK_KERNEL_ERROR"


# Contract-related exceptions


class ContractError(CoworkKernelError):
    """Base exception for contract lookup errors."""

    code: str = "CONTRACT_ERROR"


class ContractNotFoundError(ContractError):
    """Contract with given ID was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: Any):
        self.contract_id = str(contract_id)
        super().__init__(f"Contract not found: {contract_id}")


# Renewal workflow exceptions


class RenewalError(CoworkKernelError):
    """Base exception for renewal workflow errors."""

    code: str = "RENEWAL_ERROR"


class IllegalTransitionError(RenewalError):
    """
    Requested renewal status change is not in the transition table.

    Recoverable: the caller should re-offer ``valid_targets(from_status)``.
    """

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal renewal transition: {from_status} -> {to_status}"
        )


class ReminderNotApplicableError(RenewalError):
    """A renewal reminder cannot be sent for this contract."""

    code: str = "REMINDER_NOT_APPLICABLE"

    def __init__(self, contract_id: Any, reason: str):
        self.contract_id = str(contract_id)
        self.reason = reason
        super().__init__(
            f"Cannot send renewal reminder for contract {contract_id}: {reason}"
        )


# Validation exceptions


class ValidationError(CoworkKernelError):
    """Base exception for caller-supplied values outside their domain."""

    code: str = "VALIDATION_ERROR"


class InvalidValueError(ValidationError):
    """A field was given a value outside its recognised domain."""

    code: str = "INVALID_VALUE"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field}: {value!r}")


# Data integrity exceptions


class DataError(CoworkKernelError):
    """
    A stored contract record is malformed.

    Raised when a field needed for a computation cannot be interpreted,
    e.g. a tiered-pricing entry whose amount is not numeric.  Absent
    optional fields are NOT data errors; calculations fall back instead.
    """

    code: str = "DATA_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed {field} ({value!r}): {reason}")


# Concurrency exceptions


class ConcurrencyError(CoworkKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )
