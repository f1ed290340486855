"""
Transaction status state machine.

Withdrawal:  pending -> approved -> completed
             pending -> failed              (rejected, refunded)
Deposit:     pending -> completed           (approved, wallet credited)
             pending -> failed              (rejected, nothing credited)

Purchases and subscriptions are recorded directly as completed and have no
further transitions. Performance fees are not charged by this service.
"""

from signalmarket.domain.marketplace.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from signalmarket.domain.marketplace.errors import (
    InvalidTransitionError,
    WrongTransactionTypeError,
)

PENDING = TransactionStatus.PENDING
APPROVED = TransactionStatus.APPROVED
COMPLETED = TransactionStatus.COMPLETED
FAILED = TransactionStatus.FAILED

ALLOWED_TRANSITIONS: dict[TransactionType, dict[TransactionStatus, frozenset]] = {
    TransactionType.WITHDRAWAL: {
        PENDING: frozenset({APPROVED, FAILED}),
        APPROVED: frozenset({COMPLETED}),
    },
    TransactionType.DEPOSIT: {
        PENDING: frozenset({COMPLETED, FAILED}),
    },
}

TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})


def can_transition(
    transaction_type: TransactionType,
    current: TransactionStatus,
    target: TransactionStatus,
) -> bool:
    """Return True if ``current -> target`` is allowed for the type."""
    return target in ALLOWED_TRANSITIONS.get(transaction_type, {}).get(
        current, frozenset()
    )


def ensure_transition(
    transaction: Transaction,
    expected_type: TransactionType,
    target: TransactionStatus,
) -> TransactionStatus:
    """Validate a transition before it is attempted.

    Args:
        transaction: The entry as currently stored.
        expected_type: Type the caller is operating on.
        target: Desired status.

    Returns:
        The status the entry must still have when the transition is written.

    Raises:
        WrongTransactionTypeError: If the entry is of another type.
        InvalidTransitionError: If the transition is not allowed from the
            entry's current status.
    """
    if transaction.type is not expected_type:
        raise WrongTransactionTypeError(expected_type.value)
    if not can_transition(transaction.type, transaction.status, target):
        raise InvalidTransitionError(
            transaction.id, transaction.status.value, target.value
        )
    return transaction.status
