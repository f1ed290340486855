"""
Use cases: Admin review of withdrawals.

    ApproveWithdrawalUseCase   pending  -> approved
    CompleteWithdrawalUseCase  approved -> completed (optional payout hash)
    RejectWithdrawalUseCase    pending  -> failed, amount refunded

Input: the matching command (transaction_id, admin_id, ...)
Output: TransactionResult
Side effects: Status change recorded with the acting admin and time.
    Rejection credits the reserved amount back in the same unit of work.
Failure cases:
    - AdminRequiredError when the actor is not an admin
    - TransactionNotFoundError / WrongTransactionTypeError
    - InvalidTransitionError when the status is not the expected one,
      including when another admin got there first
    - DuplicateTxHashError for an already recorded payout hash
"""

import logging
from typing import Any, Callable
from uuid import UUID

from signalmarket.application.marketplace.dtos import (
    ApproveWithdrawalCommand,
    CompleteWithdrawalCommand,
    RejectWithdrawalCommand,
    TransactionResult,
    transaction_result,
)
from signalmarket.application.marketplace.guards import require_admin
from signalmarket.domain.marketplace.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from signalmarket.domain.marketplace.errors import (
    DuplicateTxHashError,
    InvalidTransitionError,
    TransactionNotFoundError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork
from signalmarket.domain.marketplace.transaction_state import ensure_transition

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by admin"


def apply_transition(
    uow: MarketplaceUnitOfWork,
    transaction_id: UUID,
    expected_type: TransactionType,
    target: TransactionStatus,
    **fields: Any,
) -> Transaction:
    """Validate and write one guarded status change.

    Returns:
        The transaction as it was before the change.

    Raises:
        TransactionNotFoundError, WrongTransactionTypeError,
        InvalidTransitionError.
    """
    transaction = uow.transactions.get(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(transaction_id)
    expected = ensure_transition(transaction, expected_type, target)
    if not uow.transactions.transition(transaction_id, expected, target, **fields):
        raise InvalidTransitionError(transaction_id, expected.value, target.value)
    return transaction


def _reload(uow: MarketplaceUnitOfWork, transaction_id: UUID) -> Transaction:
    transaction = uow.transactions.get(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(transaction_id)
    return transaction


class ApproveWithdrawalUseCase:
    """Marks a pending withdrawal as approved for payout."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: ApproveWithdrawalCommand) -> TransactionResult:
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            apply_transition(
                uow,
                command.transaction_id,
                TransactionType.WITHDRAWAL,
                TransactionStatus.APPROVED,
                approved_by=command.admin_id,
                approved_at=utcnow(),
            )
            updated = _reload(uow, command.transaction_id)
            uow.commit()

        logger.info(
            "Withdrawal %s approved by %s", command.transaction_id, command.admin_id
        )
        return transaction_result(updated)


class CompleteWithdrawalUseCase:
    """Marks an approved withdrawal as paid out."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: CompleteWithdrawalCommand) -> TransactionResult:
        """Complete the payout.

        Args:
            command: The withdrawal, the admin and an optional on-chain hash.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        tx_hash = (command.tx_hash or "").strip() or None
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            if tx_hash is not None and uow.transactions.find_by_tx_hash(tx_hash):
                raise DuplicateTxHashError(tx_hash)

            fields: dict[str, Any] = {
                "completed_by": command.admin_id,
                "completed_at": utcnow(),
            }
            if tx_hash is not None:
                fields["tx_hash"] = tx_hash
            apply_transition(
                uow,
                command.transaction_id,
                TransactionType.WITHDRAWAL,
                TransactionStatus.COMPLETED,
                **fields,
            )
            updated = _reload(uow, command.transaction_id)
            uow.commit()

        logger.info(
            "Withdrawal %s completed by %s", command.transaction_id, command.admin_id
        )
        return transaction_result(updated)


class RejectWithdrawalUseCase:
    """Fails a pending withdrawal and refunds the reserved amount."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: RejectWithdrawalCommand) -> TransactionResult:
        reason = (command.reason or "").strip() or DEFAULT_REJECTION_REASON
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            original = apply_transition(
                uow,
                command.transaction_id,
                TransactionType.WITHDRAWAL,
                TransactionStatus.FAILED,
                rejection_reason=reason,
                completed_by=command.admin_id,
                completed_at=utcnow(),
            )
            uow.ledger.credit(original.payer_id, original.amount)
            updated = _reload(uow, command.transaction_id)
            uow.commit()

        logger.warning(
            "Withdrawal %s rejected by %s, refunded %s to %s: %s",
            command.transaction_id,
            command.admin_id,
            original.amount,
            original.payer_id,
            reason,
        )
        return transaction_result(updated)
