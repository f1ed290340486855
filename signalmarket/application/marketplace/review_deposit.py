"""
Use cases: Admin review of deposits.

    ApproveDepositUseCase  pending -> completed, wallet credited
    RejectDepositUseCase   pending -> failed, wallet untouched

Input: the matching command (transaction_id, admin_id, ...)
Output: TransactionResult
Failure cases:
    - AdminRequiredError when the actor is not an admin
    - TransactionNotFoundError / WrongTransactionTypeError
    - InvalidTransitionError when the deposit was already reviewed
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    ApproveDepositCommand,
    RejectDepositCommand,
    TransactionResult,
    transaction_result,
)
from signalmarket.application.marketplace.guards import require_admin
from signalmarket.application.marketplace.review_withdrawal import (
    apply_transition,
)
from signalmarket.domain.marketplace.entities import (
    TransactionStatus,
    TransactionType,
    utcnow,
)
from signalmarket.domain.marketplace.errors import TransactionNotFoundError
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


class ApproveDepositUseCase:
    """Accepts a deposit and credits the depositor's wallet."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: ApproveDepositCommand) -> TransactionResult:
        now = utcnow()
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            original = apply_transition(
                uow,
                command.transaction_id,
                TransactionType.DEPOSIT,
                TransactionStatus.COMPLETED,
                approved_by=command.admin_id,
                approved_at=now,
                completed_by=command.admin_id,
                completed_at=now,
            )
            uow.ledger.credit(original.payer_id, original.amount)
            updated = uow.transactions.get(command.transaction_id)
            if updated is None:
                raise TransactionNotFoundError(command.transaction_id)
            uow.commit()

        logger.info(
            "Deposit %s approved by %s, credited %s to %s",
            command.transaction_id,
            command.admin_id,
            original.amount,
            original.payer_id,
        )
        return transaction_result(updated)


class RejectDepositUseCase:
    """Declines a deposit without touching any wallet."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: RejectDepositCommand) -> TransactionResult:
        reason = (command.reason or "").strip() or DEFAULT_REJECTION_REASON
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            apply_transition(
                uow,
                command.transaction_id,
                TransactionType.DEPOSIT,
                TransactionStatus.FAILED,
                rejection_reason=reason,
                completed_by=command.admin_id,
                completed_at=utcnow(),
            )
            updated = uow.transactions.get(command.transaction_id)
            if updated is None:
                raise TransactionNotFoundError(command.transaction_id)
            uow.commit()

        logger.warning(
            "Deposit %s rejected by %s: %s",
            command.transaction_id,
            command.admin_id,
            reason,
        )
        return transaction_result(updated)
