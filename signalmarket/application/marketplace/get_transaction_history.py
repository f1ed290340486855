"""
Use cases: Transaction listings.

    GetTransactionHistoryUseCase  a user's latest entries as payer or payee
    ListWithdrawalsUseCase        every withdrawal (admin)
    ListDepositsUseCase           deposits, optionally pending only (admin)
    ListUserTransactionsUseCase   one user's entries, optionally by type (admin)

Output: list[TransactionResult], newest first.
Side effects: None (read-only queries).
Failure cases:
    - AdminRequiredError for the admin listings.
    - UserNotFoundError when the looked-up account does not exist.
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    GetTransactionHistoryQuery,
    ListDepositsQuery,
    ListUserTransactionsQuery,
    ListWithdrawalsQuery,
    TransactionResult,
    transaction_result,
)
from signalmarket.application.marketplace.guards import require_admin
from signalmarket.domain.marketplace.entities import (
    TransactionStatus,
    TransactionType,
)
from signalmarket.domain.marketplace.errors import UserNotFoundError
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)


class GetTransactionHistoryUseCase:
    """Returns the requester's most recent ledger entries."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, query: GetTransactionHistoryQuery) -> list[TransactionResult]:
        with self._uow_factory() as uow:
            transactions = uow.transactions.list_for_user(query.user_id, query.limit)
        return [transaction_result(t) for t in transactions]


class ListWithdrawalsUseCase:
    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, query: ListWithdrawalsQuery) -> list[TransactionResult]:
        with self._uow_factory() as uow:
            require_admin(uow, query.admin_id)
            transactions = uow.transactions.list_by_type(TransactionType.WITHDRAWAL)
        return [transaction_result(t) for t in transactions]


class ListDepositsUseCase:
    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, query: ListDepositsQuery) -> list[TransactionResult]:
        status = TransactionStatus.PENDING if query.pending_only else None
        with self._uow_factory() as uow:
            require_admin(uow, query.admin_id)
            transactions = uow.transactions.list_by_type(
                TransactionType.DEPOSIT, status=status
            )
        logger.info(
            "Admin %s listed %d deposits (pending_only=%s)",
            query.admin_id,
            len(transactions),
            query.pending_only,
        )
        return [transaction_result(t) for t in transactions]


class ListUserTransactionsUseCase:
    """Returns every ledger entry of one account for an admin."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, query: ListUserTransactionsQuery) -> list[TransactionResult]:
        with self._uow_factory() as uow:
            require_admin(uow, query.admin_id)
            if uow.users.get(query.user_id) is None:
                raise UserNotFoundError(query.user_id)
            transactions = uow.transactions.list_for_user(
                query.user_id, transaction_type=query.transaction_type
            )
        return [transaction_result(t) for t in transactions]
