"""
Use case: Check a deposit against the blockchain.

Input: VerifyDepositCommand (transaction_id, admin_id)
Output: VerifyDepositResult
Side effects: None. The result only advises the reviewing admin.
Failure cases:
    - AdminRequiredError / TransactionNotFoundError
    - WrongTransactionTypeError for non-deposits
    - UnsupportedNetworkError when no explorer covers the network
    - UpstreamUnavailableError when the explorer cannot be reached
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    VerifyDepositCommand,
    VerifyDepositResult,
)
from signalmarket.application.marketplace.guards import require_admin
from signalmarket.domain.marketplace.entities import TransactionType
from signalmarket.domain.marketplace.errors import (
    MissingFieldError,
    TransactionNotFoundError,
    UnsupportedNetworkError,
    WrongTransactionTypeError,
)
from signalmarket.domain.marketplace.ports import (
    BlockchainVerifierPort,
    MarketplaceUnitOfWork,
)

logger = logging.getLogger(__name__)


class VerifyDepositUseCase:
    """Looks up a deposit's hash on the matching block explorer."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        verifier: BlockchainVerifierPort,
    ) -> None:
        """Initialize the use case.

        Args:
            uow_factory: Opens a read-only unit of work.
            verifier: Explorer client used for the on-chain lookup.
        """
        self._uow_factory = uow_factory
        self._verifier = verifier

    def execute(self, command: VerifyDepositCommand) -> VerifyDepositResult:
        """Run the verification.

        The lookup happens after the unit of work is closed so no database
        transaction is held open across the network call.
        """
        with self._uow_factory() as uow:
            require_admin(uow, command.admin_id)
            transaction = uow.transactions.get(command.transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(command.transaction_id)
        if transaction.type is not TransactionType.DEPOSIT:
            raise WrongTransactionTypeError(TransactionType.DEPOSIT.value)
        if not self._verifier.supports(transaction.network):
            raise UnsupportedNetworkError(transaction.network)
        if not transaction.tx_hash:
            raise MissingFieldError("tx_hash")

        verification = self._verifier.verify(
            transaction.network, transaction.tx_hash, transaction.amount
        )
        logger.info(
            "Deposit %s verification on %s: valid=%s reason=%s",
            transaction.id,
            transaction.network,
            verification.valid,
            verification.reason,
        )
        return VerifyDepositResult(
            transaction_id=transaction.id,
            valid=verification.valid,
            reason=verification.reason,
            amount=verification.amount,
            sender=verification.sender,
        )
