"""
Use case: Submit an on-chain deposit for review.

Input: SubmitDepositCommand (user_id, amount, tx_hash, network)
Output: TransactionResult
Side effects: Records a pending Deposit transaction. The wallet is credited
    only when an admin approves it.
Failure cases:
    - InvalidAmountError for a non-positive amount
    - MissingFieldError when no transaction hash is given
    - UserNotFoundError
    - DuplicateTxHashError when the hash was already submitted, in any case
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    SubmitDepositCommand,
    TransactionResult,
    transaction_result,
)
from signalmarket.application.marketplace.guards import require_user
from signalmarket.domain.marketplace.entities import (
    ReferenceModel,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from signalmarket.domain.marketplace.errors import (
    DuplicateTxHashError,
    InvalidAmountError,
    MissingFieldError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)


class SubmitDepositUseCase:
    """Records a user's claim that they sent funds on-chain."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        currency: str = "USDT",
        default_network: str = "TRC20",
    ) -> None:
        self._uow_factory = uow_factory
        self._currency = currency
        self._default_network = default_network

    def execute(self, command: SubmitDepositCommand) -> TransactionResult:
        """Run the deposit submission.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        if command.amount is None or command.amount <= 0:
            raise InvalidAmountError(command.amount)
        tx_hash = (command.tx_hash or "").strip()
        if not tx_hash:
            raise MissingFieldError("tx_hash")

        with self._uow_factory() as uow:
            require_user(uow, command.user_id)
            if uow.transactions.find_by_tx_hash(tx_hash) is not None:
                logger.warning(
                    "Duplicate deposit hash submitted by %s", command.user_id
                )
                raise DuplicateTxHashError(tx_hash)
            transaction = uow.ledger.record(
                Transaction(
                    type=TransactionType.DEPOSIT,
                    payer_id=command.user_id,
                    amount=command.amount,
                    currency=self._currency,
                    status=TransactionStatus.PENDING,
                    reference_model=ReferenceModel.EXTERNAL,
                    payment_method="crypto",
                    network=command.network or self._default_network,
                    tx_hash=tx_hash,
                )
            )
            uow.commit()

        logger.info(
            "Deposit %s submitted by %s: %s %s",
            transaction.id,
            command.user_id,
            command.amount,
            self._currency,
        )
        return transaction_result(transaction)
