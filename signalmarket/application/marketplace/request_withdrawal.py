"""
Use case: Request a withdrawal from the wallet.

Input: RequestWithdrawalCommand (user_id, amount, destination_address, network)
Output: TransactionResult
Side effects: Debits the wallet immediately and records a pending Withdrawal
    transaction. The debit is refunded if an admin rejects the request.
Failure cases:
    - InvalidAmountError for a non-positive amount
    - MissingFieldError when no destination address is given
    - UserNotFoundError
    - InsufficientFundsError (nothing is written)
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    RequestWithdrawalCommand,
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
    InvalidAmountError,
    MissingFieldError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)


class RequestWithdrawalUseCase:
    """Reserves funds for a payout that an admin will later settle."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        currency: str = "USDT",
        default_network: str = "TRC20",
    ) -> None:
        self._uow_factory = uow_factory
        self._currency = currency
        self._default_network = default_network

    def execute(self, command: RequestWithdrawalCommand) -> TransactionResult:
        """Run the withdrawal request.

        Args:
            command: Requesting user, amount and payout destination.

        Returns:
            The pending Withdrawal transaction.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        if command.amount is None or command.amount <= 0:
            raise InvalidAmountError(command.amount)
        destination = (command.destination_address or "").strip()
        if not destination:
            raise MissingFieldError("destination")

        with self._uow_factory() as uow:
            require_user(uow, command.user_id)
            uow.ledger.debit(command.user_id, command.amount)
            transaction = uow.ledger.record(
                Transaction(
                    type=TransactionType.WITHDRAWAL,
                    payer_id=command.user_id,
                    amount=command.amount,
                    currency=self._currency,
                    status=TransactionStatus.PENDING,
                    reference_model=ReferenceModel.EXTERNAL,
                    payment_method="crypto",
                    network=command.network or self._default_network,
                    destination_address=destination,
                )
            )
            uow.commit()

        logger.info(
            "Withdrawal %s requested by %s: %s %s",
            transaction.id,
            command.user_id,
            command.amount,
            self._currency,
        )
        return transaction_result(transaction)
