"""
Use case: Unlock a signal for a buyer.

Input: UnlockSignalCommand (signal_id, buyer_id)
Output: UnlockSignalResult
Side effects: For PayPerSignal, moves ``price`` from buyer to provider and
    records a completed SignalPurchase transaction. For both Free and
    PayPerSignal, records the purchase and appends the buyer to the signal.
Failure cases:
    - SignalNotFoundError / UserNotFoundError / ProviderNotFoundError
    - NotUnlockableError for Subscription and Performance signals
    - SelfTradeError when the buyer is the provider
    - AlreadyPurchasedError on a second unlock
    - InsufficientFundsError (nothing is written)
"""

import logging
from decimal import Decimal
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    UnlockSignalCommand,
    UnlockSignalResult,
)
from signalmarket.application.marketplace.guards import require_user
from signalmarket.domain.marketplace.entities import (
    MonetizationType,
    ReferenceModel,
    SignalPurchase,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from signalmarket.domain.marketplace.errors import (
    AlreadyPurchasedError,
    NotUnlockableError,
    ProviderNotFoundError,
    SelfTradeError,
    SignalNotFoundError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)

_UNLOCKABLE = {MonetizationType.FREE, MonetizationType.PAY_PER_SIGNAL}


class UnlockSignalUseCase:
    """Grants a buyer permanent access to one Free or PayPerSignal signal."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        currency: str = "USDT",
    ) -> None:
        """Initialize the use case.

        Args:
            uow_factory: Opens a new unit of work per call.
            currency: Currency recorded on purchases and transactions.
        """
        self._uow_factory = uow_factory
        self._currency = currency

    def execute(self, command: UnlockSignalCommand) -> UnlockSignalResult:
        """Run the unlock.

        Args:
            command: Which signal and which buyer.

        Returns:
            The recorded purchase.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        with self._uow_factory() as uow:
            signal = uow.signals.get(command.signal_id, for_update=True)
            if signal is None:
                raise SignalNotFoundError(command.signal_id)
            if signal.monetization_type not in _UNLOCKABLE:
                raise NotUnlockableError(signal.monetization_type.value)

            require_user(uow, command.buyer_id)
            if command.buyer_id == signal.provider_id:
                raise SelfTradeError("unlock a signal from")
            if signal.is_purchased_by(command.buyer_id) or uow.purchases.exists(
                signal.id, command.buyer_id
            ):
                raise AlreadyPurchasedError(signal.id)
            if uow.users.get(signal.provider_id) is None:
                raise ProviderNotFoundError(signal.provider_id)

            price = Decimal("0")
            transaction_id = None
            if signal.monetization_type is MonetizationType.PAY_PER_SIGNAL:
                price = signal.price
                uow.ledger.transfer(command.buyer_id, signal.provider_id, price)
                transaction = uow.ledger.record(
                    Transaction(
                        type=TransactionType.SIGNAL_PURCHASE,
                        payer_id=command.buyer_id,
                        payee_id=signal.provider_id,
                        amount=price,
                        currency=self._currency,
                        status=TransactionStatus.COMPLETED,
                        reference_id=signal.id,
                        reference_model=ReferenceModel.SIGNAL,
                        payment_method="wallet",
                    )
                )
                transaction_id = transaction.id

            purchase = SignalPurchase(
                signal_id=signal.id,
                buyer_id=command.buyer_id,
                provider_id=signal.provider_id,
                price_paid=price,
                currency=self._currency,
            )
            uow.purchases.add(purchase)
            uow.signals.record_buyer(signal.id, command.buyer_id)
            uow.commit()

        logger.info(
            "Signal %s unlocked by %s for %s %s",
            signal.id,
            command.buyer_id,
            price,
            self._currency,
        )
        return UnlockSignalResult(
            purchase_id=purchase.id,
            signal_id=signal.id,
            buyer_id=command.buyer_id,
            provider_id=signal.provider_id,
            price_paid=price,
            transaction_id=transaction_id,
        )
