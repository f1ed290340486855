"""
Use case: Subscribe to a provider's plan.

Input: SubscribeCommand (provider_id, subscriber_id, plan_name)
Output: SubscriptionResult
Side effects: Moves the plan price from subscriber to provider, creates the
    subscription and a completed Subscription transaction referencing it.
Failure cases:
    - ProviderNotFoundError / UserNotFoundError / PlanNotFoundError
    - SelfTradeError when subscribing to oneself
    - AlreadySubscribedError while an active, unexpired subscription exists
    - InsufficientFundsError (nothing is written)
"""

import logging
from datetime import timedelta
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    SubscribeCommand,
    SubscriptionResult,
)
from signalmarket.application.marketplace.guards import require_user
from signalmarket.domain.marketplace.entities import (
    ReferenceModel,
    Subscription,
    Transaction,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from signalmarket.domain.marketplace.errors import (
    AlreadySubscribedError,
    PlanNotFoundError,
    ProviderNotFoundError,
    SelfTradeError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)


class SubscribeUseCase:
    """Sells a subscription plan and grants access to gated signals."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        currency: str = "USDT",
        default_duration_days: int = 30,
    ) -> None:
        """Initialize the use case.

        Args:
            uow_factory: Opens a new unit of work per call.
            currency: Currency recorded on the transaction.
            default_duration_days: Used when a plan carries no duration.
        """
        self._uow_factory = uow_factory
        self._currency = currency
        self._default_duration_days = default_duration_days

    def execute(self, command: SubscribeCommand) -> SubscriptionResult:
        """Run the subscription.

        Args:
            command: Provider, subscriber and plan name.

        Returns:
            The created subscription.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        now = utcnow()
        with self._uow_factory() as uow:
            provider = uow.users.get(command.provider_id)
            if provider is None:
                raise ProviderNotFoundError(command.provider_id)
            if command.subscriber_id == command.provider_id:
                raise SelfTradeError("subscribe to")
            plan = provider.find_plan(command.plan_name)
            if plan is None:
                raise PlanNotFoundError(command.plan_name)
            require_user(uow, command.subscriber_id)

            uow.subscriptions.deactivate_expired(
                command.subscriber_id, command.provider_id, now
            )
            if uow.subscriptions.find_current(
                command.subscriber_id, command.provider_id, now
            ):
                raise AlreadySubscribedError(command.provider_id)

            duration = plan.duration_days or self._default_duration_days
            subscription = Subscription(
                subscriber_id=command.subscriber_id,
                provider_id=command.provider_id,
                plan_name=plan.name,
                price_paid=plan.price,
                start_date=now,
                end_date=now + timedelta(days=duration),
            )
            uow.ledger.transfer(command.subscriber_id, command.provider_id, plan.price)
            uow.subscriptions.add(subscription)
            transaction = uow.ledger.record(
                Transaction(
                    type=TransactionType.SUBSCRIPTION,
                    payer_id=command.subscriber_id,
                    payee_id=command.provider_id,
                    amount=plan.price,
                    currency=self._currency,
                    status=TransactionStatus.COMPLETED,
                    reference_id=subscription.id,
                    reference_model=ReferenceModel.SUBSCRIPTION,
                    payment_method="wallet",
                )
            )
            uow.commit()

        logger.info(
            "Subscriber %s bought plan %s of provider %s for %s %s",
            command.subscriber_id,
            plan.name,
            command.provider_id,
            plan.price,
            self._currency,
        )
        return SubscriptionResult(
            subscription_id=subscription.id,
            subscriber_id=subscription.subscriber_id,
            provider_id=subscription.provider_id,
            plan_name=subscription.plan_name,
            price_paid=subscription.price_paid,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            transaction_id=transaction.id,
        )
