"""
Use case: Follow a provider for free.

Input: FollowProviderCommand (provider_id, subscriber_id)
Output: SubscriptionResult
Side effects: Creates a zero-price "Follower" subscription that effectively
    never expires. No wallet movement and no transaction row.
Failure cases:
    - ProviderNotFoundError / UserNotFoundError
    - SelfTradeError when following oneself
    - AlreadySubscribedError while any current subscription exists
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable

from signalmarket.application.marketplace.dtos import (
    FollowProviderCommand,
    SubscriptionResult,
)
from signalmarket.application.marketplace.guards import require_user
from signalmarket.domain.marketplace.entities import Subscription, utcnow
from signalmarket.domain.marketplace.errors import (
    AlreadySubscribedError,
    ProviderNotFoundError,
    SelfTradeError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)

FOLLOWER_PLAN = "Follower"


class FollowProviderUseCase:
    """Creates a free Follower subscription."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        follower_years: int = 100,
    ) -> None:
        self._uow_factory = uow_factory
        self._follower_years = follower_years

    def execute(self, command: FollowProviderCommand) -> SubscriptionResult:
        """Run the follow.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        now = utcnow()
        with self._uow_factory() as uow:
            if uow.users.get(command.provider_id) is None:
                raise ProviderNotFoundError(command.provider_id)
            if command.subscriber_id == command.provider_id:
                raise SelfTradeError("follow")
            require_user(uow, command.subscriber_id)

            uow.subscriptions.deactivate_expired(
                command.subscriber_id, command.provider_id, now
            )
            if uow.subscriptions.find_current(
                command.subscriber_id, command.provider_id, now
            ):
                raise AlreadySubscribedError(command.provider_id)

            subscription = Subscription(
                subscriber_id=command.subscriber_id,
                provider_id=command.provider_id,
                plan_name=FOLLOWER_PLAN,
                price_paid=Decimal("0"),
                start_date=now,
                end_date=now + timedelta(days=365 * self._follower_years),
            )
            uow.subscriptions.add(subscription)
            uow.commit()

        logger.info(
            "User %s now follows provider %s",
            command.subscriber_id,
            command.provider_id,
        )
        return SubscriptionResult(
            subscription_id=subscription.id,
            subscriber_id=subscription.subscriber_id,
            provider_id=subscription.provider_id,
            plan_name=subscription.plan_name,
            price_paid=subscription.price_paid,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            transaction_id=None,
        )
