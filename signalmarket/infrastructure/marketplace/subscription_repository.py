"""
Adapter: Subscription repository.

Implements SubscriptionRepository. A partial unique index allows only one
active row per (subscriber, provider); expired rows are deactivated before
a new subscription is added so they do not block it.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from signalmarket.domain.marketplace.entities import Subscription
from signalmarket.domain.marketplace.errors import AlreadySubscribedError
from signalmarket.domain.marketplace.ports import SubscriptionRepository
from signalmarket.infrastructure.marketplace.tables import subscriptions


class SqlAlchemySubscriptionRepository(SubscriptionRepository):
    """SQLAlchemy Core implementation of the subscription repository."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def find_current(
        self, subscriber_id: UUID, provider_id: UUID, now: datetime
    ) -> Optional[Subscription]:
        row = self._conn.execute(
            select(subscriptions).where(
                subscriptions.c.subscriber_id == subscriber_id,
                subscriptions.c.provider_id == provider_id,
                subscriptions.c.is_active.is_(True),
                subscriptions.c.end_date > now,
            )
        ).mappings().first()
        return _to_subscription(row) if row is not None else None

    def active_provider_ids(self, subscriber_id: UUID, now: datetime) -> set[UUID]:
        return set(
            self._conn.execute(
                select(subscriptions.c.provider_id).where(
                    subscriptions.c.subscriber_id == subscriber_id,
                    subscriptions.c.is_active.is_(True),
                    subscriptions.c.end_date > now,
                )
            ).scalars()
        )

    def deactivate_expired(
        self, subscriber_id: UUID, provider_id: UUID, now: datetime
    ) -> int:
        result = self._conn.execute(
            update(subscriptions)
            .where(
                subscriptions.c.subscriber_id == subscriber_id,
                subscriptions.c.provider_id == provider_id,
                subscriptions.c.is_active.is_(True),
                subscriptions.c.end_date <= now,
            )
            .values(is_active=False)
        )
        return result.rowcount

    def add(self, subscription: Subscription) -> None:
        try:
            self._conn.execute(
                insert(subscriptions).values(
                    id=subscription.id,
                    subscriber_id=subscription.subscriber_id,
                    provider_id=subscription.provider_id,
                    plan_name=subscription.plan_name,
                    price_paid=subscription.price_paid,
                    start_date=subscription.start_date,
                    end_date=subscription.end_date,
                    is_active=subscription.is_active,
                    auto_renew=subscription.auto_renew,
                )
            )
        except IntegrityError as exc:
            raise AlreadySubscribedError(subscription.provider_id) from exc


def _to_subscription(row) -> Subscription:
    return Subscription(
        id=row["id"],
        subscriber_id=row["subscriber_id"],
        provider_id=row["provider_id"],
        plan_name=row["plan_name"],
        price_paid=Decimal(row["price_paid"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        is_active=row["is_active"],
        auto_renew=row["auto_renew"],
    )
