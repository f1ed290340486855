"""
Adapter: Marketplace account repository.

Implements UserAccountRepository on the unit of work's connection.
Subscription plans are stored in their own table and loaded with the account.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection

from signalmarket.domain.marketplace.entities import (
    SubscriptionPlan,
    UserAccount,
    UserRole,
    utcnow,
)
from signalmarket.domain.marketplace.ports import UserAccountRepository
from signalmarket.infrastructure.marketplace.tables import subscription_plans, users


class SqlAlchemyUserAccountRepository(UserAccountRepository):
    """SQLAlchemy Core implementation of the account repository."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def get(self, user_id: UUID) -> Optional[UserAccount]:
        row = self._conn.execute(
            select(users).where(users.c.id == user_id)
        ).mappings().first()
        if row is None:
            return None
        plans = self._plans_for([user_id])
        return _to_account(row, plans.get(user_id, []))

    def add(self, account: UserAccount) -> None:
        self._conn.execute(
            insert(users).values(
                id=account.id,
                display_name=account.display_name,
                role=account.role.value,
                wallet_balance=account.wallet_balance,
                performance_fee_percent=account.performance_fee_percent,
                created_at=utcnow(),
            )
        )
        if account.subscription_plans:
            self._conn.execute(
                insert(subscription_plans),
                [
                    {
                        "provider_id": account.id,
                        "name": plan.name,
                        "price": plan.price,
                        "duration_days": plan.duration_days,
                        "perks": list(plan.perks),
                    }
                    for plan in account.subscription_plans
                ],
            )

    def list_by_role(self, role: UserRole) -> list[UserAccount]:
        rows = self._conn.execute(
            select(users).where(users.c.role == role.value).order_by(users.c.created_at)
        ).mappings().all()
        plans = self._plans_for([row["id"] for row in rows])
        return [_to_account(row, plans.get(row["id"], [])) for row in rows]

    def _plans_for(self, user_ids: list[UUID]) -> dict[UUID, list[SubscriptionPlan]]:
        if not user_ids:
            return {}
        rows = self._conn.execute(
            select(subscription_plans)
            .where(subscription_plans.c.provider_id.in_(user_ids))
            .order_by(subscription_plans.c.id)
        ).mappings().all()
        plans: dict[UUID, list[SubscriptionPlan]] = defaultdict(list)
        for row in rows:
            plans[row["provider_id"]].append(
                SubscriptionPlan(
                    name=row["name"],
                    price=Decimal(row["price"]),
                    duration_days=row["duration_days"],
                    perks=tuple(row["perks"] or ()),
                )
            )
        return plans


def _to_account(row, plans: list[SubscriptionPlan]) -> UserAccount:
    return UserAccount(
        id=row["id"],
        display_name=row["display_name"],
        role=UserRole(row["role"]),
        wallet_balance=Decimal(row["wallet_balance"]),
        subscription_plans=plans,
        performance_fee_percent=Decimal(row["performance_fee_percent"]),
    )
