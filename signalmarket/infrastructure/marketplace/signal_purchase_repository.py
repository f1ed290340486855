"""
Adapter: Signal purchase repository.

Implements SignalPurchaseRepository. The (signal, buyer) unique constraint
is what makes a second unlock impossible, even under concurrency.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from signalmarket.domain.marketplace.entities import PurchaseStatus, SignalPurchase
from signalmarket.domain.marketplace.errors import AlreadyPurchasedError
from signalmarket.domain.marketplace.ports import SignalPurchaseRepository
from signalmarket.infrastructure.marketplace.tables import signal_purchases


class SqlAlchemySignalPurchaseRepository(SignalPurchaseRepository):
    """SQLAlchemy Core implementation of the purchase repository."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def exists(self, signal_id: UUID, buyer_id: UUID) -> bool:
        return (
            self._conn.execute(
                select(signal_purchases.c.id).where(
                    signal_purchases.c.signal_id == signal_id,
                    signal_purchases.c.buyer_id == buyer_id,
                )
            ).first()
            is not None
        )

    def add(self, purchase: SignalPurchase) -> None:
        try:
            self._conn.execute(
                insert(signal_purchases).values(
                    id=purchase.id,
                    signal_id=purchase.signal_id,
                    buyer_id=purchase.buyer_id,
                    provider_id=purchase.provider_id,
                    price_paid=purchase.price_paid,
                    currency=purchase.currency,
                    status=purchase.status.value,
                    purchased_at=purchase.purchased_at,
                )
            )
        except IntegrityError as exc:
            raise AlreadyPurchasedError(purchase.signal_id) from exc

    def purchased_signal_ids(self, buyer_id: UUID) -> set[UUID]:
        return set(
            self._conn.execute(
                select(signal_purchases.c.signal_id).where(
                    signal_purchases.c.buyer_id == buyer_id
                )
            ).scalars()
        )

    def list_by_buyer(self, buyer_id: UUID) -> list[SignalPurchase]:
        rows = self._conn.execute(
            select(signal_purchases)
            .where(signal_purchases.c.buyer_id == buyer_id)
            .order_by(signal_purchases.c.purchased_at.desc())
        ).mappings().all()
        return [
            SignalPurchase(
                id=row["id"],
                signal_id=row["signal_id"],
                buyer_id=row["buyer_id"],
                provider_id=row["provider_id"],
                price_paid=Decimal(row["price_paid"]),
                currency=row["currency"],
                status=PurchaseStatus(row["status"]),
                purchased_at=row["purchased_at"],
            )
            for row in rows
        ]
