"""
Adapter: Signal repository.

Implements SignalRepository. The buyers of a signal are read from the
purchases table, so "purchased by" can never disagree with the entitlement
records. Outcome saves never overwrite a signal stored as failed.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.engine import Connection

from signalmarket.domain.marketplace.entities import (
    Direction,
    InstrumentCategory,
    MonetizationType,
    Signal,
    SignalStatus,
)
from signalmarket.domain.marketplace.errors import SignalNotFoundError
from signalmarket.domain.marketplace.ports import SignalRepository
from signalmarket.infrastructure.marketplace.tables import signal_purchases, signals


class SqlAlchemySignalRepository(SignalRepository):
    """SQLAlchemy Core implementation of the signal repository."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def get(self, signal_id: UUID, for_update: bool = False) -> Optional[Signal]:
        query = select(signals).where(signals.c.id == signal_id)
        if for_update:
            query = query.with_for_update()
        row = self._conn.execute(query).mappings().first()
        if row is None:
            return None
        return _to_signal(row, self._buyers_for([signal_id]).get(signal_id, []))

    def find(
        self,
        category: Optional[InstrumentCategory] = None,
        provider_id: Optional[UUID] = None,
    ) -> list[Signal]:
        query = select(signals)
        if category is not None:
            query = query.where(signals.c.category == category.value)
        if provider_id is not None:
            query = query.where(signals.c.provider_id == provider_id)
        return self._load(query.order_by(signals.c.created_at.desc()))

    def list_by_ids(self, signal_ids: Iterable[UUID]) -> list[Signal]:
        ids = list(signal_ids)
        if not ids:
            return []
        return self._load(select(signals).where(signals.c.id.in_(ids)))

    def list_trending(self, limit: int) -> list[Signal]:
        return self._load(
            select(signals)
            .order_by(signals.c.purchased_count.desc(), signals.c.created_at.desc())
            .limit(limit)
        )

    def list_for_evaluation(self) -> list[Signal]:
        return self._load(
            select(signals).where(signals.c.status != SignalStatus.FAILURE.value)
        )

    def add(self, signal: Signal) -> None:
        self._conn.execute(
            insert(signals).values(
                id=signal.id,
                provider_id=signal.provider_id,
                created_at=signal.created_at,
                status=signal.status.value,
                hit_stop_loss=signal.hit_stop_loss,
                hit_targets=list(signal.hit_targets),
                last_price=signal.last_price,
                purchased_count=signal.purchased_count,
                **_editable_values(signal),
            )
        )

    def update(self, signal: Signal) -> None:
        result = self._conn.execute(
            update(signals)
            .where(signals.c.id == signal.id)
            .values(**_editable_values(signal))
        )
        if result.rowcount != 1:
            raise SignalNotFoundError(signal.id)

    def delete(self, signal_id: UUID) -> None:
        self._conn.execute(delete(signals).where(signals.c.id == signal_id))

    def record_buyer(self, signal_id: UUID, buyer_id: UUID) -> None:
        """Count the purchase. The buyer itself lives in signal_purchases."""
        result = self._conn.execute(
            update(signals)
            .where(signals.c.id == signal_id)
            .values(purchased_count=signals.c.purchased_count + 1)
        )
        if result.rowcount != 1:
            raise SignalNotFoundError(signal_id)

    def save_outcome(self, signal: Signal) -> bool:
        result = self._conn.execute(
            update(signals)
            .where(
                signals.c.id == signal.id,
                signals.c.status != SignalStatus.FAILURE.value,
            )
            .values(
                status=signal.status.value,
                hit_stop_loss=signal.hit_stop_loss,
                hit_targets=sorted(signal.hit_targets),
                last_price=signal.last_price,
            )
        )
        return result.rowcount == 1

    def outcome_counts_by_provider(self) -> dict[UUID, tuple[int, int, int]]:
        rows = self._conn.execute(
            select(
                signals.c.provider_id,
                func.count(),
                func.sum(case((signals.c.status == SignalStatus.SUCCESS.value, 1), else_=0)),
                func.sum(case((signals.c.status == SignalStatus.FAILURE.value, 1), else_=0)),
            ).group_by(signals.c.provider_id)
        ).all()
        return {
            provider_id: (int(total), int(successes or 0), int(failures or 0))
            for provider_id, total, successes, failures in rows
        }

    def _load(self, query) -> list[Signal]:
        rows = self._conn.execute(query).mappings().all()
        buyers = self._buyers_for([row["id"] for row in rows])
        return [_to_signal(row, buyers.get(row["id"], [])) for row in rows]

    def _buyers_for(self, signal_ids: list[UUID]) -> dict[UUID, list[UUID]]:
        if not signal_ids:
            return {}
        rows = self._conn.execute(
            select(signal_purchases.c.signal_id, signal_purchases.c.buyer_id)
            .where(signal_purchases.c.signal_id.in_(signal_ids))
            .order_by(signal_purchases.c.purchased_at)
        ).all()
        buyers: dict[UUID, list[UUID]] = defaultdict(list)
        for signal_id, buyer_id in rows:
            buyers[signal_id].append(buyer_id)
        return buyers


def _editable_values(signal: Signal) -> dict:
    return {
        "coin_pair": signal.coin_pair,
        "category": signal.category.value,
        "direction": signal.direction.value,
        "entry_zone": signal.entry_zone,
        "take_profits": list(signal.take_profits),
        "stop_loss": signal.stop_loss,
        "confidence": signal.confidence,
        "reasoning": signal.reasoning,
        "time_window": signal.time_window,
        "monetization_type": signal.monetization_type.value,
        "price": signal.price,
        "required_tier": signal.required_tier,
        "performance_fee": signal.performance_fee,
        "valid_from": signal.valid_from,
        "valid_to": signal.valid_to,
        "expired": signal.expired,
    }


def _to_signal(row, buyers: list[UUID]) -> Signal:
    last_price = row["last_price"]
    return Signal(
        id=row["id"],
        provider_id=row["provider_id"],
        coin_pair=row["coin_pair"],
        category=InstrumentCategory(row["category"]),
        direction=Direction(row["direction"]),
        entry_zone=row["entry_zone"],
        take_profits=list(row["take_profits"] or []),
        stop_loss=row["stop_loss"],
        confidence=row["confidence"],
        reasoning=row["reasoning"],
        time_window=row["time_window"],
        monetization_type=MonetizationType(row["monetization_type"]),
        price=Decimal(row["price"]),
        required_tier=row["required_tier"],
        performance_fee=Decimal(row["performance_fee"]),
        valid_from=row["valid_from"],
        valid_to=row["valid_to"],
        expired=row["expired"],
        status=SignalStatus(row["status"]),
        hit_stop_loss=row["hit_stop_loss"],
        hit_targets=sorted(row["hit_targets"] or []),
        last_price=Decimal(last_price) if last_price is not None else None,
        purchased_count=row["purchased_count"],
        purchased_by=buyers,
        created_at=row["created_at"],
    )
