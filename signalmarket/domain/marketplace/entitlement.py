"""
Entitlement resolution for signals.

Decides, for a (signal, requester) pair, whether the requester may see the
full signal or only the locked teaser, and builds the matching projection.

The resolver is pure: callers gather the requester's unlocked signal ids and
the providers they actively subscribe to (one lookup each per request) and
pass them in. Resolving a batch gives exactly the decisions that resolving
each signal on its own would give.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import UUID

from signalmarket.domain.marketplace.entities import (
    Free,
    PayPerSignal,
    PerformanceFee,
    Signal,
    SubscriptionGated,
)

REDACTED = "***"
ANONYMOUS_REASONING = "Login to view"
LOCKED_REASONING = "Unlock to view reasoning"


class AccessReason(Enum):
    """Which rule decided a signal's visibility."""

    ANONYMOUS = "anonymous"
    OWNER = "owner"
    FREE = "free"
    PURCHASED = "purchased"
    SUBSCRIBED = "subscribed"
    PERFORMANCE = "performance"
    NOT_PURCHASED = "not_purchased"
    NOT_SUBSCRIBED = "not_subscribed"


_GRANTING = {
    AccessReason.OWNER,
    AccessReason.FREE,
    AccessReason.PURCHASED,
    AccessReason.SUBSCRIBED,
    AccessReason.PERFORMANCE,
}


@dataclass(frozen=True)
class SignalProjection:
    """What a requester gets to see of one signal."""

    signal_id: UUID
    is_locked: bool
    reason: AccessReason
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        body = {key: _jsonable(value) for key, value in self.fields.items()}
        body["is_locked"] = self.is_locked
        return body


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class EntitlementResolver:
    """Computes visibility decisions and projections for signals."""

    def decide(
        self,
        signal: Signal,
        requester_id: Optional[UUID],
        purchased_signal_ids: set[UUID],
        active_subscription_provider_ids: set[UUID],
    ) -> AccessReason:
        """Return the rule that decides access, first match wins."""
        if requester_id is None:
            return AccessReason.ANONYMOUS
        if requester_id == signal.provider_id:
            return AccessReason.OWNER

        monetization = signal.monetization
        if isinstance(monetization, Free):
            return AccessReason.FREE
        if isinstance(monetization, PayPerSignal):
            if signal.id in purchased_signal_ids or signal.is_purchased_by(requester_id):
                return AccessReason.PURCHASED
            return AccessReason.NOT_PURCHASED
        if isinstance(monetization, SubscriptionGated):
            if signal.provider_id in active_subscription_provider_ids:
                return AccessReason.SUBSCRIBED
            return AccessReason.NOT_SUBSCRIBED
        if isinstance(monetization, PerformanceFee):
            return AccessReason.PERFORMANCE
        return AccessReason.NOT_PURCHASED

    def resolve(
        self,
        signal: Signal,
        requester_id: Optional[UUID],
        purchased_signal_ids: set[UUID],
        active_subscription_provider_ids: set[UUID],
        current_price: Optional[Decimal] = None,
    ) -> SignalProjection:
        """Return the full or locked projection of ``signal`` for the requester."""
        reason = self.decide(
            signal,
            requester_id,
            purchased_signal_ids,
            active_subscription_provider_ids,
        )
        if reason in _GRANTING:
            return SignalProjection(
                signal_id=signal.id,
                is_locked=False,
                reason=reason,
                fields=full_fields(signal, current_price),
            )
        return SignalProjection(
            signal_id=signal.id,
            is_locked=True,
            reason=reason,
            fields=locked_fields(
                signal,
                current_price,
                anonymous=reason is AccessReason.ANONYMOUS,
            ),
        )

    def resolve_many(
        self,
        signals: Iterable[Signal],
        requester_id: Optional[UUID],
        purchased_signal_ids: set[UUID],
        active_subscription_provider_ids: set[UUID],
        prices: Optional[dict[str, Decimal]] = None,
    ) -> list[SignalProjection]:
        """Resolve a batch of signals against one requester context."""
        prices = prices or {}
        return [
            self.resolve(
                signal,
                requester_id,
                purchased_signal_ids,
                active_subscription_provider_ids,
                current_price=prices.get(signal.coin_pair),
            )
            for signal in signals
        ]


def full_fields(signal: Signal, current_price: Optional[Decimal] = None) -> dict[str, Any]:
    """Every field of the signal."""
    return {
        "id": signal.id,
        "provider_id": signal.provider_id,
        "coin_pair": signal.coin_pair,
        "current_price": current_price,
        "category": signal.category,
        "direction": signal.direction,
        "entry_zone": signal.entry_zone,
        "take_profits": list(signal.take_profits),
        "stop_loss": signal.stop_loss,
        "confidence": signal.confidence,
        "reasoning": signal.reasoning,
        "time_window": signal.time_window,
        "monetization_type": signal.monetization_type,
        "price": signal.price,
        "required_tier": signal.required_tier,
        "performance_fee": signal.performance_fee,
        "valid_from": signal.valid_from,
        "valid_to": signal.valid_to,
        "expired": signal.expired,
        "status": signal.status,
        "hit_stop_loss": signal.hit_stop_loss,
        "hit_targets": list(signal.hit_targets),
        "last_price": signal.last_price,
        "purchased_count": signal.purchased_count,
        "purchased_by": list(signal.purchased_by),
        "created_at": signal.created_at,
    }


def locked_fields(
    signal: Signal,
    current_price: Optional[Decimal] = None,
    anonymous: bool = False,
) -> dict[str, Any]:
    """Teaser view: trade levels and reasoning are redacted."""
    return {
        "id": signal.id,
        "provider_id": signal.provider_id,
        "coin_pair": signal.coin_pair,
        "current_price": current_price,
        "category": signal.category,
        "direction": signal.direction,
        "monetization_type": signal.monetization_type,
        "price": signal.price,
        "required_tier": signal.required_tier,
        "performance_fee": signal.performance_fee,
        "entry_zone": REDACTED,
        "take_profits": [REDACTED],
        "stop_loss": REDACTED,
        "confidence": signal.confidence,
        "reasoning": ANONYMOUS_REASONING if anonymous else LOCKED_REASONING,
        "time_window": signal.time_window,
        "status": signal.status,
        "purchased_count": signal.purchased_count,
        "created_at": signal.created_at,
    }
