"""
Use cases: Signal read path.

    ListSignalsUseCase           every signal, projected for the requester
    GetSignalUseCase             one signal, projected for the requester
    GetPurchasedSignalsUseCase   the requester's unlocked, unexpired signals
    GetTrendingSignalsUseCase    most purchased signals, teaser view

Input: the matching query DTO.
Output: SignalProjection(s) or TrendingSignalResult list.
Side effects: None (read-only). Live prices are attached when available.
Failure cases:
    - SignalNotFoundError for an unknown signal id.

The requester's purchases and active subscriptions are loaded once per call
and shared across the batch.
"""

import logging
from typing import Callable, Iterable, Optional
from uuid import UUID

from signalmarket.application.marketplace.dtos import (
    GetPurchasedSignalsQuery,
    GetSignalQuery,
    GetTrendingSignalsQuery,
    ListSignalsQuery,
    TrendingSignalResult,
)
from signalmarket.domain.marketplace.entitlement import (
    EntitlementResolver,
    SignalProjection,
)
from signalmarket.domain.marketplace.entities import Signal, utcnow
from signalmarket.domain.marketplace.errors import SignalNotFoundError
from signalmarket.domain.marketplace.ports import (
    MarketplaceUnitOfWork,
    PriceOraclePort,
)

logger = logging.getLogger(__name__)


def _requester_context(
    uow: MarketplaceUnitOfWork, requester_id: Optional[UUID]
) -> tuple[set[UUID], set[UUID]]:
    """Return (purchased signal ids, actively subscribed provider ids)."""
    if requester_id is None:
        return set(), set()
    purchased = uow.purchases.purchased_signal_ids(requester_id)
    providers = uow.subscriptions.active_provider_ids(requester_id, utcnow())
    return purchased, providers


def _prices_for(oracle: PriceOraclePort, signals: Iterable[Signal]) -> dict:
    pairs = {signal.coin_pair for signal in signals}
    if not pairs:
        return {}
    return oracle.get_many_prices(pairs)


class ListSignalsUseCase:
    """Lists signals with per-requester visibility applied."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        price_oracle: PriceOraclePort,
        resolver: Optional[EntitlementResolver] = None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow_factory: Opens a read-only unit of work.
            price_oracle: Source of the current price attached to each signal.
            resolver: Visibility rules; a default instance is used if omitted.
        """
        self._uow_factory = uow_factory
        self._price_oracle = price_oracle
        self._resolver = resolver or EntitlementResolver()

    def execute(self, query: ListSignalsQuery) -> list[SignalProjection]:
        """Run the listing.

        Args:
            query: Requester and optional filters.

        Returns:
            Projections, newest signal first.
        """
        with self._uow_factory() as uow:
            signals = uow.signals.find(
                category=query.category, provider_id=query.provider_id
            )
            purchased, providers = _requester_context(uow, query.requester_id)

        prices = _prices_for(self._price_oracle, signals)
        logger.info(
            "Listing %d signals for requester=%s (%d priced)",
            len(signals),
            query.requester_id,
            len(prices),
        )
        return self._resolver.resolve_many(
            signals, query.requester_id, purchased, providers, prices
        )


class GetSignalUseCase:
    """Returns one signal with per-requester visibility applied."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        price_oracle: PriceOraclePort,
        resolver: Optional[EntitlementResolver] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._price_oracle = price_oracle
        self._resolver = resolver or EntitlementResolver()

    def execute(self, query: GetSignalQuery) -> SignalProjection:
        """Run the lookup.

        Raises:
            SignalNotFoundError: If the signal does not exist.
        """
        with self._uow_factory() as uow:
            signal = uow.signals.get(query.signal_id)
            if signal is None:
                raise SignalNotFoundError(query.signal_id)
            purchased, providers = _requester_context(uow, query.requester_id)

        price = self._price_oracle.get_price(signal.coin_pair)
        return self._resolver.resolve(
            signal, query.requester_id, purchased, providers, current_price=price
        )


class GetPurchasedSignalsUseCase:
    """Returns the signals the requester has unlocked and that are still live."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        price_oracle: PriceOraclePort,
        resolver: Optional[EntitlementResolver] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._price_oracle = price_oracle
        self._resolver = resolver or EntitlementResolver()

    def execute(self, query: GetPurchasedSignalsQuery) -> list[SignalProjection]:
        with self._uow_factory() as uow:
            purchased, providers = _requester_context(uow, query.requester_id)
            signals = [
                signal
                for signal in uow.signals.list_by_ids(purchased)
                if not signal.expired
            ]

        signals.sort(key=lambda signal: signal.created_at, reverse=True)
        prices = _prices_for(self._price_oracle, signals)
        return self._resolver.resolve_many(
            signals, query.requester_id, purchased, providers, prices
        )


class GetTrendingSignalsUseCase:
    """Returns the most purchased signals as teasers with a live price."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        price_oracle: PriceOraclePort,
    ) -> None:
        self._uow_factory = uow_factory
        self._price_oracle = price_oracle

    def execute(self, query: GetTrendingSignalsQuery) -> list[TrendingSignalResult]:
        with self._uow_factory() as uow:
            signals = uow.signals.list_trending(query.limit)

        prices = _prices_for(self._price_oracle, signals)
        return [
            TrendingSignalResult(
                id=signal.id,
                provider_id=signal.provider_id,
                coin_pair=signal.coin_pair,
                direction=signal.direction.value,
                current_price=prices.get(signal.coin_pair),
                purchased_count=signal.purchased_count,
                status=signal.status.value,
                price=signal.price,
            )
            for signal in signals
        ]
