"""
Use case: Rank signal providers by win rate.

Input: none
Output: list[LeaderboardEntryResult]
Side effects: None (read-only query).
Failure cases: None.

Win rate is the rounded share of a provider's signals that resolved as a
success. Ties are broken by the number of signals published.
"""

import logging
from typing import Callable

from signalmarket.application.marketplace.dtos import LeaderboardEntryResult
from signalmarket.domain.marketplace.entities import ProviderStanding, UserRole
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)


class GetLeaderboardUseCase:
    """Builds the provider leaderboard."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self) -> list[LeaderboardEntryResult]:
        with self._uow_factory() as uow:
            sellers = uow.users.list_by_role(UserRole.SELLER)
            counts = uow.signals.outcome_counts_by_provider()

        standings = []
        for seller in sellers:
            total, successes, failures = counts.get(seller.id, (0, 0, 0))
            standings.append(
                ProviderStanding(
                    provider_id=seller.id,
                    display_name=seller.display_name.strip() or "Anonymous",
                    total_signals=total,
                    success_count=successes,
                    failure_count=failures,
                )
            )
        standings.sort(key=lambda s: (s.win_rate, s.total_signals), reverse=True)

        logger.info("Leaderboard built for %d providers", len(standings))
        return [
            LeaderboardEntryResult(
                rank=rank,
                provider_id=standing.provider_id,
                name=standing.display_name,
                signals=standing.total_signals,
                win_rate=standing.win_rate,
                success_count=standing.success_count,
                failure_count=standing.failure_count,
            )
            for rank, standing in enumerate(standings, start=1)
        ]
