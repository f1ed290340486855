"""
Use case: Resolve open signals against live prices.

Input: RefreshSignalOutcomesCommand (optional admin_id)
Output: RefreshOutcomesResult
Side effects: Persists status, hit flags and last price of every signal whose
    evaluation changed something. Each such signal is locked and evaluated
    again against its stored state before the write, so overlapping passes
    only ever add hits. A signal stored as failed is never written again.
Failure cases:
    - AdminRequiredError when an admin_id is given that is not an admin.
    - Missing prices are not errors; those signals are skipped.
"""

import logging
from typing import Callable, Optional

from signalmarket.application.marketplace.dtos import (
    RefreshOutcomesResult,
    RefreshSignalOutcomesCommand,
)
from signalmarket.application.marketplace.guards import require_admin
from signalmarket.domain.marketplace.entities import SignalStatus
from signalmarket.domain.marketplace.outcome_evaluator import (
    SignalOutcomeEvaluator,
)
from signalmarket.domain.marketplace.ports import (
    MarketplaceUnitOfWork,
    PriceOraclePort,
)

logger = logging.getLogger(__name__)


class RefreshSignalOutcomesUseCase:
    """Runs the outcome evaluator over every signal that can still change."""

    def __init__(
        self,
        uow_factory: Callable[[], MarketplaceUnitOfWork],
        price_oracle: PriceOraclePort,
        evaluator: Optional[SignalOutcomeEvaluator] = None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow_factory: Opens units of work for reading and saving.
            price_oracle: Batch source of current prices.
            evaluator: Outcome rules; a default instance is used if omitted.
        """
        self._uow_factory = uow_factory
        self._price_oracle = price_oracle
        self._evaluator = evaluator or SignalOutcomeEvaluator()

    def execute(
        self, command: Optional[RefreshSignalOutcomesCommand] = None
    ) -> RefreshOutcomesResult:
        """Run one refresh pass.

        Prices are fetched outside any database transaction. Changed signals
        are re-read under a row lock and saved together in a single unit of
        work.
        """
        command = command or RefreshSignalOutcomesCommand()
        with self._uow_factory() as uow:
            if command.admin_id is not None:
                require_admin(uow, command.admin_id)
            signals = uow.signals.list_for_evaluation()

        prices = self._price_oracle.get_many_prices(
            {signal.coin_pair for signal in signals}
        )

        evaluated = unpriced = updated = failed = succeeded = 0
        changed = []
        for signal in signals:
            price = prices.get(signal.coin_pair)
            if price is None:
                unpriced += 1
                continue
            evaluated += 1
            if self._evaluator.evaluate(signal, price).changed:
                changed.append((signal.id, price))

        if changed:
            # Rows are locked in id order.
            changed.sort(key=lambda item: item[0])
            with self._uow_factory() as uow:
                for signal_id, price in changed:
                    current = uow.signals.get(signal_id, for_update=True)
                    if current is None:
                        continue
                    evaluation = self._evaluator.evaluate(current, price)
                    if not evaluation.changed:
                        continue
                    if not uow.signals.save_outcome(evaluation.signal):
                        continue
                    updated += 1
                    if evaluation.signal.status is not current.status:
                        if evaluation.signal.status is SignalStatus.FAILURE:
                            failed += 1
                        elif evaluation.signal.status is SignalStatus.SUCCESS:
                            succeeded += 1
                uow.commit()

        logger.info(
            "Outcome refresh: evaluated=%d unpriced=%d updated=%d "
            "failed=%d succeeded=%d",
            evaluated,
            unpriced,
            updated,
            failed,
            succeeded,
        )
        return RefreshOutcomesResult(
            evaluated=evaluated,
            unpriced=unpriced,
            updated=updated,
            failed=failed,
            succeeded=succeeded,
        )
