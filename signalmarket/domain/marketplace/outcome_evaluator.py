"""
Signal outcome evaluation.

Resolves a signal against a live price:

    1. Nothing happens without a usable price or once the signal has failed.
    2. Stop-loss first, for active signals. BUY fails at price <= SL,
       SELL at price >= SL. A hit ends the evaluation; failure is permanent.
    3. Take-profits next. BUY hits a level at price >= TP, SELL at
       price <= TP. Every newly crossed level is recorded and the signal
       becomes a success. Success keeps collecting levels.
    4. The last observed price follows the market.

The evaluator never touches storage; callers persist only evaluations that
report a change.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from signalmarket.domain.marketplace.entities import (
    Direction,
    Signal,
    SignalStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutcomeEvaluation:
    """Result of one evaluation: the (possibly) updated signal."""

    signal: Signal
    changed: bool
    hit_stop_loss: bool = False
    new_targets: tuple[int, ...] = ()


def parse_level(level: Union[str, Decimal, int, float, None]) -> Optional[Decimal]:
    """Parse a stored price level. Returns None for anything unusable."""
    if level is None:
        return None
    try:
        value = Decimal(str(level).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def usable_price(price: Union[Decimal, int, float, str, None]) -> Optional[Decimal]:
    """Return the price as a Decimal if it can drive an evaluation."""
    value = parse_level(price)
    if value is None or value <= 0:
        return None
    return value


class SignalOutcomeEvaluator:
    """Applies stop-loss and take-profit rules to a signal."""

    def evaluate(
        self,
        signal: Signal,
        current_price: Union[Decimal, int, float, str, None],
    ) -> OutcomeEvaluation:
        """Evaluate ``signal`` at ``current_price``.

        Args:
            signal: The signal to evaluate. It is not mutated.
            current_price: Latest market price, or None if unavailable.

        Returns:
            An OutcomeEvaluation holding the updated copy of the signal.
        """
        price = usable_price(current_price)
        if price is None or signal.status is SignalStatus.FAILURE:
            return OutcomeEvaluation(signal=signal, changed=False)

        status = signal.status
        hit_stop_loss = signal.hit_stop_loss
        hit_targets = list(signal.hit_targets)
        new_targets: list[int] = []
        changed = False

        # A success is never turned into a failure.
        stop_loss = parse_level(signal.stop_loss)
        if (
            signal.status is SignalStatus.ACTIVE
            and stop_loss is not None
            and self._crossed_stop(signal.direction, price, stop_loss)
        ):
            hit_stop_loss = True
            status = SignalStatus.FAILURE
            changed = True

        if not hit_stop_loss:
            for index, raw_level in enumerate(signal.take_profits):
                if index in hit_targets:
                    continue
                level = parse_level(raw_level)
                if level is None:
                    continue
                if self._crossed_target(signal.direction, price, level):
                    hit_targets.append(index)
                    new_targets.append(index)
                    status = SignalStatus.SUCCESS
                    changed = True

        last_price = signal.last_price
        if last_price is None or last_price != price:
            last_price = price
            changed = True

        if not changed:
            return OutcomeEvaluation(signal=signal, changed=False)

        updated = replace(
            signal,
            status=status,
            hit_stop_loss=hit_stop_loss,
            hit_targets=sorted(hit_targets),
            last_price=last_price,
        )
        if status is not signal.status:
            logger.info(
                "Signal %s %s -> %s at price %s",
                signal.id,
                signal.status.value,
                status.value,
                price,
            )
        return OutcomeEvaluation(
            signal=updated,
            changed=True,
            hit_stop_loss=hit_stop_loss and not signal.hit_stop_loss,
            new_targets=tuple(new_targets),
        )

    @staticmethod
    def _crossed_stop(direction: Direction, price: Decimal, stop_loss: Decimal) -> bool:
        if direction is Direction.BUY:
            return price <= stop_loss
        return price >= stop_loss

    @staticmethod
    def _crossed_target(direction: Direction, price: Decimal, level: Decimal) -> bool:
        if direction is Direction.BUY:
            return price >= level
        return price <= level
