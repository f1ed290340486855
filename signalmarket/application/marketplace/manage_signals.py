"""
Use cases: Signal write path.

    CreateSignalUseCase   sellers publish a signal
    UpdateSignalUseCase   the owner edits a signal; the provider never changes
    DeleteSignalUseCase   the owner removes a signal

Input: the matching command DTO.
Output: the stored Signal (create, update) or None (delete).
Failure cases:
    - UserNotFoundError / SellerRequiredError on create
    - SignalNotFoundError / NotOwnerError on update and delete
    - ValidationError subclasses for malformed fields
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from signalmarket.application.marketplace.dtos import (
    CreateSignalCommand,
    DeleteSignalCommand,
    UpdateSignalCommand,
)
from signalmarket.application.marketplace.guards import require_user
from signalmarket.domain.marketplace.entities import (
    MonetizationType,
    Signal,
    UserRole,
    utcnow,
)
from signalmarket.domain.marketplace.errors import (
    InvalidAmountError,
    MissingFieldError,
    NotOwnerError,
    SellerRequiredError,
    SignalNotFoundError,
    ValidationError,
)
from signalmarket.domain.marketplace.outcome_evaluator import parse_level
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = frozenset({"required_tier", "valid_from", "valid_to"})

EDITABLE_FIELDS = frozenset(
    {
        "coin_pair",
        "category",
        "direction",
        "entry_zone",
        "take_profits",
        "stop_loss",
        "confidence",
        "reasoning",
        "time_window",
        "monetization_type",
        "price",
        "required_tier",
        "performance_fee",
        "valid_from",
        "valid_to",
        "expired",
    }
)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def validate_signal(signal: Signal) -> Signal:
    """Normalize and check a signal before it is stored.

    Returns:
        The signal with its coin pair upper-cased.

    Raises:
        MissingFieldError: For an empty pair, entry zone or level list.
        ValidationError: For unparseable levels or confidence outside 1-100.
        InvalidAmountError: For negative money amounts or an unpriced
            PayPerSignal signal.
    """
    coin_pair = (signal.coin_pair or "").strip().upper()
    if not coin_pair:
        raise MissingFieldError("coin_pair")
    if not (signal.entry_zone or "").strip():
        raise MissingFieldError("entry_zone")
    if not signal.take_profits:
        raise MissingFieldError("take_profits")
    for level in [*signal.take_profits, signal.stop_loss]:
        if parse_level(level) is None:
            raise ValidationError(f"Invalid price level: {level}", code="invalid_level")
    if not 1 <= signal.confidence <= 100:
        raise ValidationError(
            "Confidence must be between 1 and 100", code="invalid_confidence"
        )
    for amount in (signal.price, signal.performance_fee):
        if amount is None or amount < 0:
            raise InvalidAmountError(amount)
    if signal.monetization_type is MonetizationType.PAY_PER_SIGNAL and signal.price <= 0:
        raise InvalidAmountError(signal.price)
    valid_from = _naive_utc(signal.valid_from)
    valid_to = _naive_utc(signal.valid_to)
    if valid_from and valid_to and valid_to < valid_from:
        raise ValidationError(
            "valid_to must not be before valid_from", code="invalid_window"
        )
    return replace(
        signal,
        coin_pair=coin_pair,
        take_profits=[str(level).strip() for level in signal.take_profits],
        stop_loss=str(signal.stop_loss).strip(),
        valid_from=valid_from,
        valid_to=valid_to,
    )


class CreateSignalUseCase:
    """Publishes a new signal for a seller."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: CreateSignalCommand) -> Signal:
        """Run the creation.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        signal = validate_signal(
            Signal(
                provider_id=command.provider_id,
                coin_pair=command.coin_pair,
                category=command.category,
                direction=command.direction,
                entry_zone=command.entry_zone,
                take_profits=list(command.take_profits),
                stop_loss=command.stop_loss,
                confidence=command.confidence,
                reasoning=command.reasoning,
                time_window=command.time_window,
                monetization_type=command.monetization_type,
                price=command.price,
                required_tier=command.required_tier,
                performance_fee=command.performance_fee,
                valid_from=command.valid_from or utcnow(),
                valid_to=command.valid_to,
            )
        )
        with self._uow_factory() as uow:
            provider = require_user(uow, command.provider_id)
            if provider.role is not UserRole.SELLER:
                raise SellerRequiredError()
            uow.signals.add(signal)
            uow.commit()

        logger.info(
            "Signal %s published by %s: %s %s (%s)",
            signal.id,
            signal.provider_id,
            signal.direction.value,
            signal.coin_pair,
            signal.monetization_type.value,
        )
        return signal


class UpdateSignalUseCase:
    """Applies an owner's edits to a signal."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: UpdateSignalCommand) -> Signal:
        """Run the update.

        Unknown keys and ``provider_id`` in ``changes`` are ignored.

        Raises:
            MarketplaceDomainError: See module docstring.
        """
        changes: dict[str, Any] = {
            key: value
            for key, value in command.changes.items()
            if key in EDITABLE_FIELDS
            and (value is not None or key in NULLABLE_FIELDS)
        }
        for key in ("price", "performance_fee"):
            if key in changes and changes[key] is not None:
                changes[key] = Decimal(str(changes[key]))

        with self._uow_factory() as uow:
            signal = uow.signals.get(command.signal_id, for_update=True)
            if signal is None:
                raise SignalNotFoundError(command.signal_id)
            if signal.provider_id != command.requester_id:
                raise NotOwnerError(command.signal_id)
            updated = validate_signal(replace(signal, **changes))
            uow.signals.update(updated)
            uow.commit()

        logger.info(
            "Signal %s updated by owner (%s)",
            command.signal_id,
            ", ".join(sorted(changes)) or "no changes",
        )
        return updated


class DeleteSignalUseCase:
    """Removes a signal on its owner's request."""

    def __init__(self, uow_factory: Callable[[], MarketplaceUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, command: DeleteSignalCommand) -> None:
        with self._uow_factory() as uow:
            signal = uow.signals.get(command.signal_id, for_update=True)
            if signal is None:
                raise SignalNotFoundError(command.signal_id)
            if signal.provider_id != command.requester_id:
                raise NotOwnerError(command.signal_id)
            uow.signals.delete(command.signal_id)
            uow.commit()

        logger.info("Signal %s deleted by owner", command.signal_id)
