"""
Data Transfer Objects for the marketplace application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from signalmarket.domain.marketplace.entities import (
    Direction,
    InstrumentCategory,
    MonetizationType,
    Transaction,
    TransactionType,
)


# ── Signal read path ─────────────────────────────────────────────────


@dataclass(frozen=True)
class ListSignalsQuery:
    """Input DTO for listing signals.

    Attributes:
        requester_id: Authenticated user, or None for a guest.
        category: Optional instrument category filter.
        provider_id: Optional provider filter.
    """

    requester_id: Optional[UUID] = None
    category: Optional[InstrumentCategory] = None
    provider_id: Optional[UUID] = None


@dataclass(frozen=True)
class GetSignalQuery:
    """Input DTO for a single signal."""

    signal_id: UUID
    requester_id: Optional[UUID]


@dataclass(frozen=True)
class GetPurchasedSignalsQuery:
    """Input DTO for the requester's unlocked signals."""

    requester_id: UUID


@dataclass(frozen=True)
class GetTrendingSignalsQuery:
    limit: int = 5


@dataclass(frozen=True)
class TrendingSignalResult:
    """Output DTO for a trending signal teaser."""

    id: UUID
    provider_id: UUID
    coin_pair: str
    direction: str
    current_price: Optional[Decimal]
    purchased_count: int
    status: str
    price: Decimal


# ── Signal write path ────────────────────────────────────────────────


@dataclass(frozen=True)
class CreateSignalCommand:
    """Input DTO for publishing a signal.

    Attributes:
        provider_id: The publishing seller.
        take_profits: Ordered take-profit levels as decimal strings.
        monetization_type: Access policy; ``price``, ``required_tier`` and
            ``performance_fee`` are read according to it.
    """

    provider_id: UUID
    coin_pair: str
    category: InstrumentCategory
    direction: Direction
    entry_zone: str
    take_profits: list[str]
    stop_loss: str
    confidence: int
    reasoning: str
    time_window: str = ""
    monetization_type: MonetizationType = MonetizationType.FREE
    price: Decimal = Decimal("0")
    required_tier: Optional[str] = None
    performance_fee: Decimal = Decimal("0")
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


@dataclass(frozen=True)
class UpdateSignalCommand:
    """Input DTO for editing a signal. ``changes`` maps field name to value."""

    signal_id: UUID
    requester_id: UUID
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteSignalCommand:
    signal_id: UUID
    requester_id: UUID


@dataclass(frozen=True)
class RefreshSignalOutcomesCommand:
    """Input DTO for a refresh run. ``admin_id`` None means a system run."""

    admin_id: Optional[UUID] = None


@dataclass(frozen=True)
class RefreshOutcomesResult:
    """Output DTO summarizing a refresh run.

    Attributes:
        evaluated: Signals that had a price and were evaluated.
        unpriced: Signals skipped because no price was available.
        updated: Signals persisted because something changed.
        failed: Signals that hit their stop-loss in this run.
        succeeded: Signals that became a success in this run.
    """

    evaluated: int
    unpriced: int
    updated: int
    failed: int
    succeeded: int


# ── Settlement ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class UnlockSignalCommand:
    signal_id: UUID
    buyer_id: UUID


@dataclass(frozen=True)
class UnlockSignalResult:
    """Output DTO for an unlocked signal.

    Attributes:
        transaction_id: Ledger entry for the payment, None for free signals.
    """

    purchase_id: UUID
    signal_id: UUID
    buyer_id: UUID
    provider_id: UUID
    price_paid: Decimal
    transaction_id: Optional[UUID]


@dataclass(frozen=True)
class SubscribeCommand:
    provider_id: UUID
    subscriber_id: UUID
    plan_name: str


@dataclass(frozen=True)
class FollowProviderCommand:
    provider_id: UUID
    subscriber_id: UUID


@dataclass(frozen=True)
class SubscriptionResult:
    """Output DTO for a created subscription."""

    subscription_id: UUID
    subscriber_id: UUID
    provider_id: UUID
    plan_name: str
    price_paid: Decimal
    start_date: datetime
    end_date: datetime
    transaction_id: Optional[UUID]


@dataclass(frozen=True)
class RequestWithdrawalCommand:
    """Input DTO for a withdrawal request.

    Attributes:
        network: Chain to pay out on; defaults to the configured network.
    """

    user_id: UUID
    amount: Decimal
    destination_address: str
    network: Optional[str] = None


@dataclass(frozen=True)
class ApproveWithdrawalCommand:
    transaction_id: UUID
    admin_id: UUID


@dataclass(frozen=True)
class CompleteWithdrawalCommand:
    transaction_id: UUID
    admin_id: UUID
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class RejectWithdrawalCommand:
    transaction_id: UUID
    admin_id: UUID
    reason: Optional[str] = None


@dataclass(frozen=True)
class SubmitDepositCommand:
    user_id: UUID
    amount: Decimal
    tx_hash: str
    network: Optional[str] = None


@dataclass(frozen=True)
class ApproveDepositCommand:
    transaction_id: UUID
    admin_id: UUID


@dataclass(frozen=True)
class RejectDepositCommand:
    transaction_id: UUID
    admin_id: UUID
    reason: Optional[str] = None


@dataclass(frozen=True)
class VerifyDepositCommand:
    transaction_id: UUID
    admin_id: UUID


@dataclass(frozen=True)
class VerifyDepositResult:
    """Output DTO for an advisory on-chain check. Never changes state."""

    transaction_id: UUID
    valid: bool
    reason: Optional[str]
    amount: Optional[Decimal]
    sender: Optional[str]


@dataclass(frozen=True)
class TransactionResult:
    """Output DTO for a ledger entry."""

    id: UUID
    type: str
    status: str
    payer_id: UUID
    payee_id: Optional[UUID]
    amount: Decimal
    currency: str
    reference_id: Optional[UUID]
    network: Optional[str]
    destination_address: Optional[str]
    tx_hash: Optional[str]
    rejection_reason: Optional[str]
    approved_by: Optional[UUID]
    approved_at: Optional[datetime]
    completed_by: Optional[UUID]
    completed_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class GetTransactionHistoryQuery:
    user_id: UUID
    limit: int = 20


@dataclass(frozen=True)
class ListWithdrawalsQuery:
    admin_id: UUID


@dataclass(frozen=True)
class ListDepositsQuery:
    admin_id: UUID
    pending_only: bool = False


@dataclass(frozen=True)
class ListUserTransactionsQuery:
    """Input DTO for an admin lookup of one user's ledger entries.

    Attributes:
        admin_id: The reviewing admin.
        user_id: Account whose entries are listed, as payer or payee.
        transaction_type: Only entries of this type, when given.
    """

    admin_id: UUID
    user_id: UUID
    transaction_type: Optional[TransactionType] = None


@dataclass(frozen=True)
class DepositChannel:
    """Where and how users send funds on one network."""

    network: str
    address: str
    currency: str
    confirmations: int


# ── Providers ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LeaderboardEntryResult:
    """Output DTO for one leaderboard row."""

    rank: int
    provider_id: UUID
    name: str
    signals: int
    win_rate: int
    success_count: int
    failure_count: int


def transaction_result(transaction: Transaction) -> TransactionResult:
    """Map a ledger entry to its output DTO."""
    return TransactionResult(
        id=transaction.id,
        type=transaction.type.value,
        status=transaction.status.value,
        payer_id=transaction.payer_id,
        payee_id=transaction.payee_id,
        amount=transaction.amount,
        currency=transaction.currency,
        reference_id=transaction.reference_id,
        network=transaction.network,
        destination_address=transaction.destination_address,
        tx_hash=transaction.tx_hash,
        rejection_reason=transaction.rejection_reason,
        approved_by=transaction.approved_by,
        approved_at=transaction.approved_at,
        completed_by=transaction.completed_by,
        completed_at=transaction.completed_at,
        created_at=transaction.created_at,
    )
