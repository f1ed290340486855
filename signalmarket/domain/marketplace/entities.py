"""
Domain entities for the marketplace bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
Price levels are kept as decimal strings, exactly as the provider typed them;
money amounts are Decimals.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime (storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class InstrumentCategory(Enum):
    """Market a signal's instrument belongs to."""

    CRYPTO = "Crypto"
    FOREX = "Forex"
    STOCKS = "Stocks"
    COMMODITIES = "Commodities"


class Direction(Enum):
    """Trade direction of a signal."""

    BUY = "BUY"
    SELL = "SELL"


class MonetizationType(Enum):
    """Access-gating policy attached to a signal."""

    FREE = "Free"
    PAY_PER_SIGNAL = "PayPerSignal"
    SUBSCRIPTION = "Subscription"
    PERFORMANCE = "Performance"


class SignalStatus(Enum):
    """Outcome of a signal. SUCCESS and FAILURE are never reverted to ACTIVE."""

    ACTIVE = "active"
    SUCCESS = "success"
    FAILURE = "failure"


class UserRole(Enum):
    """Marketplace role of an account."""

    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class TransactionType(Enum):
    """Kind of ledger entry."""

    SIGNAL_PURCHASE = "SignalPurchase"
    SUBSCRIPTION = "Subscription"
    PERFORMANCE_FEE = "PerformanceFee"
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"


class TransactionStatus(Enum):
    """Lifecycle state of a ledger entry."""

    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    FAILED = "failed"


class ReferenceModel(Enum):
    """What a transaction's reference id points at."""

    SIGNAL = "Signal"
    SUBSCRIPTION = "Subscription"
    EXTERNAL = "External"


class PurchaseStatus(Enum):
    """State of a signal purchase record."""

    COMPLETED = "completed"
    REFUNDED = "refunded"


# ── Monetization variants ────────────────────────────────────────────


@dataclass(frozen=True)
class Free:
    """Visible to every authenticated requester."""


@dataclass(frozen=True)
class PayPerSignal:
    """Unlocked by a one-off purchase at ``price``."""

    price: Decimal


@dataclass(frozen=True)
class SubscriptionGated:
    """Unlocked by an active subscription to the provider."""

    required_tier: Optional[str]


@dataclass(frozen=True)
class PerformanceFee:
    """Visible on access; ``fee`` is settled later, outside this core."""

    fee: Decimal


Monetization = Union[Free, PayPerSignal, SubscriptionGated, PerformanceFee]


# ── Entities ─────────────────────────────────────────────────────────


@dataclass
class Signal:
    """A published trade recommendation with entry, target and stop levels."""

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
    id: UUID = field(default_factory=uuid4)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    expired: bool = False
    status: SignalStatus = SignalStatus.ACTIVE
    hit_stop_loss: bool = False
    hit_targets: list[int] = field(default_factory=list)
    last_price: Optional[Decimal] = None
    purchased_count: int = 0
    purchased_by: list[UUID] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def monetization(self) -> Monetization:
        """Return the tagged monetization variant for this signal."""
        if self.monetization_type is MonetizationType.PAY_PER_SIGNAL:
            return PayPerSignal(price=self.price)
        if self.monetization_type is MonetizationType.SUBSCRIPTION:
            return SubscriptionGated(required_tier=self.required_tier)
        if self.monetization_type is MonetizationType.PERFORMANCE:
            return PerformanceFee(fee=self.performance_fee)
        return Free()

    def is_purchased_by(self, user_id: UUID) -> bool:
        """Return True if ``user_id`` is recorded among the buyers."""
        return user_id in self.purchased_by


@dataclass(frozen=True)
class SubscriptionPlan:
    """A tier a provider sells, e.g. "Basic", "Pro", "VIP"."""

    name: str
    price: Decimal
    duration_days: int = 30
    perks: tuple[str, ...] = ()


@dataclass
class UserAccount:
    """Wallet-relevant view of a marketplace user."""

    id: UUID = field(default_factory=uuid4)
    display_name: str = ""
    role: UserRole = UserRole.BUYER
    wallet_balance: Decimal = Decimal("0")
    subscription_plans: list[SubscriptionPlan] = field(default_factory=list)
    performance_fee_percent: Decimal = Decimal("0")

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def find_plan(self, name: str) -> Optional[SubscriptionPlan]:
        """Return the plan called ``name``, or None."""
        for plan in self.subscription_plans:
            if plan.name == name:
                return plan
        return None


@dataclass(frozen=True)
class SignalPurchase:
    """Entitlement record: ``buyer_id`` unlocked ``signal_id``."""

    signal_id: UUID
    buyer_id: UUID
    provider_id: UUID
    price_paid: Decimal
    currency: str = "USDT"
    id: UUID = field(default_factory=uuid4)
    status: PurchaseStatus = PurchaseStatus.COMPLETED
    purchased_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Subscription:
    """A subscriber's access to every Subscription-mode signal of a provider."""

    subscriber_id: UUID
    provider_id: UUID
    plan_name: str
    price_paid: Decimal
    start_date: datetime
    end_date: datetime
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    auto_renew: bool = False

    def is_current(self, now: datetime) -> bool:
        """Return True while the subscription is active and unexpired."""
        return self.is_active and self.end_date > now


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry. Only its status fields ever change."""

    type: TransactionType
    payer_id: UUID
    amount: Decimal
    status: TransactionStatus
    payee_id: Optional[UUID] = None
    currency: str = "USDT"
    reference_id: Optional[UUID] = None
    reference_model: Optional[ReferenceModel] = None
    id: UUID = field(default_factory=uuid4)
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    completed_by: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    tx_hash: Optional[str] = None
    rejection_reason: Optional[str] = None
    payment_method: Optional[str] = None
    network: Optional[str] = None
    destination_address: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class DepositVerification:
    """Advisory result of an on-chain deposit check."""

    valid: bool
    reason: Optional[str] = None
    amount: Optional[Decimal] = None
    sender: Optional[str] = None


@dataclass(frozen=True)
class ProviderStanding:
    """A provider's leaderboard row."""

    provider_id: UUID
    display_name: str
    total_signals: int
    success_count: int
    failure_count: int
    rank: int = 0

    @property
    def win_rate(self) -> int:
        """Rounded percentage of signals that resolved as success."""
        if self.total_signals == 0:
            return 0
        rate = Decimal(self.success_count * 100) / Decimal(self.total_signals)
        return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
