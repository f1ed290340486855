"""
Pydantic schemas for marketplace API request/response validation.

These schemas enforce input validation and define the API contract.
No business logic belongs here. Signal projections are returned as plain
JSON objects because locked and unlocked views carry different fields.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from signalmarket.domain.marketplace.entities import (
    Direction,
    InstrumentCategory,
    MonetizationType,
)

PAIR_PATTERN = r"^[A-Za-z0-9]{2,12}/[A-Za-z0-9]{2,12}$"
LEVEL_MAX_LEN = 32
NETWORK_PATTERN = r"^[A-Za-z0-9]{3,16}$"

SignalView = dict[str, Any]


# ------------------------------------------------------------------
# Signals
# ------------------------------------------------------------------


class SignalCreateRequest(BaseModel):
    """Request schema for publishing a signal.

    Attributes:
        coin_pair: Instrument, e.g. "BTC/USDT".
        take_profits: Ordered take-profit levels as decimal strings.
        confidence: Provider confidence, 1-100.
        price: Unlock price, required for PayPerSignal.
        required_tier: Plan tier for Subscription signals.
        performance_fee: Fee percent for Performance signals.
    """

    coin_pair: str = Field(..., pattern=PAIR_PATTERN, description="e.g. BTC/USDT")
    category: InstrumentCategory
    direction: Direction
    entry_zone: str = Field(..., min_length=1, max_length=64)
    take_profits: list[str] = Field(..., min_length=1, max_length=10)
    stop_loss: str = Field(..., min_length=1, max_length=LEVEL_MAX_LEN)
    confidence: int = Field(..., ge=1, le=100)
    reasoning: str = Field(default="", max_length=5000)
    time_window: str = Field(default="", max_length=64)
    monetization_type: MonetizationType = MonetizationType.FREE
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=20, decimal_places=8)
    required_tier: str | None = Field(default=None, max_length=64)
    performance_fee: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    valid_from: datetime | None = None
    valid_to: datetime | None = None


class SignalUpdateRequest(BaseModel):
    """Request schema for editing a signal. Only sent fields are changed."""

    coin_pair: str | None = Field(default=None, pattern=PAIR_PATTERN)
    category: InstrumentCategory | None = None
    direction: Direction | None = None
    entry_zone: str | None = Field(default=None, min_length=1, max_length=64)
    take_profits: list[str] | None = Field(default=None, min_length=1, max_length=10)
    stop_loss: str | None = Field(default=None, min_length=1, max_length=LEVEL_MAX_LEN)
    confidence: int | None = Field(default=None, ge=1, le=100)
    reasoning: str | None = Field(default=None, max_length=5000)
    time_window: str | None = Field(default=None, max_length=64)
    monetization_type: MonetizationType | None = None
    price: Decimal | None = Field(default=None, ge=0)
    required_tier: str | None = Field(default=None, max_length=64)
    performance_fee: Decimal | None = Field(default=None, ge=0, le=100)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    expired: bool | None = None


class TrendingSignalResponse(BaseModel):
    """A trending signal teaser."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider_id: UUID
    coin_pair: str
    direction: str
    current_price: Decimal | None
    purchased_count: int
    status: str
    price: Decimal


class RefreshOutcomesResponse(BaseModel):
    """Summary of one outcome refresh run."""

    model_config = ConfigDict(from_attributes=True)

    evaluated: int
    unpriced: int
    updated: int
    failed: int
    succeeded: int


# ------------------------------------------------------------------
# Payments
# ------------------------------------------------------------------


class UnlockSignalRequest(BaseModel):
    signal_id: UUID


class UnlockSignalResponse(BaseModel):
    """Response schema for an unlocked signal."""

    model_config = ConfigDict(from_attributes=True)

    purchase_id: UUID
    signal_id: UUID
    buyer_id: UUID
    provider_id: UUID
    price_paid: Decimal
    transaction_id: UUID | None


class SubscribeRequest(BaseModel):
    provider_id: UUID
    plan_name: str = Field(..., min_length=1, max_length=64)


class FollowRequest(BaseModel):
    provider_id: UUID


class SubscriptionResponse(BaseModel):
    """Response schema for a created subscription."""

    model_config = ConfigDict(from_attributes=True)

    subscription_id: UUID
    subscriber_id: UUID
    provider_id: UUID
    plan_name: str
    price_paid: Decimal
    start_date: datetime
    end_date: datetime
    transaction_id: UUID | None


class WithdrawRequest(BaseModel):
    """Request schema for a withdrawal.

    Attributes:
        amount: Positive amount to pay out.
        destination_address: Wallet address to pay out to.
        network: Payout chain; the configured default when omitted.
    """

    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=8)
    destination_address: str = Field(..., min_length=1, max_length=128)
    network: str | None = Field(default=None, pattern=NETWORK_PATTERN)


class DepositRequest(BaseModel):
    """Request schema for a deposit claim.

    Attributes:
        amount: Positive amount sent on-chain.
        tx_hash: On-chain transaction hash. Unique regardless of case.
        network: Chain the funds were sent on.
    """

    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=8)
    tx_hash: str = Field(..., min_length=1, max_length=128)
    network: str | None = Field(default=None, pattern=NETWORK_PATTERN)


class DepositChannelResponse(BaseModel):
    """A wallet users can send deposits to."""

    model_config = ConfigDict(from_attributes=True)

    network: str
    address: str
    currency: str
    confirmations: int


class TransactionResponse(BaseModel):
    """A ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    status: str
    payer_id: UUID
    payee_id: UUID | None
    amount: Decimal
    currency: str
    reference_id: UUID | None
    network: str | None
    destination_address: str | None
    tx_hash: str | None
    rejection_reason: str | None
    approved_by: UUID | None
    approved_at: datetime | None
    completed_by: UUID | None
    completed_at: datetime | None
    created_at: datetime


# ------------------------------------------------------------------
# Admin
# ------------------------------------------------------------------


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class CompleteWithdrawalRequest(BaseModel):
    tx_hash: str | None = Field(default=None, max_length=128)


class VerificationDetails(BaseModel):
    amount: Decimal | None
    sender: str | None


class VerifyDepositResponse(BaseModel):
    """Advisory result of an on-chain deposit check."""

    transaction_id: UUID
    valid: bool
    reason: str | None
    details: VerificationDetails | None


# ------------------------------------------------------------------
# Providers / health / errors
# ------------------------------------------------------------------


class LeaderboardEntryResponse(BaseModel):
    """One provider on the leaderboard."""

    model_config = ConfigDict(from_attributes=True)

    rank: int
    provider_id: UUID
    name: str
    signals: int
    win_rate: int
    success_count: int
    failure_count: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    database: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    code: str
