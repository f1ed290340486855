"""
Shared fixtures for the marketplace tests.

Every test gets a fresh in-memory SQLite database with the full schema,
a unit-of-work factory bound to it, and fakes for the two outbound ports.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from signalmarket.domain.marketplace.entities import (
    Direction,
    DepositVerification,
    InstrumentCategory,
    MonetizationType,
    Signal,
    SubscriptionPlan,
    UserAccount,
    UserRole,
)
from signalmarket.domain.marketplace.ports import (
    BlockchainVerifierPort,
    PriceOraclePort,
)
from signalmarket.infrastructure.marketplace.database import (
    create_db_engine,
    init_schema,
)
from signalmarket.infrastructure.marketplace.unit_of_work import SqlAlchemyUnitOfWork
from signalmarket.shared.security.auth import create_access_token


# ══════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════


class FakePriceOracle(PriceOraclePort):
    """Serves prices from a dict and records every batch it was asked for."""

    def __init__(self, prices: Optional[dict[str, Decimal]] = None) -> None:
        self.prices = dict(prices or {})
        self.calls: list[list[str]] = []

    def get_price(self, pair: str) -> Optional[Decimal]:
        self.calls.append([pair])
        return self.prices.get(pair)

    def get_many_prices(self, pairs: Iterable[str]) -> dict[str, Decimal]:
        pairs = sorted(set(pairs))
        self.calls.append(pairs)
        return {pair: self.prices[pair] for pair in pairs if pair in self.prices}


class FakeDepositVerifier(BlockchainVerifierPort):
    """Returns a canned verification for TRC20 and ERC20."""

    def __init__(self, result: Optional[DepositVerification] = None) -> None:
        self.result = result or DepositVerification(
            True, None, amount=Decimal("50"), sender="TSenderAddress"
        )
        self.calls: list[tuple[str, str, Decimal]] = []

    def supports(self, network: Optional[str]) -> bool:
        return (network or "").upper() in {"TRC20", "ERC20"}

    def verify(
        self, network: str, tx_hash: str, expected_amount: Decimal
    ) -> DepositVerification:
        self.calls.append((network, tx_hash, expected_amount))
        return self.result


# ══════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def engine():
    """A private in-memory database with every table created."""
    engine = create_db_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def uow_factory(engine):
    return lambda: SqlAlchemyUnitOfWork(engine)


@pytest.fixture
def price_oracle() -> FakePriceOracle:
    return FakePriceOracle({"BTC/USDT": Decimal("105"), "ETH/USDT": Decimal("2000")})


@pytest.fixture
def verifier() -> FakeDepositVerifier:
    return FakeDepositVerifier()


# ══════════════════════════════════════════════════════════════════════
# Seeding helpers
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def make_user(uow_factory):
    """Store an account and return it."""

    def _make_user(
        role: UserRole = UserRole.BUYER,
        balance: str = "0",
        name: str = "",
        plans: tuple[SubscriptionPlan, ...] = (),
    ) -> UserAccount:
        account = UserAccount(
            display_name=name,
            role=role,
            wallet_balance=Decimal(balance),
            subscription_plans=list(plans),
        )
        with uow_factory() as uow:
            uow.users.add(account)
            uow.commit()
        return account

    return _make_user


@pytest.fixture
def make_signal(uow_factory):
    """Store a BUY BTC/USDT signal (SL 100, TP 110/120) and return it."""

    def _make_signal(provider_id: UUID, **overrides) -> Signal:
        fields = {
            "provider_id": provider_id,
            "coin_pair": "BTC/USDT",
            "category": InstrumentCategory.CRYPTO,
            "direction": Direction.BUY,
            "entry_zone": "104-106",
            "take_profits": ["110", "120"],
            "stop_loss": "100",
            "confidence": 80,
            "reasoning": "Breakout above range high",
            "time_window": "1-3 days",
            "monetization_type": MonetizationType.FREE,
        }
        fields.update(overrides)
        signal = Signal(**fields)
        with uow_factory() as uow:
            uow.signals.add(signal)
            uow.commit()
        return signal

    return _make_signal


@pytest.fixture
def balance_of(uow_factory):
    def _balance_of(user_id: UUID) -> Decimal:
        with uow_factory() as uow:
            return uow.ledger.balance(user_id)

    return _balance_of


@pytest.fixture
def pro_plan() -> SubscriptionPlan:
    return SubscriptionPlan(name="Pro", price=Decimal("25"), duration_days=30)


# ══════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def auth_headers():
    """Build the bearer header for an account."""

    def _auth_headers(account: UserAccount) -> dict[str, str]:
        token = create_access_token(account.id, account.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def client(uow_factory, price_oracle, verifier):
    """TestClient on the real app with storage and oracles swapped out."""
    from signalmarket.interfaces.marketplace.dependencies import (
        get_deposit_verifier,
        get_price_oracle,
        get_uow_factory,
    )
    from signalmarket.main import app
    from signalmarket.shared.security.rate_limiting import limiter

    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_price_oracle] = lambda: price_oracle
    app.dependency_overrides[get_deposit_verifier] = lambda: verifier
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()
