"""
Dependency injection for the marketplace bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the marketplace context.

Tests override ``get_uow_factory``, ``get_price_oracle`` and
``get_deposit_verifier``; every use case is built on top of them.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlalchemy.engine import Engine

from signalmarket.application.marketplace.follow_provider import (
    FollowProviderUseCase,
)
from signalmarket.application.marketplace.get_deposit_info import GetDepositInfoUseCase
from signalmarket.application.marketplace.get_leaderboard import GetLeaderboardUseCase
from signalmarket.application.marketplace.get_transaction_history import (
    GetTransactionHistoryUseCase,
    ListDepositsUseCase,
    ListUserTransactionsUseCase,
    ListWithdrawalsUseCase,
)
from signalmarket.application.marketplace.list_signals import (
    GetPurchasedSignalsUseCase,
    GetSignalUseCase,
    GetTrendingSignalsUseCase,
    ListSignalsUseCase,
)
from signalmarket.application.marketplace.manage_signals import (
    CreateSignalUseCase,
    DeleteSignalUseCase,
    UpdateSignalUseCase,
)
from signalmarket.application.marketplace.refresh_signal_outcomes import (
    RefreshSignalOutcomesUseCase,
)
from signalmarket.application.marketplace.request_withdrawal import (
    RequestWithdrawalUseCase,
)
from signalmarket.application.marketplace.review_deposit import (
    ApproveDepositUseCase,
    RejectDepositUseCase,
)
from signalmarket.application.marketplace.review_withdrawal import (
    ApproveWithdrawalUseCase,
    CompleteWithdrawalUseCase,
    RejectWithdrawalUseCase,
)
from signalmarket.application.marketplace.submit_deposit import SubmitDepositUseCase
from signalmarket.application.marketplace.subscribe import SubscribeUseCase
from signalmarket.application.marketplace.unlock_signal import UnlockSignalUseCase
from signalmarket.application.marketplace.verify_deposit import VerifyDepositUseCase
from signalmarket.core.config import settings
from signalmarket.domain.marketplace.ports import (
    BlockchainVerifierPort,
    MarketplaceUnitOfWork,
    PriceOraclePort,
)
from signalmarket.infrastructure.marketplace.blockchain_verifier_adapter import (
    ExplorerDepositVerifier,
)
from signalmarket.infrastructure.marketplace.database import create_db_engine
from signalmarket.infrastructure.marketplace.price_oracle_adapter import (
    CoinGeckoPriceOracle,
)
from signalmarket.infrastructure.marketplace.unit_of_work import SqlAlchemyUnitOfWork

UowFactory = Callable[[], MarketplaceUnitOfWork]


# ── Adapters ─────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Build the process-wide SQLAlchemy engine from application settings."""
    return create_db_engine(settings.get_database_url())


def get_uow_factory() -> UowFactory:
    """Return a factory opening one unit of work per call."""
    engine = get_engine()
    return lambda: SqlAlchemyUnitOfWork(engine)


@lru_cache(maxsize=1)
def get_price_oracle() -> PriceOraclePort:
    """Return the shared price oracle so its cache is shared too."""
    return CoinGeckoPriceOracle(
        base_url=settings.coingecko_base_url,
        ttl_seconds=settings.price_cache_ttl_seconds,
        timeout=settings.upstream_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_deposit_verifier() -> BlockchainVerifierPort:
    return ExplorerDepositVerifier(
        trc20_wallet_address=settings.trc20_wallet_address,
        erc20_wallet_address=settings.erc20_wallet_address,
        tronscan_url=settings.tronscan_api_url,
        etherscan_url=settings.etherscan_api_url,
        etherscan_api_key=settings.etherscan_api_key,
        timeout=settings.upstream_timeout_seconds,
    )


# ── Signals ──────────────────────────────────────────────────────────


def get_list_signals_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    price_oracle: PriceOraclePort = Depends(get_price_oracle),
) -> ListSignalsUseCase:
    """Build ListSignalsUseCase with its infrastructure dependencies."""
    return ListSignalsUseCase(uow_factory=uow_factory, price_oracle=price_oracle)


def get_signal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    price_oracle: PriceOraclePort = Depends(get_price_oracle),
) -> GetSignalUseCase:
    return GetSignalUseCase(uow_factory=uow_factory, price_oracle=price_oracle)


def get_purchased_signals_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    price_oracle: PriceOraclePort = Depends(get_price_oracle),
) -> GetPurchasedSignalsUseCase:
    return GetPurchasedSignalsUseCase(uow_factory=uow_factory, price_oracle=price_oracle)


def get_trending_signals_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    price_oracle: PriceOraclePort = Depends(get_price_oracle),
) -> GetTrendingSignalsUseCase:
    return GetTrendingSignalsUseCase(uow_factory=uow_factory, price_oracle=price_oracle)


def get_create_signal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> CreateSignalUseCase:
    return CreateSignalUseCase(uow_factory=uow_factory)


def get_update_signal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> UpdateSignalUseCase:
    return UpdateSignalUseCase(uow_factory=uow_factory)


def get_delete_signal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> DeleteSignalUseCase:
    return DeleteSignalUseCase(uow_factory=uow_factory)


def get_refresh_outcomes_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    price_oracle: PriceOraclePort = Depends(get_price_oracle),
) -> RefreshSignalOutcomesUseCase:
    return RefreshSignalOutcomesUseCase(uow_factory=uow_factory, price_oracle=price_oracle)


# ── Settlement ───────────────────────────────────────────────────────


def get_unlock_signal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> UnlockSignalUseCase:
    """Build UnlockSignalUseCase with its infrastructure dependencies."""
    return UnlockSignalUseCase(uow_factory=uow_factory, currency=settings.default_currency)


def get_subscribe_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> SubscribeUseCase:
    return SubscribeUseCase(
        uow_factory=uow_factory,
        currency=settings.default_currency,
        default_duration_days=settings.default_plan_duration_days,
    )


def get_follow_provider_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> FollowProviderUseCase:
    return FollowProviderUseCase(
        uow_factory=uow_factory, follower_years=settings.follower_plan_years
    )


def get_request_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> RequestWithdrawalUseCase:
    return RequestWithdrawalUseCase(
        uow_factory=uow_factory,
        currency=settings.default_currency,
        default_network=settings.default_network,
    )


def get_submit_deposit_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> SubmitDepositUseCase:
    return SubmitDepositUseCase(
        uow_factory=uow_factory,
        currency=settings.default_currency,
        default_network=settings.default_network,
    )


def get_transaction_history_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> GetTransactionHistoryUseCase:
    return GetTransactionHistoryUseCase(uow_factory=uow_factory)


def get_deposit_info_use_case() -> GetDepositInfoUseCase:
    return GetDepositInfoUseCase(
        wallet_addresses={
            "TRC20": settings.trc20_wallet_address,
            "ERC20": settings.erc20_wallet_address,
        },
        currency=settings.default_currency,
    )


def get_leaderboard_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> GetLeaderboardUseCase:
    return GetLeaderboardUseCase(uow_factory=uow_factory)


# ── Admin ────────────────────────────────────────────────────────────


def get_list_withdrawals_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ListWithdrawalsUseCase:
    return ListWithdrawalsUseCase(uow_factory=uow_factory)


def get_approve_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ApproveWithdrawalUseCase:
    return ApproveWithdrawalUseCase(uow_factory=uow_factory)


def get_complete_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> CompleteWithdrawalUseCase:
    return CompleteWithdrawalUseCase(uow_factory=uow_factory)


def get_reject_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> RejectWithdrawalUseCase:
    return RejectWithdrawalUseCase(uow_factory=uow_factory)


def get_list_deposits_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ListDepositsUseCase:
    return ListDepositsUseCase(uow_factory=uow_factory)


def get_list_user_transactions_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ListUserTransactionsUseCase:
    return ListUserTransactionsUseCase(uow_factory=uow_factory)


def get_approve_deposit_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ApproveDepositUseCase:
    return ApproveDepositUseCase(uow_factory=uow_factory)


def get_reject_deposit_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> RejectDepositUseCase:
    return RejectDepositUseCase(uow_factory=uow_factory)


def get_verify_deposit_use_case(
    uow_factory: UowFactory = Depends(get_uow_factory),
    verifier: BlockchainVerifierPort = Depends(get_deposit_verifier),
) -> VerifyDepositUseCase:
    return VerifyDepositUseCase(uow_factory=uow_factory, verifier=verifier)
