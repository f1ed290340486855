"""
FastAPI routers for the marketplace bounded context.

    /signals     listing, detail and provider CRUD
    /payments    unlock, subscribe, follow, withdraw, deposit, deposit-info, history
    /providers   leaderboard

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from signalmarket.application.marketplace.dtos import (
    CreateSignalCommand,
    DeleteSignalCommand,
    FollowProviderCommand,
    GetPurchasedSignalsQuery,
    GetSignalQuery,
    GetTransactionHistoryQuery,
    GetTrendingSignalsQuery,
    ListSignalsQuery,
    RefreshSignalOutcomesCommand,
    RequestWithdrawalCommand,
    SubmitDepositCommand,
    SubscribeCommand,
    UnlockSignalCommand,
    UpdateSignalCommand,
)
from signalmarket.application.marketplace.follow_provider import (
    FollowProviderUseCase,
)
from signalmarket.application.marketplace.get_deposit_info import GetDepositInfoUseCase
from signalmarket.application.marketplace.get_leaderboard import GetLeaderboardUseCase
from signalmarket.application.marketplace.get_transaction_history import (
    GetTransactionHistoryUseCase,
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
from signalmarket.application.marketplace.submit_deposit import SubmitDepositUseCase
from signalmarket.application.marketplace.subscribe import SubscribeUseCase
from signalmarket.application.marketplace.unlock_signal import UnlockSignalUseCase
from signalmarket.core.config import settings
from signalmarket.domain.marketplace.entitlement import (
    AccessReason,
    SignalProjection,
    full_fields,
)
from signalmarket.domain.marketplace.entities import InstrumentCategory
from signalmarket.interfaces.marketplace.dependencies import (
    get_create_signal_use_case,
    get_delete_signal_use_case,
    get_deposit_info_use_case,
    get_follow_provider_use_case,
    get_leaderboard_use_case,
    get_list_signals_use_case,
    get_purchased_signals_use_case,
    get_refresh_outcomes_use_case,
    get_request_withdrawal_use_case,
    get_signal_use_case,
    get_submit_deposit_use_case,
    get_subscribe_use_case,
    get_transaction_history_use_case,
    get_trending_signals_use_case,
    get_unlock_signal_use_case,
    get_update_signal_use_case,
)
from signalmarket.interfaces.marketplace.schemas import (
    DepositChannelResponse,
    DepositRequest,
    ErrorResponse,
    FollowRequest,
    LeaderboardEntryResponse,
    RefreshOutcomesResponse,
    SignalCreateRequest,
    SignalUpdateRequest,
    SignalView,
    SubscribeRequest,
    SubscriptionResponse,
    TransactionResponse,
    TrendingSignalResponse,
    UnlockSignalRequest,
    UnlockSignalResponse,
    WithdrawRequest,
)
from signalmarket.shared.security.auth import (
    Requester,
    get_current_requester,
    get_optional_requester,
)
from signalmarket.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

signals_router = APIRouter(prefix="/signals", tags=["signals"])
payments_router = APIRouter(prefix="/payments", tags=["payments"])
providers_router = APIRouter(prefix="/providers", tags=["providers"])


def _owner_view(signal) -> SignalView:
    return SignalProjection(
        signal_id=signal.id,
        is_locked=False,
        reason=AccessReason.OWNER,
        fields=full_fields(signal),
    ).to_dict()


# ------------------------------------------------------------------
# Signals
# ------------------------------------------------------------------


@signals_router.get(
    "",
    response_model=list[SignalView],
    summary="List signals",
    description="Every signal, locked or unlocked for the caller, with live prices.",
)
def list_signals(
    category: InstrumentCategory | None = None,
    provider: UUID | None = None,
    requester: Requester | None = Depends(get_optional_requester),
    use_case: ListSignalsUseCase = Depends(get_list_signals_use_case),
) -> list[SignalView]:
    """List signals, optionally filtered by category or provider."""
    projections = use_case.execute(
        ListSignalsQuery(
            requester_id=requester.user_id if requester else None,
            category=category,
            provider_id=provider,
        )
    )
    return [p.to_dict() for p in projections]


@signals_router.get(
    "/trending",
    response_model=list[TrendingSignalResponse],
    summary="Trending signals",
)
def trending_signals(
    use_case: GetTrendingSignalsUseCase = Depends(get_trending_signals_use_case),
) -> list[TrendingSignalResponse]:
    """Return the most purchased signals as teasers."""
    results = use_case.execute(GetTrendingSignalsQuery(limit=settings.trending_limit))
    return [TrendingSignalResponse.model_validate(r) for r in results]


@signals_router.get(
    "/purchased",
    response_model=list[SignalView],
    responses=ERRORS,
    summary="Unlocked signals",
)
def purchased_signals(
    requester: Requester = Depends(get_current_requester),
    use_case: GetPurchasedSignalsUseCase = Depends(get_purchased_signals_use_case),
) -> list[SignalView]:
    """Return the caller's unlocked, unexpired signals."""
    projections = use_case.execute(GetPurchasedSignalsQuery(requester_id=requester.user_id))
    return [p.to_dict() for p in projections]


@signals_router.post(
    "/refresh-outcomes",
    response_model=RefreshOutcomesResponse,
    responses=ERRORS,
    summary="Refresh signal outcomes",
    description="Evaluate every open signal against live prices (admin only).",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def refresh_outcomes(
    request: Request,
    requester: Requester = Depends(get_current_requester),
    use_case: RefreshSignalOutcomesUseCase = Depends(get_refresh_outcomes_use_case),
) -> RefreshOutcomesResponse:
    """Run one outcome refresh pass."""
    result = use_case.execute(RefreshSignalOutcomesCommand(admin_id=requester.user_id))
    return RefreshOutcomesResponse.model_validate(result)


@signals_router.get(
    "/{signal_id}",
    response_model=SignalView,
    responses=ERRORS,
    summary="Get a signal",
)
def get_signal(
    signal_id: UUID,
    requester: Requester = Depends(get_current_requester),
    use_case: GetSignalUseCase = Depends(get_signal_use_case),
) -> SignalView:
    """Return one signal as the caller is allowed to see it."""
    projection = use_case.execute(
        GetSignalQuery(signal_id=signal_id, requester_id=requester.user_id)
    )
    return projection.to_dict()


@signals_router.post(
    "",
    response_model=SignalView,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 422: {"model": ErrorResponse}},
    summary="Publish a signal",
)
def create_signal(
    request: SignalCreateRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: CreateSignalUseCase = Depends(get_create_signal_use_case),
) -> SignalView:
    """Publish a signal as the calling seller."""
    signal = use_case.execute(
        CreateSignalCommand(provider_id=requester.user_id, **request.model_dump())
    )
    return _owner_view(signal)


@signals_router.put(
    "/{signal_id}",
    response_model=SignalView,
    responses={**ERRORS, 422: {"model": ErrorResponse}},
    summary="Edit a signal",
)
def update_signal(
    signal_id: UUID,
    request: SignalUpdateRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: UpdateSignalUseCase = Depends(get_update_signal_use_case),
) -> SignalView:
    """Apply the sent fields to one of the caller's signals."""
    signal = use_case.execute(
        UpdateSignalCommand(
            signal_id=signal_id,
            requester_id=requester.user_id,
            changes=request.model_dump(exclude_unset=True),
        )
    )
    return _owner_view(signal)


@signals_router.delete(
    "/{signal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERRORS,
    summary="Delete a signal",
)
def delete_signal(
    signal_id: UUID,
    requester: Requester = Depends(get_current_requester),
    use_case: DeleteSignalUseCase = Depends(get_delete_signal_use_case),
) -> Response:
    """Remove one of the caller's signals."""
    use_case.execute(DeleteSignalCommand(signal_id=signal_id, requester_id=requester.user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ------------------------------------------------------------------
# Payments
# ------------------------------------------------------------------


@payments_router.post(
    "/unlock-signal",
    response_model=UnlockSignalResponse,
    responses={**ERRORS, 402: {"model": ErrorResponse}},
    summary="Unlock a signal",
)
def unlock_signal(
    request: UnlockSignalRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: UnlockSignalUseCase = Depends(get_unlock_signal_use_case),
) -> UnlockSignalResponse:
    """Unlock a Free or PayPerSignal signal with the caller's wallet."""
    result = use_case.execute(
        UnlockSignalCommand(signal_id=request.signal_id, buyer_id=requester.user_id)
    )
    return UnlockSignalResponse.model_validate(result)


@payments_router.post(
    "/subscribe",
    response_model=SubscriptionResponse,
    responses={**ERRORS, 402: {"model": ErrorResponse}},
    summary="Subscribe to a provider",
)
def subscribe(
    request: SubscribeRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: SubscribeUseCase = Depends(get_subscribe_use_case),
) -> SubscriptionResponse:
    """Buy one of a provider's subscription plans."""
    result = use_case.execute(
        SubscribeCommand(
            provider_id=request.provider_id,
            subscriber_id=requester.user_id,
            plan_name=request.plan_name,
        )
    )
    return SubscriptionResponse.model_validate(result)


@payments_router.post(
    "/follow",
    response_model=SubscriptionResponse,
    responses=ERRORS,
    summary="Follow a provider",
)
def follow(
    request: FollowRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: FollowProviderUseCase = Depends(get_follow_provider_use_case),
) -> SubscriptionResponse:
    """Follow a provider for free."""
    result = use_case.execute(
        FollowProviderCommand(provider_id=request.provider_id, subscriber_id=requester.user_id)
    )
    return SubscriptionResponse.model_validate(result)


@payments_router.post(
    "/withdraw",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 402: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Request a withdrawal",
)
def withdraw(
    request: WithdrawRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: RequestWithdrawalUseCase = Depends(get_request_withdrawal_use_case),
) -> TransactionResponse:
    """Reserve funds for a payout that an admin will settle."""
    result = use_case.execute(
        RequestWithdrawalCommand(
            user_id=requester.user_id,
            amount=request.amount,
            destination_address=request.destination_address,
            network=request.network,
        )
    )
    return TransactionResponse.model_validate(result)


@payments_router.get(
    "/deposit-info",
    response_model=list[DepositChannelResponse],
    responses=ERRORS,
    dependencies=[Depends(get_current_requester)],
    summary="Deposit wallets",
)
def deposit_info(
    use_case: GetDepositInfoUseCase = Depends(get_deposit_info_use_case),
) -> list[DepositChannelResponse]:
    """Return the wallet address, currency and confirmations per network."""
    return [DepositChannelResponse.model_validate(c) for c in use_case.execute()]


@payments_router.post(
    "/deposit",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 422: {"model": ErrorResponse}},
    summary="Submit a deposit",
)
def deposit(
    request: DepositRequest,
    requester: Requester = Depends(get_current_requester),
    use_case: SubmitDepositUseCase = Depends(get_submit_deposit_use_case),
) -> TransactionResponse:
    """Record an on-chain deposit for admin review."""
    result = use_case.execute(
        SubmitDepositCommand(
            user_id=requester.user_id,
            amount=request.amount,
            tx_hash=request.tx_hash,
            network=request.network,
        )
    )
    return TransactionResponse.model_validate(result)


@payments_router.get(
    "/history",
    response_model=list[TransactionResponse],
    responses=ERRORS,
    summary="Transaction history",
)
def history(
    requester: Requester = Depends(get_current_requester),
    use_case: GetTransactionHistoryUseCase = Depends(get_transaction_history_use_case),
) -> list[TransactionResponse]:
    """Return the caller's latest ledger entries."""
    results = use_case.execute(
        GetTransactionHistoryQuery(user_id=requester.user_id, limit=settings.history_limit)
    )
    return [TransactionResponse.model_validate(r) for r in results]


# ------------------------------------------------------------------
# Providers
# ------------------------------------------------------------------


@providers_router.get(
    "/leaderboard",
    response_model=list[LeaderboardEntryResponse],
    summary="Provider leaderboard",
)
def leaderboard(
    use_case: GetLeaderboardUseCase = Depends(get_leaderboard_use_case),
) -> list[LeaderboardEntryResponse]:
    """Rank providers by win rate."""
    return [LeaderboardEntryResponse.model_validate(r) for r in use_case.execute()]
