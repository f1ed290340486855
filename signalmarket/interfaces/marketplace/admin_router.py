"""
FastAPI router for admin review of withdrawals, deposits and accounts.

Every route requires a bearer token; the use cases check that the caller's
stored account is an admin. No business logic here.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from signalmarket.application.marketplace.dtos import (
    ApproveDepositCommand,
    ApproveWithdrawalCommand,
    CompleteWithdrawalCommand,
    ListDepositsQuery,
    ListUserTransactionsQuery,
    ListWithdrawalsQuery,
    RejectDepositCommand,
    RejectWithdrawalCommand,
    VerifyDepositCommand,
)
from signalmarket.application.marketplace.get_transaction_history import (
    ListDepositsUseCase,
    ListUserTransactionsUseCase,
    ListWithdrawalsUseCase,
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
from signalmarket.application.marketplace.verify_deposit import VerifyDepositUseCase
from signalmarket.domain.marketplace.entities import TransactionType
from signalmarket.interfaces.marketplace.dependencies import (
    get_approve_deposit_use_case,
    get_approve_withdrawal_use_case,
    get_complete_withdrawal_use_case,
    get_list_deposits_use_case,
    get_list_user_transactions_use_case,
    get_list_withdrawals_use_case,
    get_reject_deposit_use_case,
    get_reject_withdrawal_use_case,
    get_verify_deposit_use_case,
)
from signalmarket.interfaces.marketplace.schemas import (
    CompleteWithdrawalRequest,
    ErrorResponse,
    RejectRequest,
    TransactionResponse,
    VerificationDetails,
    VerifyDepositResponse,
)
from signalmarket.shared.security.auth import Requester, get_current_requester

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

router = APIRouter(prefix="/admin", tags=["admin"], responses=ERRORS)


# ------------------------------------------------------------------
# Withdrawals
# ------------------------------------------------------------------


@router.get(
    "/withdrawals",
    response_model=list[TransactionResponse],
    summary="List withdrawals",
)
def list_withdrawals(
    requester: Requester = Depends(get_current_requester),
    use_case: ListWithdrawalsUseCase = Depends(get_list_withdrawals_use_case),
) -> list[TransactionResponse]:
    """Return every withdrawal, newest first."""
    results = use_case.execute(ListWithdrawalsQuery(admin_id=requester.user_id))
    return [TransactionResponse.model_validate(r) for r in results]


@router.post(
    "/withdrawals/{transaction_id}/approve",
    response_model=TransactionResponse,
    summary="Approve a withdrawal",
)
def approve_withdrawal(
    transaction_id: UUID,
    requester: Requester = Depends(get_current_requester),
    use_case: ApproveWithdrawalUseCase = Depends(get_approve_withdrawal_use_case),
) -> TransactionResponse:
    result = use_case.execute(
        ApproveWithdrawalCommand(transaction_id=transaction_id, admin_id=requester.user_id)
    )
    return TransactionResponse.model_validate(result)


@router.post(
    "/withdrawals/{transaction_id}/complete",
    response_model=TransactionResponse,
    summary="Mark a withdrawal as paid out",
)
def complete_withdrawal(
    transaction_id: UUID,
    request: CompleteWithdrawalRequest | None = None,
    requester: Requester = Depends(get_current_requester),
    use_case: CompleteWithdrawalUseCase = Depends(get_complete_withdrawal_use_case),
) -> TransactionResponse:
    result = use_case.execute(
        CompleteWithdrawalCommand(
            transaction_id=transaction_id,
            admin_id=requester.user_id,
            tx_hash=request.tx_hash if request else None,
        )
    )
    return TransactionResponse.model_validate(result)


@router.post(
    "/withdrawals/{transaction_id}/reject",
    response_model=TransactionResponse,
    summary="Reject a withdrawal and refund it",
)
def reject_withdrawal(
    transaction_id: UUID,
    request: RejectRequest | None = None,
    requester: Requester = Depends(get_current_requester),
    use_case: RejectWithdrawalUseCase = Depends(get_reject_withdrawal_use_case),
) -> TransactionResponse:
    result = use_case.execute(
        RejectWithdrawalCommand(
            transaction_id=transaction_id,
            admin_id=requester.user_id,
            reason=request.reason if request else None,
        )
    )
    return TransactionResponse.model_validate(result)


# ------------------------------------------------------------------
# Deposits
# ------------------------------------------------------------------


@router.get(
    "/deposits",
    response_model=list[TransactionResponse],
    summary="List deposits",
)
def list_deposits(
    pending_only: bool = False,
    requester: Requester = Depends(get_current_requester),
    use_case: ListDepositsUseCase = Depends(get_list_deposits_use_case),
) -> list[TransactionResponse]:
    """Return deposits, newest first, optionally only those awaiting review."""
    results = use_case.execute(
        ListDepositsQuery(admin_id=requester.user_id, pending_only=pending_only)
    )
    return [TransactionResponse.model_validate(r) for r in results]


@router.post(
    "/deposits/{transaction_id}/approve",
    response_model=TransactionResponse,
    summary="Approve a deposit and credit the wallet",
)
def approve_deposit(
    transaction_id: UUID,
    requester: Requester = Depends(get_current_requester),
    use_case: ApproveDepositUseCase = Depends(get_approve_deposit_use_case),
) -> TransactionResponse:
    result = use_case.execute(
        ApproveDepositCommand(transaction_id=transaction_id, admin_id=requester.user_id)
    )
    return TransactionResponse.model_validate(result)


@router.post(
    "/deposits/{transaction_id}/reject",
    response_model=TransactionResponse,
    summary="Reject a deposit",
)
def reject_deposit(
    transaction_id: UUID,
    request: RejectRequest | None = None,
    requester: Requester = Depends(get_current_requester),
    use_case: RejectDepositUseCase = Depends(get_reject_deposit_use_case),
) -> TransactionResponse:
    result = use_case.execute(
        RejectDepositCommand(
            transaction_id=transaction_id,
            admin_id=requester.user_id,
            reason=request.reason if request else None,
        )
    )
    return TransactionResponse.model_validate(result)


@router.post(
    "/deposits/{transaction_id}/verify",
    response_model=VerifyDepositResponse,
    summary="Check a deposit on-chain",
    description="Advisory lookup on the block explorer. Never changes state.",
)
def verify_deposit(
    transaction_id: UUID,
    requester: Requester = Depends(get_current_requester),
    use_case: VerifyDepositUseCase = Depends(get_verify_deposit_use_case),
) -> VerifyDepositResponse:
    result = use_case.execute(
        VerifyDepositCommand(transaction_id=transaction_id, admin_id=requester.user_id)
    )
    details = None
    if result.valid:
        details = VerificationDetails(amount=result.amount, sender=result.sender)
    return VerifyDepositResponse(
        transaction_id=result.transaction_id,
        valid=result.valid,
        reason=result.reason,
        details=details,
    )


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


@router.get(
    "/transactions/{user_id}",
    response_model=list[TransactionResponse],
    summary="List one user's transactions",
)
def list_user_transactions(
    user_id: UUID,
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    requester: Requester = Depends(get_current_requester),
    use_case: ListUserTransactionsUseCase = Depends(get_list_user_transactions_use_case),
) -> list[TransactionResponse]:
    """Return every entry where the user is payer or payee, newest first."""
    results = use_case.execute(
        ListUserTransactionsQuery(
            admin_id=requester.user_id,
            user_id=user_id,
            transaction_type=transaction_type,
        )
    )
    return [TransactionResponse.model_validate(r) for r in results]
