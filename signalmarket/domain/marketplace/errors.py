"""
Domain-specific errors for the marketplace bounded context.

All errors raised from the domain and application layers are defined here.
Each error carries a stable machine-readable ``code`` so clients can tell
"can't afford this" from "already own this" from "not available".
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from decimal import Decimal


class MarketplaceDomainError(Exception):
    """Base error for all marketplace domain errors."""

    code = "marketplace_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


# ── NotFound ─────────────────────────────────────────────────────────


class NotFoundError(MarketplaceDomainError):
    """Raised when a signal, user, plan or transaction does not exist."""

    code = "not_found"

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(
            f"{entity} not found: {identifier}",
            code=f"{entity.lower().replace(' ', '_')}_not_found",
        )
        self.entity = entity
        self.identifier = identifier


class SignalNotFoundError(NotFoundError):
    def __init__(self, signal_id: object) -> None:
        super().__init__("Signal", signal_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: object) -> None:
        super().__init__("User", user_id)


class ProviderNotFoundError(NotFoundError):
    def __init__(self, provider_id: object) -> None:
        super().__init__("Provider", provider_id)


class PlanNotFoundError(NotFoundError):
    def __init__(self, plan_name: str) -> None:
        super().__init__("Plan", plan_name)


class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: object) -> None:
        super().__init__("Transaction", transaction_id)


# ── Forbidden ────────────────────────────────────────────────────────


class ForbiddenError(MarketplaceDomainError):
    """Raised when the requester may not perform the operation."""

    code = "forbidden"


class SelfTradeError(ForbiddenError):
    """Raised when a buyer or subscriber is the provider themself."""

    code = "self_trade"

    def __init__(self, action: str) -> None:
        super().__init__(f"You cannot {action} yourself")
        self.action = action


class AdminRequiredError(ForbiddenError):
    """Raised when a non-admin attempts an admin-only transition."""

    code = "admin_required"

    def __init__(self, user_id: object) -> None:
        super().__init__("Admin privileges required")
        self.user_id = user_id


class NotOwnerError(ForbiddenError):
    """Raised when someone other than the provider mutates a signal."""

    code = "not_owner"

    def __init__(self, signal_id: object) -> None:
        super().__init__("You can only modify your own signals")
        self.signal_id = signal_id


class SellerRequiredError(ForbiddenError):
    """Raised when a non-seller tries to publish a signal."""

    code = "seller_required"

    def __init__(self) -> None:
        super().__init__("Only signal providers can create signals")


# ── InvalidState ─────────────────────────────────────────────────────


class InvalidStateError(MarketplaceDomainError):
    """Raised when an operation is attempted from the wrong lifecycle state."""

    code = "invalid_state"


class AlreadyPurchasedError(InvalidStateError):
    code = "already_purchased"

    def __init__(self, signal_id: object) -> None:
        super().__init__("You have already unlocked this signal")
        self.signal_id = signal_id


class AlreadySubscribedError(InvalidStateError):
    code = "already_subscribed"

    def __init__(self, provider_id: object) -> None:
        super().__init__(
            "You already have an active subscription with this provider"
        )
        self.provider_id = provider_id


class NotUnlockableError(InvalidStateError):
    code = "not_unlockable"

    def __init__(self, monetization: str) -> None:
        super().__init__(
            f"{monetization} signals cannot be unlocked by purchase"
        )
        self.monetization = monetization


class DuplicateTxHashError(InvalidStateError):
    """Raised when an on-chain hash was already submitted (any case)."""

    code = "duplicate_tx_hash"

    def __init__(self, tx_hash: str) -> None:
        super().__init__("This transaction hash has already been submitted")
        self.tx_hash = tx_hash


class InvalidTransitionError(InvalidStateError):
    """Raised when a transaction status transition's precondition fails."""

    code = "invalid_transition"

    def __init__(self, transaction_id: object, current: str, target: str) -> None:
        super().__init__(
            f"Transaction {transaction_id} cannot move from {current} to {target}"
        )
        self.transaction_id = transaction_id
        self.current = current
        self.target = target


class WrongTransactionTypeError(InvalidStateError):
    code = "wrong_transaction_type"

    def __init__(self, expected: str) -> None:
        super().__init__(f"Transaction is not a {expected.lower()}")
        self.expected = expected


class UnsupportedNetworkError(InvalidStateError):
    code = "unsupported_network"

    def __init__(self, network: str | None) -> None:
        super().__init__(f"Unsupported network: {network}")
        self.network = network


# ── Funds / upstream / validation ────────────────────────────────────


class InsufficientFundsError(MarketplaceDomainError):
    """Raised when a wallet balance is below the required debit."""

    code = "insufficient_funds"

    def __init__(self, required: Decimal, available: Decimal | None = None) -> None:
        if available is None:
            message = f"Insufficient wallet balance: required {required}"
        else:
            message = (
                f"Insufficient wallet balance: required {required}, "
                f"available {available}"
            )
        super().__init__(message)
        self.required = required
        self.available = available


class UpstreamUnavailableError(MarketplaceDomainError):
    """Raised when a price or blockchain oracle cannot be reached."""

    code = "upstream_unavailable"

    def __init__(self, service: str, reason: str) -> None:
        super().__init__(f"{service} unavailable: {reason}")
        self.service = service
        self.reason = reason


class ValidationError(MarketplaceDomainError):
    """Raised when operation parameters are malformed."""

    code = "invalid_request"


class InvalidAmountError(ValidationError):
    code = "invalid_amount"

    def __init__(self, amount: object) -> None:
        super().__init__(f"Invalid amount: {amount}")
        self.amount = amount


class MissingFieldError(ValidationError):
    def __init__(self, field_name: str) -> None:
        super().__init__(
            f"{field_name.replace('_', ' ').capitalize()} is required",
            code=f"missing_{field_name}",
        )
        self.field_name = field_name
