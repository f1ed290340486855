"""
Port interfaces (ABCs) for the marketplace bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.

All repositories and the ledger handed out by a ``MarketplaceUnitOfWork``
share one transaction: either everything done through them is committed,
or nothing is.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import UUID

from signalmarket.domain.marketplace.entities import (
    DepositVerification,
    InstrumentCategory,
    Signal,
    SignalPurchase,
    Subscription,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserAccount,
    UserRole,
)


class UserAccountRepository(ABC):
    """Port for reading and creating marketplace accounts."""

    @abstractmethod
    def get(self, user_id: UUID) -> Optional[UserAccount]:
        """Return an account by id, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def add(self, account: UserAccount) -> None:
        """Persist a new account together with its subscription plans."""
        raise NotImplementedError

    @abstractmethod
    def list_by_role(self, role: UserRole) -> list[UserAccount]:
        """Return every account with the given role."""
        raise NotImplementedError


class SignalRepository(ABC):
    """Port for persisting and retrieving signals."""

    @abstractmethod
    def get(self, signal_id: UUID, for_update: bool = False) -> Optional[Signal]:
        """Return a signal by id, or None.

        Args:
            signal_id: Signal identifier.
            for_update: Lock the row until the unit of work ends.
        """
        raise NotImplementedError

    @abstractmethod
    def find(
        self,
        category: Optional[InstrumentCategory] = None,
        provider_id: Optional[UUID] = None,
    ) -> list[Signal]:
        """Return signals, newest first, optionally filtered."""
        raise NotImplementedError

    @abstractmethod
    def list_by_ids(self, signal_ids: Iterable[UUID]) -> list[Signal]:
        """Return the signals with the given ids (missing ids are skipped)."""
        raise NotImplementedError

    @abstractmethod
    def list_trending(self, limit: int) -> list[Signal]:
        """Return the most purchased signals."""
        raise NotImplementedError

    @abstractmethod
    def list_for_evaluation(self) -> list[Signal]:
        """Return signals whose outcome can still change (not failed)."""
        raise NotImplementedError

    @abstractmethod
    def add(self, signal: Signal) -> None:
        """Persist a new signal."""
        raise NotImplementedError

    @abstractmethod
    def update(self, signal: Signal) -> None:
        """Persist provider-editable fields. The provider id never changes."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, signal_id: UUID) -> None:
        """Remove a signal."""
        raise NotImplementedError

    @abstractmethod
    def record_buyer(self, signal_id: UUID, buyer_id: UUID) -> None:
        """Append a buyer to purchased-by and increment the purchase count."""
        raise NotImplementedError

    @abstractmethod
    def save_outcome(self, signal: Signal) -> bool:
        """Persist status, hit flags and last price.

        Returns:
            False if the stored signal had already failed (nothing written).
        """
        raise NotImplementedError

    @abstractmethod
    def outcome_counts_by_provider(self) -> dict[UUID, tuple[int, int, int]]:
        """Return ``provider_id -> (total, successes, failures)``."""
        raise NotImplementedError


class SignalPurchaseRepository(ABC):
    """Port for entitlement records of unlocked signals."""

    @abstractmethod
    def exists(self, signal_id: UUID, buyer_id: UUID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add(self, purchase: SignalPurchase) -> None:
        """Persist a purchase.

        Raises:
            AlreadyPurchasedError: If (signal, buyer) is already recorded.
        """
        raise NotImplementedError

    @abstractmethod
    def purchased_signal_ids(self, buyer_id: UUID) -> set[UUID]:
        """Return ids of every signal the buyer has unlocked."""
        raise NotImplementedError

    @abstractmethod
    def list_by_buyer(self, buyer_id: UUID) -> list[SignalPurchase]:
        """Return the buyer's purchases, newest first."""
        raise NotImplementedError


class SubscriptionRepository(ABC):
    """Port for subscriber/provider relationships."""

    @abstractmethod
    def find_current(
        self, subscriber_id: UUID, provider_id: UUID, now: datetime
    ) -> Optional[Subscription]:
        """Return the active, unexpired subscription for the pair, if any."""
        raise NotImplementedError

    @abstractmethod
    def active_provider_ids(self, subscriber_id: UUID, now: datetime) -> set[UUID]:
        """Return providers the subscriber currently has access to."""
        raise NotImplementedError

    @abstractmethod
    def deactivate_expired(
        self, subscriber_id: UUID, provider_id: UUID, now: datetime
    ) -> int:
        """Clear the active flag on expired rows of the pair."""
        raise NotImplementedError

    @abstractmethod
    def add(self, subscription: Subscription) -> None:
        """Persist a subscription.

        Raises:
            AlreadySubscribedError: If another active row exists for the pair.
        """
        raise NotImplementedError


class TransactionRepository(ABC):
    """Port for reading ledger entries and moving them through their states."""

    @abstractmethod
    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        raise NotImplementedError

    @abstractmethod
    def find_by_tx_hash(self, tx_hash: str) -> Optional[Transaction]:
        """Return the entry whose hash matches ``tx_hash`` ignoring case."""
        raise NotImplementedError

    @abstractmethod
    def transition(
        self,
        transaction_id: UUID,
        expected: TransactionStatus,
        target: TransactionStatus,
        **fields: Any,
    ) -> bool:
        """Compare-and-set the status, writing ``fields`` alongside.

        Returns:
            False if the stored status was not ``expected``.
        """
        raise NotImplementedError

    @abstractmethod
    def list_for_user(
        self,
        user_id: UUID,
        limit: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """Return entries where the user is payer or payee, newest first.

        Args:
            user_id: Account to match as payer or payee.
            limit: Maximum number of entries; all of them when None.
            transaction_type: Only entries of this type, when given.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_type(
        self,
        transaction_type: TransactionType,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        """Return entries of one type, newest first."""
        raise NotImplementedError


class WalletLedger(ABC):
    """Port for the subsystem of record for wallet balances.

    Every balance change goes through a ledger. A debit never leaves a
    balance negative: the check and the write are a single atomic step.
    """

    @abstractmethod
    def balance(self, user_id: UUID) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def debit(self, user_id: UUID, amount: Decimal) -> None:
        """Remove ``amount`` from the wallet.

        Raises:
            UserNotFoundError: If the account does not exist.
            InsufficientFundsError: If the balance is below ``amount``.
        """
        raise NotImplementedError

    @abstractmethod
    def credit(self, user_id: UUID, amount: Decimal) -> None:
        """Add ``amount`` to the wallet."""
        raise NotImplementedError

    @abstractmethod
    def transfer(self, payer_id: UUID, payee_id: UUID, amount: Decimal) -> None:
        """Debit the payer and credit the payee as one step."""
        raise NotImplementedError

    @abstractmethod
    def record(self, transaction: Transaction) -> Transaction:
        """Append an immutable ledger entry.

        Raises:
            DuplicateTxHashError: If the entry's hash is already recorded.
        """
        raise NotImplementedError


class MarketplaceUnitOfWork(ABC):
    """One atomic scope over every marketplace repository and the ledger.

    Usage::

        with uow_factory() as uow:
            uow.ledger.transfer(...)
            uow.purchases.add(...)
            uow.commit()

    Leaving the block without ``commit()`` (or through an exception)
    discards every change made inside it.
    """

    users: UserAccountRepository
    signals: SignalRepository
    purchases: SignalPurchaseRepository
    subscriptions: SubscriptionRepository
    transactions: TransactionRepository
    ledger: WalletLedger

    def __enter__(self) -> "MarketplaceUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError

    def ping(self) -> None:
        """Raise if the backing store cannot be reached."""


class PriceOraclePort(ABC):
    """Port for live instrument prices."""

    @abstractmethod
    def get_price(self, pair: str) -> Optional[Decimal]:
        """Return the current price of ``pair`` (e.g. "BTC/USDT"), or None."""
        raise NotImplementedError

    @abstractmethod
    def get_many_prices(self, pairs: Iterable[str]) -> dict[str, Decimal]:
        """Return prices for the pairs that could be priced.

        Unknown pairs and failed lookups are absent from the mapping;
        they never fail the whole batch.
        """
        raise NotImplementedError


class BlockchainVerifierPort(ABC):
    """Port for advisory on-chain checks of deposits."""

    @abstractmethod
    def supports(self, network: Optional[str]) -> bool:
        raise NotImplementedError

    @abstractmethod
    def verify(
        self, network: str, tx_hash: str, expected_amount: Decimal
    ) -> DepositVerification:
        """Check that ``tx_hash`` paid ``expected_amount`` to our wallet."""
        raise NotImplementedError
