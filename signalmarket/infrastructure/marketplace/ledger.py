"""
Adapter: Wallet ledger.

Implements the WalletLedger port on a SQLAlchemy connection owned by a unit
of work. Balances only change through here.

A debit is one conditional UPDATE that both checks and subtracts, so two
concurrent debits can never take a balance below zero.
"""

import logging
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import Select, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from signalmarket.domain.marketplace.entities import Transaction
from signalmarket.domain.marketplace.errors import (
    DuplicateTxHashError,
    InsufficientFundsError,
    InvalidAmountError,
    UserNotFoundError,
)
from signalmarket.domain.marketplace.ports import WalletLedger
from signalmarket.infrastructure.marketplace.tables import transactions, users

logger = logging.getLogger(__name__)


class SqlAlchemyWalletLedger(WalletLedger):
    """Ledger bound to one open database transaction."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def balance(self, user_id: UUID) -> Decimal:
        value = self._conn.execute(
            select(users.c.wallet_balance).where(users.c.id == user_id)
        ).scalar_one_or_none()
        if value is None:
            raise UserNotFoundError(user_id)
        return Decimal(value)

    def debit(self, user_id: UUID, amount: Decimal) -> None:
        """Subtract ``amount`` if and only if the balance covers it.

        Raises:
            InvalidAmountError: For a negative amount.
            UserNotFoundError: If no such account exists.
            InsufficientFundsError: If the balance is below ``amount``.
        """
        if amount < 0:
            raise InvalidAmountError(amount)
        result = self._conn.execute(
            update(users)
            .where(users.c.id == user_id, users.c.wallet_balance >= amount)
            .values(wallet_balance=users.c.wallet_balance - amount)
        )
        if result.rowcount == 1:
            return

        available = self._conn.execute(
            select(users.c.wallet_balance).where(users.c.id == user_id)
        ).scalar_one_or_none()
        if available is None:
            raise UserNotFoundError(user_id)
        logger.warning(
            "Debit refused for %s: required %s, available %s",
            user_id,
            amount,
            available,
        )
        raise InsufficientFundsError(amount, Decimal(available))

    def credit(self, user_id: UUID, amount: Decimal) -> None:
        if amount < 0:
            raise InvalidAmountError(amount)
        result = self._conn.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(wallet_balance=users.c.wallet_balance + amount)
        )
        if result.rowcount != 1:
            raise UserNotFoundError(user_id)

    def transfer(self, payer_id: UUID, payee_id: UUID, amount: Decimal) -> None:
        """Move ``amount`` from payer to payee.

        Both account rows are locked in id order before either changes, so
        opposite transfers between the same two accounts cannot deadlock.
        """
        self._conn.execute(lock_accounts_query([payer_id, payee_id])).all()
        self.debit(payer_id, amount)
        self.credit(payee_id, amount)

    def record(self, transaction: Transaction) -> Transaction:
        """Insert an immutable ledger row.

        Raises:
            DuplicateTxHashError: If the hash exists in any letter case.
        """
        try:
            self._conn.execute(insert(transactions).values(**transaction_row(transaction)))
        except IntegrityError as exc:
            if transaction.tx_hash:
                raise DuplicateTxHashError(transaction.tx_hash) from exc
            raise
        return transaction


def lock_accounts_query(user_ids: Iterable[UUID]) -> Select:
    """SELECT ... FOR UPDATE over the given accounts, in id order."""
    return (
        select(users.c.id)
        .where(users.c.id.in_(set(user_ids)))
        .order_by(users.c.id)
        .with_for_update()
    )


def transaction_row(transaction: Transaction) -> dict:
    """Map a Transaction entity to its column values."""
    return {
        "id": transaction.id,
        "type": transaction.type.value,
        "payer_id": transaction.payer_id,
        "payee_id": transaction.payee_id,
        "amount": transaction.amount,
        "currency": transaction.currency,
        "reference_id": transaction.reference_id,
        "reference_model": (
            transaction.reference_model.value if transaction.reference_model else None
        ),
        "status": transaction.status.value,
        "approved_by": transaction.approved_by,
        "approved_at": transaction.approved_at,
        "completed_by": transaction.completed_by,
        "completed_at": transaction.completed_at,
        "tx_hash": transaction.tx_hash,
        "tx_hash_key": transaction.tx_hash.lower() if transaction.tx_hash else None,
        "rejection_reason": transaction.rejection_reason,
        "payment_method": transaction.payment_method,
        "network": transaction.network,
        "destination_address": transaction.destination_address,
        "created_at": transaction.created_at,
    }
