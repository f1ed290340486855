"""
Adapter: SQLAlchemy unit of work.

Opens one connection and one database transaction per ``with`` block and
binds every repository and the ledger to it. ``commit()`` makes the work
durable; leaving the block without it rolls everything back.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, RootTransaction

from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork
from signalmarket.infrastructure.marketplace.ledger import SqlAlchemyWalletLedger
from signalmarket.infrastructure.marketplace.signal_purchase_repository import (
    SqlAlchemySignalPurchaseRepository,
)
from signalmarket.infrastructure.marketplace.signal_repository import (
    SqlAlchemySignalRepository,
)
from signalmarket.infrastructure.marketplace.subscription_repository import (
    SqlAlchemySubscriptionRepository,
)
from signalmarket.infrastructure.marketplace.transaction_repository import (
    SqlAlchemyTransactionRepository,
)
from signalmarket.infrastructure.marketplace.user_account_repository import (
    SqlAlchemyUserAccountRepository,
)

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(MarketplaceUnitOfWork):
    """Unit of work over a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._connection: Optional[Connection] = None
        self._transaction: Optional[RootTransaction] = None

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self._connection = self._engine.connect()
        self._transaction = self._connection.begin()
        self.users = SqlAlchemyUserAccountRepository(self._connection)
        self.signals = SqlAlchemySignalRepository(self._connection)
        self.purchases = SqlAlchemySignalPurchaseRepository(self._connection)
        self.subscriptions = SqlAlchemySubscriptionRepository(self._connection)
        self.transactions = SqlAlchemyTransactionRepository(self._connection)
        self.ledger = SqlAlchemyWalletLedger(self._connection)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                logger.debug("Rolling back unit of work after %s", exc_type.__name__)
            self.rollback()
        finally:
            if self._connection is not None:
                self._connection.close()
            self._connection = None
            self._transaction = None

    def commit(self) -> None:
        if self._transaction is None or not self._transaction.is_active:
            raise RuntimeError("Unit of work is not active")
        self._transaction.commit()

    def rollback(self) -> None:
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.rollback()

    def ping(self) -> None:
        if self._connection is None:
            raise RuntimeError("Unit of work is not active")
        self._connection.execute(text("SELECT 1"))
