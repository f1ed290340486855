"""
Adapter: Transaction repository.

Implements TransactionRepository. Status changes are compare-and-set: the
UPDATE only matches while the row still has the expected status, so of two
admins acting on the same entry exactly one succeeds.
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from signalmarket.domain.marketplace.entities import (
    ReferenceModel,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from signalmarket.domain.marketplace.errors import DuplicateTxHashError
from signalmarket.domain.marketplace.ports import TransactionRepository
from signalmarket.infrastructure.marketplace.tables import transactions

_WRITABLE_FIELDS = frozenset(
    {
        "approved_by",
        "approved_at",
        "completed_by",
        "completed_at",
        "tx_hash",
        "rejection_reason",
    }
)


class SqlAlchemyTransactionRepository(TransactionRepository):
    """SQLAlchemy Core implementation of the transaction repository."""

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        row = self._conn.execute(
            select(transactions).where(transactions.c.id == transaction_id)
        ).mappings().first()
        return to_transaction(row) if row is not None else None

    def find_by_tx_hash(self, tx_hash: str) -> Optional[Transaction]:
        row = self._conn.execute(
            select(transactions).where(
                transactions.c.tx_hash_key == tx_hash.strip().lower()
            )
        ).mappings().first()
        return to_transaction(row) if row is not None else None

    def transition(
        self,
        transaction_id: UUID,
        expected: TransactionStatus,
        target: TransactionStatus,
        **fields: Any,
    ) -> bool:
        unknown = set(fields) - _WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable on a transition: {sorted(unknown)}")
        values = dict(fields, status=target.value)
        if fields.get("tx_hash"):
            values["tx_hash_key"] = fields["tx_hash"].lower()
        try:
            result = self._conn.execute(
                update(transactions)
                .where(
                    transactions.c.id == transaction_id,
                    transactions.c.status == expected.value,
                )
                .values(**values)
            )
        except IntegrityError as exc:
            raise DuplicateTxHashError(fields.get("tx_hash") or "") from exc
        return result.rowcount == 1

    def list_for_user(
        self,
        user_id: UUID,
        limit: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        query = select(transactions).where(
            or_(
                transactions.c.payer_id == user_id,
                transactions.c.payee_id == user_id,
            )
        )
        if transaction_type is not None:
            query = query.where(transactions.c.type == transaction_type.value)
        query = query.order_by(transactions.c.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        rows = self._conn.execute(query).mappings().all()
        return [to_transaction(row) for row in rows]

    def list_by_type(
        self,
        transaction_type: TransactionType,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        query = select(transactions).where(
            transactions.c.type == transaction_type.value
        )
        if status is not None:
            query = query.where(transactions.c.status == status.value)
        rows = self._conn.execute(
            query.order_by(transactions.c.created_at.desc())
        ).mappings().all()
        return [to_transaction(row) for row in rows]


def to_transaction(row) -> Transaction:
    """Map a transactions row to its entity."""
    return Transaction(
        id=row["id"],
        type=TransactionType(row["type"]),
        payer_id=row["payer_id"],
        payee_id=row["payee_id"],
        amount=Decimal(row["amount"]),
        currency=row["currency"],
        reference_id=row["reference_id"],
        reference_model=(
            ReferenceModel(row["reference_model"]) if row["reference_model"] else None
        ),
        status=TransactionStatus(row["status"]),
        approved_by=row["approved_by"],
        approved_at=row["approved_at"],
        completed_by=row["completed_by"],
        completed_at=row["completed_at"],
        tx_hash=row["tx_hash"],
        rejection_reason=row["rejection_reason"],
        payment_method=row["payment_method"],
        network=row["network"],
        destination_address=row["destination_address"],
        created_at=row["created_at"],
    )
