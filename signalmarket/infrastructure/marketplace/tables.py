"""
SQLAlchemy Core table definitions for the marketplace.

Money columns are Numeric(20, 8). Price levels stay strings exactly as the
provider entered them. Timestamps are naive UTC.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    true,
)

MONEY = Numeric(20, 8)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("display_name", String(120), nullable=False, default=""),
    Column("role", String(16), nullable=False, default="buyer"),
    Column("wallet_balance", MONEY, nullable=False, default=0),
    Column("performance_fee_percent", Numeric(5, 2), nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
)

subscription_plans = Table(
    "subscription_plans",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("provider_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("name", String(64), nullable=False),
    Column("price", MONEY, nullable=False),
    Column("duration_days", Integer, nullable=False, default=30),
    Column("perks", JSON, nullable=False, default=list),
    UniqueConstraint("provider_id", "name", name="uq_plan_provider_name"),
)

signals = Table(
    "signals",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("provider_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("coin_pair", String(32), nullable=False),
    Column("category", String(16), nullable=False, index=True),
    Column("direction", String(4), nullable=False),
    Column("entry_zone", String(64), nullable=False),
    Column("take_profits", JSON, nullable=False),
    Column("stop_loss", String(32), nullable=False),
    Column("confidence", Integer, nullable=False),
    Column("reasoning", Text, nullable=False, default=""),
    Column("time_window", String(64), nullable=False, default=""),
    Column("monetization_type", String(16), nullable=False, default="Free"),
    Column("price", MONEY, nullable=False, default=0),
    Column("required_tier", String(64)),
    Column("performance_fee", MONEY, nullable=False, default=0),
    Column("valid_from", DateTime),
    Column("valid_to", DateTime),
    Column("expired", Boolean, nullable=False, default=False),
    Column("status", String(16), nullable=False, default="active", index=True),
    Column("hit_stop_loss", Boolean, nullable=False, default=False),
    Column("hit_targets", JSON, nullable=False, default=list),
    Column("last_price", MONEY),
    Column("purchased_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
)

# Purchases outlive deleted signals, so signal_id carries no foreign key.
signal_purchases = Table(
    "signal_purchases",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("signal_id", Uuid, nullable=False),
    Column("buyer_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("provider_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("price_paid", MONEY, nullable=False),
    Column("currency", String(8), nullable=False, default="USDT"),
    Column("status", String(16), nullable=False, default="completed"),
    Column("purchased_at", DateTime, nullable=False),
    UniqueConstraint("signal_id", "buyer_id", name="uq_purchase_signal_buyer"),
)

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("subscriber_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("provider_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("plan_name", String(64), nullable=False),
    Column("price_paid", MONEY, nullable=False),
    Column("start_date", DateTime, nullable=False),
    Column("end_date", DateTime, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("auto_renew", Boolean, nullable=False, default=False),
)

Index(
    "uq_active_subscription",
    subscriptions.c.subscriber_id,
    subscriptions.c.provider_id,
    unique=True,
    sqlite_where=subscriptions.c.is_active == true(),
    postgresql_where=subscriptions.c.is_active == true(),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("type", String(16), nullable=False, index=True),
    Column("payer_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("payee_id", Uuid, ForeignKey("users.id"), index=True),
    Column("amount", MONEY, nullable=False),
    Column("currency", String(8), nullable=False, default="USDT"),
    Column("reference_id", Uuid),
    Column("reference_model", String(16)),
    Column("status", String(16), nullable=False, index=True),
    Column("approved_by", Uuid),
    Column("approved_at", DateTime),
    Column("completed_by", Uuid),
    Column("completed_at", DateTime),
    Column("tx_hash", String(128)),
    # Lower-cased tx_hash; enforces case-insensitive uniqueness.
    Column("tx_hash_key", String(128), unique=True),
    Column("rejection_reason", Text),
    Column("payment_method", String(32)),
    Column("network", String(16)),
    Column("destination_address", String(128)),
    Column("created_at", DateTime, nullable=False),
)
