"""
Engine construction and schema bootstrap.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from signalmarket.infrastructure.marketplace.tables import metadata

logger = logging.getLogger(__name__)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Build a SQLAlchemy engine for ``url``.

    In-memory SQLite URLs get a single shared connection so every unit of
    work sees the same database.
    """
    if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    """Create every marketplace table that does not exist yet."""
    metadata.create_all(engine)
    logger.info("Marketplace schema ready on %s", engine.url.render_as_string())
