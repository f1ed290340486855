"""
Precondition helpers shared by the marketplace use cases.
"""

from uuid import UUID

from signalmarket.domain.marketplace.entities import UserAccount
from signalmarket.domain.marketplace.errors import (
    AdminRequiredError,
    UserNotFoundError,
)
from signalmarket.domain.marketplace.ports import MarketplaceUnitOfWork


def require_user(uow: MarketplaceUnitOfWork, user_id: UUID) -> UserAccount:
    """Return the account or raise UserNotFoundError."""
    account = uow.users.get(user_id)
    if account is None:
        raise UserNotFoundError(user_id)
    return account


def require_admin(uow: MarketplaceUnitOfWork, admin_id: UUID) -> UserAccount:
    """Return the admin account.

    Raises:
        AdminRequiredError: If the account is missing or not an admin.
    """
    account = uow.users.get(admin_id)
    if account is None or not account.is_admin:
        raise AdminRequiredError(admin_id)
    return account
