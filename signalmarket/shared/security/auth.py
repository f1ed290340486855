"""
Bearer token authentication.

Tokens are HS256 JWTs (python-jose) carrying the user id in ``sub`` and the
account role in ``role``. Listing endpoints accept anonymous callers; every
other endpoint requires a valid token. Admin rights are re-checked against
the stored account by the use cases, never trusted from the token alone.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from signalmarket.core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="JWT Bearer token")


class AuthenticationError(Exception):
    """Raised when a request carries no usable credentials."""

    code = "authentication_required"

    def __init__(self, message: str = "Authentication required") -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class Requester:
    """The authenticated caller."""

    user_id: UUID
    role: str


def create_access_token(
    user_id: UUID,
    role: str,
    expires_in: timedelta = timedelta(hours=12),
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> str:
    """Mint a signed token for ``user_id``."""
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(
        payload,
        secret or settings.jwt_secret,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def decode_access_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> Requester:
    """Verify ``token`` and return its caller.

    Raises:
        AuthenticationError: If the token is expired, forged or malformed.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[algorithm or settings.jwt_algorithm],
        )
        return Requester(user_id=UUID(payload["sub"]), role=payload.get("role", "buyer"))
    except ExpiredSignatureError as exc:
        raise AuthenticationError("Session has expired") from exc
    except (JWTError, KeyError, ValueError) as exc:
        logger.warning("Rejected bearer token: %s", type(exc).__name__)
        raise AuthenticationError("Invalid token") from exc


def get_optional_requester(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Requester]:
    """FastAPI dependency: the caller, or None for anonymous requests.

    An invalid or expired token is treated as a guest.
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError:
        logger.warning("Invalid bearer token on a public route; serving as guest")
        return None


def get_current_requester(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Requester:
    """FastAPI dependency: the authenticated caller.

    Raises:
        AuthenticationError: If no valid token was sent.
    """
    if credentials is None:
        raise AuthenticationError()
    return decode_access_token(credentials.credentials)
