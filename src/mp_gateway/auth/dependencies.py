"""FastAPI dependencies: get_current_user / require_admin.

The subsystem never authenticates by itself; it trusts the bearer token
issued by the marketplace auth service and loads the caller's identity
(id, role, email_verified, ...) from the users table.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.errors import AccountDisabledError, AdminRequiredError, UnauthorizedError
from src.mp_gateway.auth.jwt_handler import decode_access_token
from src.mp_gateway.user.models import UserAccount
from src.mp_gateway.user.persistence import UserRepository

# tokenUrl tells Swagger UI where to get a token (issued by the auth service)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)

_users = UserRepository()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserAccount:
    """Extract and validate the JWT Bearer token, return the caller's UserAccount.

    Raises HTTP 401 if the token is missing, invalid, expired, or its subject
    is not a user id.
    Raises HTTP 403 (AccountDisabledError) if the user account is disabled.
    """
    try:
        payload = decode_access_token(token)
    except UnauthorizedError:
        raise _CREDENTIALS_EXCEPTION from None

    try:
        user_id = str(uuid.UUID(str(payload.get("sub"))))
    except ValueError:
        raise _CREDENTIALS_EXCEPTION from None

    user = await _users.get_user(db, user_id)
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_admin(
    current_user: UserAccount = Depends(get_current_user),
) -> UserAccount:
    """Verify the caller holds the admin role (grants, code issuance, reconciliation)."""
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
