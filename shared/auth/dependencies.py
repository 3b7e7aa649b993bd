"""
FastAPI Authentication Dependencies
===================================

Dependency injection for route protection. The authenticated user id is
the opaque actor identifier handed to every mutating operation.

Version: 0.1.0
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field

from shared.auth.jwt import decode_token
from shared.auth.roles import UserRole, has_role_at_least, highest_role
from shared.logging import bind_context, get_logger


logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/token",
    auto_error=False,
)


class User(BaseModel):
    """Authenticated user model for dependency injection."""

    id: str = Field(..., description="User ID")
    email: str | None = Field(default=None, description="User email")
    roles: list[str] = Field(default_factory=list, description="User roles")
    is_active: bool = Field(default=True, description="Whether user is active")
    is_verified: bool = Field(default=True, description="Whether the account email is verified")

    @property
    def role(self) -> UserRole:
        """Most privileged role held."""
        return highest_role(self.roles)

    @property
    def is_admin(self) -> bool:
        return has_role_at_least(self.roles, UserRole.ADMIN)


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> User:
    """
    Extract and validate user from JWT token.

    Raises:
        HTTPException: 401 if token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        logger.warning("auth_token_missing")
        raise credentials_exception

    token_data = decode_token(token, verify_type="access")
    if token_data is None:
        logger.warning("auth_token_invalid")
        raise credentials_exception

    bind_context(actor_id=token_data.sub)

    return User(
        id=token_data.sub,
        email=token_data.email,
        roles=token_data.roles,
        is_verified=token_data.is_verified,
    )


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Ensure the current user is active.

    Raises:
        HTTPException: 403 if user is inactive
    """
    if not current_user.is_active:
        logger.warning("inactive_user_access_attempt", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user


async def get_verified_user(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> User:
    """Ensure the current user has verified their account."""
    if not current_user.is_verified:
        logger.warning("unverified_user_access_attempt", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account verification required",
        )
    return current_user


def require_roles(
    required_roles: list[str],
    require_all: bool = False,
) -> Callable[[User], User]:
    """
    Create a dependency that requires specific roles.

    Args:
        required_roles: List of role names required
        require_all: If True, user must have ALL roles. If False, ANY role suffices.

    Usage:
        @router.get("/analytics")
        async def analytics(user: User = Depends(require_roles(["admin"]))):
            ...
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_verified_user)],
    ) -> User:
        user_roles = set(current_user.roles)
        required = set(required_roles)

        if require_all:
            has_roles = required.issubset(user_roles)
        else:
            has_roles = bool(required.intersection(user_roles))

        if not has_roles:
            logger.warning(
                "insufficient_roles",
                user_id=current_user.id,
                user_roles=list(user_roles),
                required_roles=required_roles,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return current_user

    return role_checker


# Common role dependencies
require_admin = require_roles([UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value])
require_super_admin = require_roles([UserRole.SUPER_ADMIN.value])
