"""Bearer token dependency."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from tripboard.api.deps import AppContextDep
from tripboard.errors import AuthenticationError
from tripboard.models.auth import User


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """Extract the token from the authorization header.

    Raises:
        HTTPException: If the header is missing or not a bearer header
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return authorization[7:]  # Strip "Bearer "


def get_current_user(
    ctx: AppContextDep,
    token: Annotated[str, Depends(get_bearer_token)],
) -> User:
    """User of a valid bearer token.

    Raises:
        HTTPException: If the token is invalid, expired or revoked
    """
    try:
        return ctx.auth.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentUser = Annotated[User, Depends(get_current_user)]
