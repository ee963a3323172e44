"""Sign-in endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from tripboard.api.auth import CurrentUser, get_bearer_token
from tripboard.api.deps import AppContextDep
from tripboard.models.auth import AuthSession, Credentials, User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AuthSession)
def login(credentials: Credentials, ctx: AppContextDep) -> AuthSession:
    """Password hashing is CPU bound, so this runs in the threadpool."""
    return ctx.auth.sign_in(credentials.email, credentials.password)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    user: CurrentUser,
    token: Annotated[str, Depends(get_bearer_token)],
    ctx: AppContextDep,
) -> Response:
    ctx.auth.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=User)
async def me(user: CurrentUser) -> User:
    return user
