"""Request-scoped dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from tripboard.context import AppContext


def get_app_context(request: Request) -> AppContext:
    """Application context built at startup."""
    return request.app.state.context


AppContextDep = Annotated[AppContext, Depends(get_app_context)]
