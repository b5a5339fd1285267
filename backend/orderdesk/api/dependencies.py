"""FastAPI dependencies and error translation shared by the routers."""

from typing import NoReturn

from fastapi import HTTPException, Request

from orderdesk.controller import DashboardController
from orderdesk.errors import (
    AuthError,
    FetchError,
    NotConnectedError,
    NotFoundError,
    OrderDeskError,
    ProfileFetchError,
)


def get_controller(request: Request) -> DashboardController:
    """Controller stored on the app at creation time."""
    return request.app.state.controller


def raise_http_error(error: OrderDeskError) -> NoReturn:
    """Translate a dashboard error into the matching HTTP error."""
    if isinstance(error, NotFoundError):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AuthError):
        raise HTTPException(
            status_code=401,
            detail="Session expired, sign in again",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(error, NotConnectedError):
        raise HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (FetchError, ProfileFetchError)):
        raise HTTPException(status_code=502, detail=str(error))
    raise HTTPException(status_code=500, detail=str(error))
