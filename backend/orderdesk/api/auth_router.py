"""Sign-in endpoints backed by Google OAuth."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from orderdesk.api.dependencies import get_controller
from orderdesk.controller import DashboardController
from orderdesk.identity import MISSING_CLIENT_ID


class LoginRequest(BaseModel):
    """Either an authorization code or a token from the browser SDK."""

    code: Optional[str] = None
    access_token: Optional[str] = None
    redirect_uri: Optional[str] = None


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/url", summary="Google consent URL for the configured client id")
async def authorization_url(
    redirect_uri: str = Query(..., description="Redirect URI registered for the client id"),
    state: Optional[str] = None,
    controller: DashboardController = Depends(get_controller),
):
    url = controller.authorization_url(redirect_uri, state)
    if url is None:
        raise HTTPException(status_code=400, detail=MISSING_CLIENT_ID)
    return {"url": url}


@router.post("/login")
async def login(request: LoginRequest, controller: DashboardController = Depends(get_controller)):
    """Exchange credentials for a session and start syncing."""
    ok = await controller.login(
        code=request.code,
        access_token=request.access_token,
        redirect_uri=request.redirect_uri,
    )
    if not ok:
        raise HTTPException(status_code=401, detail=controller.error or "Login failed")
    return controller.session.to_dict()


@router.post("/logout")
async def logout(controller: DashboardController = Depends(get_controller)):
    await controller.logout()
    return controller.session.to_dict()


@router.get("/me")
async def me(controller: DashboardController = Depends(get_controller)):
    return controller.session.to_dict()
