"""
Session and identity handling.

Token acquisition is delegated to Google's OAuth endpoints. The token client
returns a result value (Ok / Err) instead of invoking callbacks, so the rest
of the dashboard never sees provider-specific error shapes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from orderdesk.config import (
    GOOGLE_AUTH_URL,
    GOOGLE_SCOPES,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    SHEETS_TIMEOUT_SECONDS,
)
from orderdesk.errors import ProfileFetchError
from orderdesk.models import UserProfile

logger = logging.getLogger(__name__)

MISSING_CLIENT_ID = "Provide Client ID in Settings."


class Ok(BaseModel):
    token: str


class Err(BaseModel):
    reason: str


TokenResult = Union[Ok, Err]


class TokenClient(ABC):
    """Request/response wrapper around an OAuth token provider."""

    @abstractmethod
    async def request_access_token(
        self,
        code: Optional[str] = None,
        access_token: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> TokenResult:
        ...


class GoogleTokenClient(TokenClient):
    """
    Google OAuth 2.0 token client.

    Supports the two ways a dashboard front-end can hand over credentials:
    an authorization code (exchanged here with the client secret), or an
    access token the browser SDK already obtained.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str = "",
        client: Optional[httpx.AsyncClient] = None,
        token_url: str = GOOGLE_TOKEN_URL,
    ):
        self.client_id = (client_id or "").strip()
        self.client_secret = client_secret or ""
        self.token_url = token_url
        self._client = client

    def authorization_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        """URL that starts the interactive consent flow."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "prompt": "consent select_account",
            "access_type": "online",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def request_access_token(
        self,
        code: Optional[str] = None,
        access_token: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> TokenResult:
        if not self.client_id:
            return Err(reason=MISSING_CLIENT_ID)
        if access_token:
            return Ok(token=access_token)
        if not code:
            return Err(reason="No authorization code or access token supplied.")

        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": redirect_uri or "",
            "grant_type": "authorization_code",
        }
        try:
            response = await self._post(data)
        except httpx.HTTPError as e:
            logger.warning(f"Token exchange failed: {e}")
            return Err(reason=f"Handshake Failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.is_success or "access_token" not in payload:
            detail = payload.get("error_description") or payload.get("error") or response.status_code
            return Err(reason=f"Auth Flow Error: {detail}")
        return Ok(token=payload["access_token"])

    async def _post(self, data: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.token_url, data=data)
        async with httpx.AsyncClient(timeout=SHEETS_TIMEOUT_SECONDS) as client:
            return await client.post(self.token_url, data=data)


async def fetch_profile(
    access_token: str,
    client: Optional[httpx.AsyncClient] = None,
    userinfo_url: str = GOOGLE_USERINFO_URL,
) -> UserProfile:
    """
    Load email, name, and picture for a token.

    Raises:
        ProfileFetchError: if the user-info call fails
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        if client is not None:
            response = await client.get(userinfo_url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=SHEETS_TIMEOUT_SECONDS) as own_client:
                response = await own_client.get(userinfo_url, headers=headers)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise ProfileFetchError("Connected, but profile load failed.") from e

    return UserProfile(
        email=data.get("email") or "",
        name=data.get("name") or "",
        picture=data.get("picture") or "",
    )


class Session:
    """In-memory login session. Lost on restart, cleared on any 401."""

    def __init__(self):
        self.access_token: Optional[str] = None
        self.user: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def start(self, access_token: str, user: UserProfile) -> None:
        self.access_token = access_token
        self.user = user

    def clear(self) -> None:
        self.access_token = None
        self.user = None

    def to_dict(self) -> dict:
        return {
            "authenticated": self.is_authenticated,
            "user": self.user.model_dump() if self.user else None,
        }
