"""
Google Sheets storage implementation.

Talks to the Sheets v4 `values` endpoints with a bearer token obtained from
the identity layer. Every call is a plain request/response; there is no
retry, the next sync tick is the retry.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from orderdesk.config import SHEETS_API_BASE, SHEETS_TIMEOUT_SECONDS
from orderdesk.errors import AuthError, FetchError
from orderdesk.storage.base import Storage

logger = logging.getLogger(__name__)


class GoogleSheetsStorage(Storage):
    """Spreadsheet storage backed by the Google Sheets values API."""

    def __init__(
        self,
        spreadsheet_id: str,
        access_token: str,
        client: Optional[httpx.AsyncClient] = None,
        api_base: str = SHEETS_API_BASE,
    ):
        """
        Args:
            spreadsheet_id: id of the target spreadsheet (from its URL)
            access_token: OAuth bearer token with the spreadsheets scope
            client: optional shared AsyncClient (tests pass one with a MockTransport)
            api_base: Sheets API root, overridable for tests
        """
        self.spreadsheet_id = spreadsheet_id.strip()
        self.access_token = access_token
        self.api_base = api_base.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=SHEETS_TIMEOUT_SECONDS)

    def _url(self, range_name: str) -> str:
        return f"{self.api_base}/spreadsheets/{self.spreadsheet_id}/values/{quote(range_name, safe='!:')}"

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.access_token}"}

    def _check(self, response: httpx.Response, range_name: str) -> None:
        if response.status_code == 401:
            raise AuthError()
        if not response.is_success:
            raise FetchError(
                f"Sheets call for {range_name} failed with {response.status_code}",
                status_code=response.status_code,
            )

    async def fetch_range(self, range_name: str) -> List[List[str]]:
        try:
            response = await self._client.get(self._url(range_name), headers=self._headers())
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {range_name}: {e}") from e

        self._check(response, range_name)
        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"Malformed response for {range_name}") from e
        return data.get("values") or []

    async def write_range(self, range_name: str, values: List[List[str]]) -> None:
        try:
            response = await self._client.put(
                self._url(range_name),
                params={"valueInputOption": "RAW"},
                headers=self._headers(),
                json={"values": values},
            )
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to write {range_name}: {e}") from e

        self._check(response, range_name)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
