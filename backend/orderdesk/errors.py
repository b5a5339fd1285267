"""
Error taxonomy for the order dashboard.

Every error raised by data access, identity, or the sync loop derives from
OrderDeskError so that action and tick boundaries can catch one type and turn
it into a banner message.
"""

from typing import Optional


class OrderDeskError(Exception):
    """Base class for all dashboard errors."""


class FetchError(OrderDeskError):
    """A spreadsheet call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(FetchError):
    """The bearer token was rejected (HTTP 401)."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message, status_code=401)


class NotFoundError(OrderDeskError):
    """Row lookup found no row with the requested identifier."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class ProfileFetchError(OrderDeskError):
    """A token was obtained but the user-info call failed."""


class NotConnectedError(OrderDeskError):
    """No spreadsheet is bound yet (signed out or no spreadsheet id set)."""
