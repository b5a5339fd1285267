"""Storage abstraction layer for the order dashboard."""

from .base import Storage, LAST_SEEN_ORDER_KEY
from .inmemory import InMemoryStorage
from .sheets import GoogleSheetsStorage

__all__ = ["Storage", "InMemoryStorage", "GoogleSheetsStorage", "LAST_SEEN_ORDER_KEY"]
