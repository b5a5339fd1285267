"""
Abstract Storage interface for the order dashboard.

The backing store is a spreadsheet with three sheets laid out by fixed
column position:

    Orders!A:I  id, name, phone, type, items, amount, payment_status, status, created_at
    Menu!A:D    id, name, price, available ("TRUE" / "FALSE")
    Meta!A:B    key, value

Row 1 of every sheet is a header. Implementations only provide the two range
primitives (fetch_range / write_range); the entity reads and the
locate-then-overwrite updates are shared here.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from orderdesk.errors import NotFoundError
from orderdesk.models import MenuItem, Order, OrderStatus

logger = logging.getLogger(__name__)

# Data ranges skip the header row
ORDERS_RANGE = "Orders!A2:I1000"
MENU_RANGE = "Menu!A2:D1000"
META_RANGE = "Meta!A2:B100"

# Identifier columns include the header row, so list index i is sheet row i + 1
ORDERS_ID_RANGE = "Orders!A1:A1000"
MENU_ID_RANGE = "Menu!A1:A1000"
META_ID_RANGE = "Meta!A1:A100"

LAST_SEEN_ORDER_KEY = "last_seen_order_timestamp"


def _find_row(rows: List[List[str]], key: str) -> Optional[int]:
    for index, row in enumerate(rows):
        if row and row[0] == key:
            return index + 1
    return None


class Storage(ABC):
    """Abstract base class for spreadsheet-backed storage."""

    @abstractmethod
    async def fetch_range(self, range_name: str) -> List[List[str]]:
        """
        Read a range as rows of string cells.

        Returns an empty list when the range holds no data.
        Raises FetchError when the call does not succeed and AuthError on 401.
        """
        ...

    @abstractmethod
    async def write_range(self, range_name: str, values: List[List[str]]) -> None:
        """Overwrite a range with raw (unparsed) values."""
        ...

    async def close(self) -> None:
        """Release any held resources."""

    # ---------- Reads ----------

    async def get_orders(self) -> List[Order]:
        """All orders, newest first (sheet rows are appended chronologically)."""
        rows = await self.fetch_range(ORDERS_RANGE)
        orders = [Order.from_row(row) for row in rows if row]
        orders.reverse()
        return orders

    async def get_menu(self) -> List[MenuItem]:
        rows = await self.fetch_range(MENU_RANGE)
        return [MenuItem.from_row(row) for row in rows if row]

    async def get_meta(self, key: str) -> Optional[str]:
        """Value of the first meta row whose key matches, or None."""
        rows = await self.fetch_range(META_RANGE)
        for row in rows:
            if row and row[0] == key:
                return row[1] if len(row) > 1 else ""
        return None

    # ---------- Locate-then-overwrite ----------

    async def _locate_row(self, id_range: str, key: str) -> Optional[int]:
        """
        Re-read an identifier column and return the 1-based sheet row of the
        first cell equal to `key`, or None.

        No lock or version check is applied between this read and the write
        that follows it.
        """
        rows = await self.fetch_range(id_range)
        return _find_row(rows, key)

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        """Overwrite the status cell (column H) of an order."""
        row = await self._locate_row(ORDERS_ID_RANGE, order_id)
        if row is None:
            raise NotFoundError("Order", order_id)
        await self.write_range(f"Orders!H{row}", [[OrderStatus(status).value]])
        logger.info(f"Order {order_id} (row {row}) -> {OrderStatus(status).value}")

    async def update_menu_item(self, item: MenuItem) -> None:
        """Overwrite price and availability (columns C:D) of a menu item."""
        row = await self._locate_row(MENU_ID_RANGE, item.item_id)
        if row is None:
            raise NotFoundError("Menu item", item.item_id)
        await self.write_range(f"Menu!C{row}:D{row}", [item.price_and_availability()])
        logger.info(f"Menu item {item.item_id} (row {row}) updated")

    async def update_meta(self, key: str, value: str) -> None:
        """Upsert a meta key; a missing key is appended after the last used row."""
        rows = await self.fetch_range(META_ID_RANGE)
        row = _find_row(rows, key)
        if row is None:
            row = len(rows) + 1
        await self.write_range(f"Meta!A{row}:B{row}", [[key, value]])
        logger.debug(f"Meta {key}={value} written at row {row}")
