"""
Domain models for the order dashboard.

Orders and menu items are projected from spreadsheet rows by fixed column
position (see storage.base for the range layout). The column order here is a
hard contract with the sheet schema.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class OrderStatus(str, Enum):
    """Order workflow states, in workflow order."""

    NEW = "new"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


ORDER_STATUS_FLOW: List[OrderStatus] = [
    OrderStatus.NEW,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
]

ORDER_COLUMNS = [
    "order_id",
    "customer_name",
    "phone",
    "order_type",
    "items",
    "total_amount",
    "payment_status",
    "order_status",
    "created_at",
]

MENU_COLUMNS = ["item_id", "item_name", "price", "available"]

MIN_POLLING_INTERVAL = 10
MAX_POLLING_INTERVAL = 120


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """Return the status after `status` in the flow, or None when completed."""
    index = ORDER_STATUS_FLOW.index(OrderStatus(status))
    if index < len(ORDER_STATUS_FLOW) - 1:
        return ORDER_STATUS_FLOW[index + 1]
    return None


def parse_status(value: Any) -> OrderStatus:
    """Parse a status cell; unrecognized or empty cells read as NEW."""
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        return OrderStatus.NEW


def _pad(row: List[Any], width: int) -> List[str]:
    # The Sheets API omits trailing empty cells
    cells = ["" if cell is None else str(cell) for cell in row[:width]]
    return cells + [""] * (width - len(cells))


class Order(BaseModel):
    """One customer order (one row of the Orders sheet)."""

    order_id: str
    customer_name: str = ""
    phone: str = ""
    order_type: str = "pickup"  # pickup / delivery
    items: str = ""  # comma-joined free text
    total_amount: str = ""
    payment_status: str = ""
    order_status: OrderStatus = OrderStatus.NEW
    created_at: str = ""  # lexically sortable, e.g. "2024-05-01 18:30:00"

    @classmethod
    def from_row(cls, row: List[Any]) -> "Order":
        cells = _pad(row, len(ORDER_COLUMNS))
        data = dict(zip(ORDER_COLUMNS, cells))
        data["order_status"] = parse_status(data["order_status"])
        return cls(**data)

    def item_list(self) -> List[str]:
        """Split the comma-joined item text into trimmed entries."""
        return [part.strip() for part in self.items.split(",") if part.strip()]


class MenuItem(BaseModel):
    """One menu entry (one row of the Menu sheet)."""

    item_id: str
    item_name: str = ""
    price: str = ""
    available: bool = False

    @classmethod
    def from_row(cls, row: List[Any]) -> "MenuItem":
        item_id, item_name, price, available = _pad(row, len(MENU_COLUMNS))
        return cls(
            item_id=item_id,
            item_name=item_name,
            price=price,
            available=available == "TRUE",
        )

    def price_and_availability(self) -> List[str]:
        """Cells written to columns C:D on update."""
        return [self.price, "TRUE" if self.available else "FALSE"]


class UserProfile(BaseModel):
    email: str = ""
    name: str = ""
    picture: str = ""


class AppSettings(BaseModel):
    """
    User-facing dashboard settings.

    Serialized with the camelCase keys the dashboard front-end uses.
    google_client_secret is stored for the code exchange only; the data
    layer never reads it.
    """

    polling_interval: int = Field(20, alias="pollingInterval")
    sound_enabled: bool = Field(True, alias="soundEnabled")
    vibrate_enabled: bool = Field(True, alias="vibrateEnabled")
    spreadsheet_id: str = Field("", alias="spreadsheetId")
    google_client_id: str = Field("", alias="googleClientId")
    google_client_secret: str = Field("", alias="googleClientSecret")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("polling_interval")
    @classmethod
    def _clamp_interval(cls, value: int) -> int:
        return max(MIN_POLLING_INTERVAL, min(MAX_POLLING_INTERVAL, value))

    @field_validator("spreadsheet_id", "google_client_id", "google_client_secret")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @classmethod
    def from_stored(cls, data: Optional[Dict[str, Any]]) -> "AppSettings":
        """
        Merge a stored settings blob over the defaults.

        Unknown keys are ignored. A value that fails validation falls back to
        its default instead of rejecting the whole blob.
        """
        if not data:
            return cls()

        accepted: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            for key in (field.alias, name):
                if key and key in data:
                    try:
                        cls(**{name: data[key]})
                    except ValidationError:
                        break
                    accepted[name] = data[key]
                    break
        return cls(**accepted)

    def to_stored(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
