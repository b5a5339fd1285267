"""Menu editor API router."""

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from orderdesk.api.dependencies import get_controller, raise_http_error
from orderdesk.controller import DashboardController
from orderdesk.errors import OrderDeskError
from orderdesk.models import MenuItem


class UpdateMenuItemRequest(BaseModel):
    """Request body for updating a menu item. Omitted fields keep their value."""

    price: Optional[str] = None
    available: Optional[bool] = None

    @field_validator("price")
    @classmethod
    def _price_is_decimal(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise ValueError("price must be a decimal number")
        if not amount.is_finite() or amount < 0:
            raise ValueError("price must be a non-negative number")
        return value


router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("", response_model=List[MenuItem])
async def list_menu(controller: DashboardController = Depends(get_controller)):
    """Menu items as of the last sync, in sheet order."""
    return controller.menu


@router.put("/{item_id}", response_model=MenuItem)
async def update_menu_item(
    item_id: str,
    payload: UpdateMenuItemRequest,
    controller: DashboardController = Depends(get_controller),
):
    """
    Update price and/or availability of a menu item.

    Both cells are always written together (columns C:D of the item's row).
    """
    try:
        return await controller.update_menu_item(
            item_id, price=payload.price, available=payload.available
        )
    except OrderDeskError as e:
        raise_http_error(e)
