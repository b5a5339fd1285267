"""Orders board API router."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from orderdesk.api.dependencies import get_controller, raise_http_error
from orderdesk.controller import DashboardController
from orderdesk.errors import OrderDeskError
from orderdesk.models import Order, OrderStatus, next_status


class OrderResponse(BaseModel):
    """Order with the derived fields the board and detail overlay show."""

    order: Order
    item_list: List[str]
    next_status: Optional[OrderStatus]
    is_new: bool


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


router = APIRouter(prefix="/api/orders", tags=["orders"])


def _to_response(controller: DashboardController, order: Order) -> OrderResponse:
    return OrderResponse(
        order=order,
        item_list=order.item_list(),
        next_status=next_status(order.order_status),
        is_new=order.order_id in controller.new_order_ids,
    )


@router.get("")
async def list_orders(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    """
    Orders as of the last sync, newest first.

    - **Returns**: orders plus the ids still flagged as new
    """
    return {
        "orders": [_to_response(controller, o).model_dump(mode="json") for o in controller.orders],
        "new_order_ids": list(controller.new_order_ids),
    }


@router.delete("/selection", summary="Close the detail overlay")
async def clear_selection(controller: DashboardController = Depends(get_controller)):
    controller.clear_selection()
    return {"status": "ok"}


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, controller: DashboardController = Depends(get_controller)):
    order = controller.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    return _to_response(controller, order)


@router.put("/{order_id}/status", response_model=OrderResponse, summary="Set any status (free jump)")
async def update_status(
    order_id: str,
    payload: UpdateStatusRequest,
    controller: DashboardController = Depends(get_controller),
):
    try:
        order = await controller.update_order_status(order_id, payload.status)
    except OrderDeskError as e:
        raise_http_error(e)
    return _to_response(controller, order)


@router.post("/{order_id}/advance", response_model=OrderResponse, summary="Move to the next status")
async def advance(order_id: str, controller: DashboardController = Depends(get_controller)):
    """Completed orders are returned unchanged."""
    try:
        order = await controller.advance_order(order_id)
    except OrderDeskError as e:
        raise_http_error(e)
    return _to_response(controller, order)


@router.post("/{order_id}/select", response_model=OrderResponse, summary="Open the detail overlay")
async def select(order_id: str, controller: DashboardController = Depends(get_controller)):
    try:
        order = controller.select_order(order_id)
    except OrderDeskError as e:
        raise_http_error(e)
    return _to_response(controller, order)


@router.post("/{order_id}/ack", summary="Dismiss the new-order marker")
async def acknowledge(order_id: str, controller: DashboardController = Depends(get_controller)):
    controller.acknowledge(order_id)
    return {"status": "ok", "new_order_ids": list(controller.new_order_ids)}
