"""Settings API router."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from orderdesk.api.dependencies import get_controller
from orderdesk.controller import DashboardController


class SettingsUpdate(BaseModel):
    """Partial settings update; unknown keys are ignored."""

    polling_interval: Optional[int] = Field(None, alias="pollingInterval")
    sound_enabled: Optional[bool] = Field(None, alias="soundEnabled")
    vibrate_enabled: Optional[bool] = Field(None, alias="vibrateEnabled")
    spreadsheet_id: Optional[str] = Field(None, alias="spreadsheetId")
    google_client_id: Optional[str] = Field(None, alias="googleClientId")
    google_client_secret: Optional[str] = Field(None, alias="googleClientSecret")

    model_config = ConfigDict(populate_by_name=True)


router = APIRouter(prefix="/api/settings", tags=["settings"])

SECRET_MASK = "********"


def _public(controller: DashboardController) -> Dict[str, Any]:
    data = controller.settings.to_stored()
    # never echo the client secret back
    data["googleClientSecret"] = SECRET_MASK if data["googleClientSecret"] else ""
    return data


@router.get("")
async def get_settings(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    return _public(controller)


@router.put("")
async def update_settings(
    payload: SettingsUpdate,
    controller: DashboardController = Depends(get_controller),
) -> Dict[str, Any]:
    """
    Merge the given settings over the current ones and persist them.

    The polling interval is clamped to 10-120 seconds. Changing the
    spreadsheet id re-binds storage and restarts syncing.
    """
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if changes.get("googleClientSecret") == SECRET_MASK:
        del changes["googleClientSecret"]
    await controller.update_settings(changes)
    return _public(controller)
