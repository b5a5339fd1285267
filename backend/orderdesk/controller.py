"""
Dashboard controller.

Owns all application state (settings, session, orders, menu, new-order
markers, selection, error banner) and wires user actions and sync ticks to
the storage layer. Errors are caught at the boundary of each action or tick
and turned into a banner message; an AuthError also ends the session.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from orderdesk.db.settings_store import SettingsStore
from orderdesk.errors import AuthError, NotConnectedError, NotFoundError, OrderDeskError
from orderdesk.identity import Err, GoogleTokenClient, Session, TokenClient, fetch_profile
from orderdesk.models import (
    ORDER_STATUS_FLOW,
    AppSettings,
    MenuItem,
    Order,
    OrderStatus,
    UserProfile,
    next_status,
)
from orderdesk.notify import Notifier
from orderdesk.storage.base import Storage
from orderdesk.sync import SyncLoop, SyncResult, sync_once

logger = logging.getLogger(__name__)

SYNC_FAILED = "Sheets Sync Failed."
STATUS_UPDATE_FAILED = "Status update failed."
MENU_UPDATE_FAILED = "Menu update failed."
NOT_CONNECTED = "Sign in and set a spreadsheet ID first."

StorageFactory = Callable[[str, str], Storage]
TokenClientFactory = Callable[[AppSettings], TokenClient]
ProfileFetcher = Callable[[str], Any]


class DashboardController:
    """Single owner of dashboard state."""

    def __init__(
        self,
        settings_store: SettingsStore,
        storage_factory: StorageFactory,
        notifier: Notifier,
        token_client_factory: Optional[TokenClientFactory] = None,
        profile_fetcher: Optional[ProfileFetcher] = None,
        auto_sync: bool = True,
    ):
        """
        Args:
            settings_store: local settings persistence
            storage_factory: builds a Storage from (spreadsheet_id, access_token)
            notifier: push channel to connected dashboards
            token_client_factory: builds the OAuth token client for the current settings
            profile_fetcher: coroutine function returning a UserProfile for a token
            auto_sync: start the polling loop when a spreadsheet gets bound
        """
        self.settings_store = settings_store
        self.storage_factory = storage_factory
        self.notifier = notifier
        self.token_client_factory = token_client_factory or (
            lambda s: GoogleTokenClient(s.google_client_id, s.google_client_secret)
        )
        self.profile_fetcher = profile_fetcher or fetch_profile
        self.auto_sync = auto_sync

        self.settings = AppSettings()
        self.session = Session()
        self.storage: Optional[Storage] = None

        self.orders: List[Order] = []
        self.menu: List[MenuItem] = []
        self.new_order_ids: List[str] = []
        self.selected_order_id: Optional[str] = None
        self.error: Optional[str] = None
        self.is_refreshing = False

        self.lock = asyncio.Lock()  # serializes in-memory state updates
        self.sync_loop = SyncLoop(self._tick, lambda: self.settings.polling_interval)

    # ---------- Lifecycle ----------

    def load_settings(self) -> AppSettings:
        """Startup half of the settings lifecycle; shutdown() saves them back."""
        self.settings = self.settings_store.load()
        return self.settings

    async def shutdown(self) -> None:
        await self.sync_loop.stop()
        await self._drop_storage()
        self.settings_store.save(self.settings)
        logger.info("Dashboard controller shut down")

    # ---------- Session ----------

    def authorization_url(self, redirect_uri: str, state: Optional[str] = None) -> Optional[str]:
        client = self.token_client_factory(self.settings)
        if not isinstance(client, GoogleTokenClient) or not client.client_id:
            return None
        return client.authorization_url(redirect_uri, state)

    async def login(
        self,
        code: Optional[str] = None,
        access_token: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> bool:
        """
        Obtain a token, load the profile, and start syncing.

        Returns True on success; on failure the reason is left in `error`.
        """
        client = self.token_client_factory(self.settings)
        result = await client.request_access_token(
            code=code, access_token=access_token, redirect_uri=redirect_uri
        )
        if isinstance(result, Err):
            self.error = result.reason
            logger.warning(f"Login failed: {result.reason}")
            return False

        try:
            user: UserProfile = await self.profile_fetcher(result.token)
        except OrderDeskError as e:
            self.error = str(e)
            logger.warning(f"Profile load failed: {e}")
            return False

        self.session.start(result.token, user)
        self.error = None
        logger.info(f"Signed in as {user.email or user.name or 'unknown user'}")
        await self._bind_storage()
        return True

    async def logout(self) -> None:
        await self.sync_loop.stop()
        await self._expire_session()

    async def _expire_session(self) -> None:
        self.session.clear()
        self.orders = []
        self.menu = []
        self.new_order_ids = []
        self.selected_order_id = None
        await self._drop_storage()

    async def _handle_auth_error(self) -> None:
        logger.warning("Token rejected (401), session cleared")
        await self.sync_loop.stop()
        await self._expire_session()

    # ---------- Storage binding ----------

    async def _bind_storage(self) -> None:
        """(Re)create storage for the current token and spreadsheet, then start syncing."""
        await self.sync_loop.stop()
        await self._drop_storage()
        if not self.session.is_authenticated or not self.settings.spreadsheet_id:
            return
        self.storage = self.storage_factory(self.settings.spreadsheet_id, self.session.access_token)
        if self.auto_sync:
            self.sync_loop.start()

    async def _drop_storage(self) -> None:
        storage, self.storage = self.storage, None
        if storage is not None:
            await storage.close()

    # ---------- Sync ----------

    async def _notify_new(self, order_ids: List[str]) -> None:
        # runs before sync_once writes the watermark
        await self._mark_new(order_ids)
        await self.notifier.new_orders(
            order_ids,
            sound=self.settings.sound_enabled,
            vibrate=self.settings.vibrate_enabled,
        )

    async def _mark_new(self, order_ids: List[str]) -> None:
        async with self.lock:
            for order_id in order_ids:
                if order_id not in self.new_order_ids:
                    self.new_order_ids.append(order_id)

    async def _tick(self) -> None:
        """One sync tick. Every outcome, including failures, is pushed to dashboards."""
        if self.storage is None:
            return
        self.is_refreshing = True
        self.error = None
        try:
            result = await sync_once(self.storage, self._notify_new)
        except AuthError:
            await self._handle_auth_error()
        except OrderDeskError as e:
            logger.warning(f"Sync failed: {e}")
            self.error = SYNC_FAILED
        else:
            await self._apply(result)
        finally:
            self.is_refreshing = False

        await self.notifier.state_changed(self.snapshot())

    async def _apply(self, result: SyncResult) -> None:
        async with self.lock:
            self.orders = result.orders
            self.menu = result.menu
        await self._mark_new(result.arrived)

    async def refresh(self) -> bool:
        """Run a tick now. Returns False if one was already running."""
        if self.storage is None:
            self.error = NOT_CONNECTED
            return False
        return await self.sync_loop.run_once()

    # ---------- Orders ----------

    def get_order(self, order_id: str) -> Optional[Order]:
        for order in self.orders:
            if order.order_id == order_id:
                return order
        return None

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        """
        Write a new status for an order and mirror it locally.

        Raises:
            NotFoundError: if no order row has this id
            AuthError: if the token was rejected (session is cleared first)
            FetchError: if the spreadsheet call failed
        """
        storage = self._require_storage()
        status = OrderStatus(status)
        self.is_refreshing = True
        try:
            await storage.update_order_status(order_id, status)
        except AuthError:
            await self._handle_auth_error()
            raise
        except OrderDeskError:
            self.error = STATUS_UPDATE_FAILED
            raise
        finally:
            self.is_refreshing = False

        async with self.lock:
            updated = None
            for index, order in enumerate(self.orders):
                if order.order_id == order_id:
                    updated = order.model_copy(update={"order_status": status})
                    self.orders[index] = updated
                    break
            if order_id in self.new_order_ids:
                self.new_order_ids.remove(order_id)
        return updated or Order(order_id=order_id, order_status=status)

    async def advance_order(self, order_id: str) -> Optional[Order]:
        """
        Move an order to the next status in the flow.

        Completed orders have no next status; the call is a no-op and returns
        the order unchanged.
        """
        order = self.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        following = next_status(order.order_status)
        if following is None:
            return order
        return await self.update_order_status(order_id, following)

    def select_order(self, order_id: str) -> Order:
        order = self.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        self.selected_order_id = order_id
        return order

    def clear_selection(self) -> None:
        self.selected_order_id = None

    def acknowledge(self, order_id: str) -> None:
        """Dismiss the "new" marker of an order."""
        if order_id in self.new_order_ids:
            self.new_order_ids.remove(order_id)

    # ---------- Menu ----------

    async def update_menu_item(
        self,
        item_id: str,
        price: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> MenuItem:
        """
        Change price and/or availability of a menu item.

        Both cells are written together, so the field left as None keeps the
        value currently in the sheet. An item missing from the last sync is
        re-read from storage first.

        Raises:
            NotFoundError: if the sheet has no such item
        """
        storage = self._require_storage()
        changes: Dict[str, Any] = {}
        if price is not None:
            changes["price"] = price.strip()
        if available is not None:
            changes["available"] = available

        try:
            current = next((m for m in self.menu if m.item_id == item_id), None)
            if current is None:
                current = next((m for m in await storage.get_menu() if m.item_id == item_id), None)
            if current is None:
                raise NotFoundError("Menu item", item_id)
            item = current.model_copy(update=changes)
            await storage.update_menu_item(item)
        except AuthError:
            await self._handle_auth_error()
            raise
        except OrderDeskError:
            self.error = MENU_UPDATE_FAILED
            raise

        async with self.lock:
            self.menu = [item if m.item_id == item_id else m for m in self.menu]
        return item

    # ---------- Settings ----------

    async def update_settings(self, changes: Dict[str, Any]) -> AppSettings:
        """Merge changes over the current settings, persist, and rebind if needed."""
        merged = {**self.settings.to_stored(), **changes}
        new_settings = AppSettings(**merged)
        rebind = new_settings.spreadsheet_id != self.settings.spreadsheet_id
        self.settings = new_settings
        self.settings_store.save(new_settings)
        if rebind and self.session.is_authenticated:
            async with self.lock:
                self.orders = []
                self.menu = []
                self.new_order_ids = []
            await self._bind_storage()
        return new_settings

    def dismiss_error(self) -> None:
        self.error = None

    # ---------- Helpers ----------

    def _require_storage(self) -> Storage:
        if self.storage is None:
            raise NotConnectedError(NOT_CONNECTED)
        return self.storage

    def snapshot(self) -> Dict[str, Any]:
        """Everything a dashboard needs to render."""
        return {
            "session": self.session.to_dict(),
            "orders": [o.model_dump(mode="json") for o in self.orders],
            "menu": [m.model_dump(mode="json") for m in self.menu],
            "new_order_ids": list(self.new_order_ids),
            "selected_order_id": self.selected_order_id,
            "error": self.error,
            "is_refreshing": self.is_refreshing,
            "syncing": self.sync_loop.running,
            "status_flow": [s.value for s in ORDER_STATUS_FLOW],
        }
