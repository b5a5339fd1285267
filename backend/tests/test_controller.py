"""
Tests for DashboardController: session lifecycle, sync application,
user actions, and error-to-banner handling.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from orderdesk.controller import (
    MENU_UPDATE_FAILED,
    NOT_CONNECTED,
    STATUS_UPDATE_FAILED,
    SYNC_FAILED,
    DashboardController,
)
from orderdesk.errors import AuthError, FetchError, NotConnectedError, NotFoundError, ProfileFetchError
from orderdesk.models import OrderStatus
from orderdesk.storage import LAST_SEEN_ORDER_KEY

from conftest import FakeTokenClient, order_row


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_binds_storage(self, controller, sheet, profile):
        assert await controller.login(access_token="browser-token") is True
        assert controller.session.is_authenticated
        assert controller.session.access_token == "browser-token"
        assert controller.session.user == profile
        assert controller.storage is sheet
        assert controller.error is None
        assert not controller.sync_loop.running

    @pytest.mark.asyncio
    async def test_token_error_sets_banner(self, controller, token_client):
        token_client.reason = "Auth Flow Error: access_denied"
        assert await controller.login(code="abc") is False
        assert not controller.session.is_authenticated
        assert controller.error == "Auth Flow Error: access_denied"
        assert controller.storage is None

    @pytest.mark.asyncio
    async def test_profile_failure_keeps_user_logged_out(self, controller):
        controller.profile_fetcher = AsyncMock(side_effect=ProfileFetchError("Connected, but profile load failed."))
        assert await controller.login(access_token="t") is False
        assert controller.error == "Connected, but profile load failed."
        assert not controller.session.is_authenticated

    @pytest.mark.asyncio
    async def test_login_without_spreadsheet_does_not_bind(self, controller):
        await controller.update_settings({"spreadsheetId": ""})
        assert await controller.login(access_token="t") is True
        assert controller.storage is None
        assert await controller.refresh() is False
        assert controller.error == NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, logged_in):
        logged_in.new_order_ids = ["O3"]
        logged_in.select_order("O3")
        await logged_in.logout()

        assert not logged_in.session.is_authenticated
        assert logged_in.orders == []
        assert logged_in.menu == []
        assert logged_in.new_order_ids == []
        assert logged_in.selected_order_id is None
        assert logged_in.storage is None

    @pytest.mark.asyncio
    async def test_auto_sync_starts_and_stops_loop(self, settings_store, sheet, notifier, token_client, profile):
        ctrl = DashboardController(
            settings_store=settings_store,
            storage_factory=lambda spreadsheet_id, access_token: sheet,
            notifier=notifier,
            token_client_factory=lambda settings: token_client,
            profile_fetcher=AsyncMock(return_value=profile),
        )
        await ctrl.update_settings({"spreadsheetId": "sheet-abc"})
        await ctrl.login(access_token="t")
        assert ctrl.sync_loop.running
        await asyncio.sleep(0.01)
        assert [o.order_id for o in ctrl.orders] == ["O3", "O2", "O1"]

        await ctrl.logout()
        assert not ctrl.sync_loop.running


class TestSync:
    @pytest.mark.asyncio
    async def test_first_refresh_loads_and_seeds(self, logged_in, sheet, notifier):
        assert [o.order_id for o in logged_in.orders] == ["O3", "O2", "O1"]
        assert len(logged_in.menu) == 3
        assert logged_in.new_order_ids == []
        assert await sheet.get_meta(LAST_SEEN_ORDER_KEY) == "2024-05-01 13:00:00"
        notifier.new_orders.assert_not_awaited()
        notifier.state_changed.assert_awaited()

    @pytest.mark.asyncio
    async def test_new_orders_alert_with_settings(self, logged_in, sheet, notifier):
        await logged_in.update_settings({"soundEnabled": False})
        sheet.append_row("Orders", order_row("O4", "2024-05-01 13:10:00"))
        sheet.append_row("Orders", order_row("O5", "2024-05-01 13:11:00"))

        await logged_in.refresh()

        notifier.new_orders.assert_awaited_once_with(["O5", "O4"], sound=False, vibrate=True)
        assert logged_in.new_order_ids == ["O5", "O4"]

    @pytest.mark.asyncio
    async def test_new_markers_accumulate_without_duplicates(self, logged_in, sheet):
        sheet.append_row("Orders", order_row("O4", "2024-05-01 13:10:00"))
        await logged_in.refresh()
        sheet.append_row("Orders", order_row("O5", "2024-05-01 13:20:00"))
        await logged_in.refresh()
        await logged_in.refresh()

        assert logged_in.new_order_ids == ["O4", "O5"]

    @pytest.mark.asyncio
    async def test_fetch_error_sets_banner_and_keeps_session(self, logged_in, sheet):
        sheet.fetch_range = AsyncMock(side_effect=FetchError("boom", status_code=503))
        await logged_in.refresh()

        assert logged_in.error == SYNC_FAILED
        assert logged_in.session.is_authenticated
        assert [o.order_id for o in logged_in.orders] == ["O3", "O2", "O1"]

    @pytest.mark.asyncio
    async def test_error_banner_clears_on_next_good_tick(self, logged_in, sheet):
        original = sheet.fetch_range
        sheet.fetch_range = AsyncMock(side_effect=FetchError("boom"))
        await logged_in.refresh()
        sheet.fetch_range = original
        await logged_in.refresh()
        assert logged_in.error is None

    @pytest.mark.asyncio
    async def test_failed_tick_pushes_banner_to_dashboards(self, logged_in, sheet, notifier):
        notifier.state_changed.reset_mock()
        sheet.fetch_range = AsyncMock(side_effect=FetchError("boom", status_code=500))
        await logged_in.refresh()

        notifier.state_changed.assert_awaited_once()
        snapshot = notifier.state_changed.await_args.args[0]
        assert snapshot["error"] == SYNC_FAILED
        assert snapshot["is_refreshing"] is False

    @pytest.mark.asyncio
    async def test_markers_kept_when_watermark_write_fails(self, logged_in, sheet, notifier):
        sheet.append_row("Orders", order_row("O4", "2024-05-01 13:10:00"))
        sheet.update_meta = AsyncMock(side_effect=FetchError("quota", status_code=429))

        await logged_in.refresh()

        notifier.new_orders.assert_awaited_once()
        assert logged_in.new_order_ids == ["O4"]
        assert logged_in.error == SYNC_FAILED

    @pytest.mark.asyncio
    async def test_refresh_skipped_while_tick_in_flight(self, logged_in):
        logged_in.sync_loop._in_flight = True
        assert await logged_in.refresh() is False


class TestSessionExpiry:
    """A 401 from any data call logs the user out."""

    @pytest.mark.asyncio
    async def test_401_during_sync(self, logged_in, sheet):
        sheet.token_valid = False
        await logged_in.refresh()
        assert not logged_in.session.is_authenticated
        assert logged_in.storage is None
        assert logged_in.orders == []

    @pytest.mark.asyncio
    async def test_401_tick_pushes_logged_out_state(self, logged_in, sheet, notifier):
        notifier.state_changed.reset_mock()
        sheet.token_valid = False
        await logged_in.refresh()

        notifier.state_changed.assert_awaited_once()
        snapshot = notifier.state_changed.await_args.args[0]
        assert snapshot["session"] == {"authenticated": False, "user": None}
        assert snapshot["orders"] == []

    @pytest.mark.asyncio
    async def test_401_during_status_update(self, logged_in, sheet):
        sheet.token_valid = False
        with pytest.raises(AuthError):
            await logged_in.update_order_status("O3", OrderStatus.ACCEPTED)
        assert not logged_in.session.is_authenticated

    @pytest.mark.asyncio
    async def test_401_during_menu_update(self, logged_in, sheet):
        sheet.token_valid = False
        with pytest.raises(AuthError):
            await logged_in.update_menu_item("M1", price="330")
        assert not logged_in.session.is_authenticated


class TestOrderActions:
    @pytest.mark.asyncio
    async def test_update_status_writes_and_mirrors(self, logged_in, sheet):
        logged_in.new_order_ids = ["O3"]
        order = await logged_in.update_order_status("O3", OrderStatus.PREPARING)

        assert order.order_status == OrderStatus.PREPARING
        assert logged_in.get_order("O3").order_status == OrderStatus.PREPARING
        assert logged_in.new_order_ids == []
        assert sheet.writes[-1] == ("Orders!H4", [["preparing"]])

    @pytest.mark.asyncio
    async def test_advance_follows_flow(self, logged_in):
        order = await logged_in.advance_order("O2")
        assert order.order_status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_advance_completed_is_noop(self, logged_in, sheet):
        writes_before = list(sheet.writes)
        order = await logged_in.advance_order("O1")

        assert order.order_status == OrderStatus.COMPLETED
        assert sheet.writes == writes_before

    @pytest.mark.asyncio
    async def test_advance_unknown_order(self, logged_in):
        with pytest.raises(NotFoundError):
            await logged_in.advance_order("O404")

    @pytest.mark.asyncio
    async def test_update_unknown_order_sets_banner(self, logged_in):
        with pytest.raises(NotFoundError):
            await logged_in.update_order_status("O404", OrderStatus.READY)
        assert logged_in.error == STATUS_UPDATE_FAILED

    @pytest.mark.asyncio
    async def test_actions_require_connection(self, controller):
        with pytest.raises(NotConnectedError):
            await controller.update_order_status("O1", OrderStatus.READY)
        with pytest.raises(NotConnectedError):
            await controller.update_menu_item("M1", price="1")

    @pytest.mark.asyncio
    async def test_select_and_acknowledge(self, logged_in):
        logged_in.new_order_ids = ["O3", "O2"]
        logged_in.select_order("O3")
        logged_in.acknowledge("O3")

        assert logged_in.selected_order_id == "O3"
        assert logged_in.new_order_ids == ["O2"]

        logged_in.clear_selection()
        assert logged_in.selected_order_id is None
        with pytest.raises(NotFoundError):
            logged_in.select_order("O404")


class TestMenuActions:
    @pytest.mark.asyncio
    async def test_price_edit_before_first_sync_keeps_availability(self, controller, sheet):
        await controller.login(access_token="t")
        assert controller.menu == []

        item = await controller.update_menu_item("M1", price="350")

        assert item.available is True
        assert sheet.writes[-1] == ("Menu!C2:D2", [["350", "TRUE"]])

    @pytest.mark.asyncio
    async def test_availability_edit_before_first_sync_keeps_price(self, controller, sheet):
        await controller.login(access_token="t")
        await controller.update_menu_item("M3", available=True)
        assert sheet.rows("Menu")[3] == ["M3", "Gulab Jamun", "90", "TRUE"]

    @pytest.mark.asyncio
    async def test_uncached_unknown_item_writes_nothing(self, controller, sheet):
        await controller.login(access_token="t")
        with pytest.raises(NotFoundError):
            await controller.update_menu_item("NOPE", price="1")
        assert sheet.writes == []
        assert controller.error == MENU_UPDATE_FAILED
    @pytest.mark.asyncio
    async def test_price_change_keeps_availability(self, logged_in, sheet):
        item = await logged_in.update_menu_item("M3", price=" 95 ")

        assert item.price == "95"
        assert item.available is False
        assert sheet.writes[-1] == ("Menu!C4:D4", [["95", "FALSE"]])
        assert next(m for m in logged_in.menu if m.item_id == "M3").price == "95"

    @pytest.mark.asyncio
    async def test_toggle_availability(self, logged_in, sheet):
        item = await logged_in.update_menu_item("M1", available=False)
        assert item.price == "320"
        assert sheet.writes[-1] == ("Menu!C2:D2", [["320", "FALSE"]])

    @pytest.mark.asyncio
    async def test_failed_write_sets_banner(self, logged_in, sheet):
        sheet.write_range = AsyncMock(side_effect=FetchError("boom", status_code=500))
        with pytest.raises(FetchError):
            await logged_in.update_menu_item("M1", price="1")
        assert logged_in.error == MENU_UPDATE_FAILED
        assert next(m for m in logged_in.menu if m.item_id == "M1").price == "320"


class TestSettings:
    @pytest.mark.asyncio
    async def test_update_persists(self, controller, settings_store):
        await controller.update_settings({"pollingInterval": 300, "vibrateEnabled": False})

        stored = settings_store.load()
        assert stored.polling_interval == 120
        assert stored.vibrate_enabled is False
        assert stored.spreadsheet_id == "sheet-abc"

    @pytest.mark.asyncio
    async def test_spreadsheet_change_rebinds_storage(self, settings_store, sheet, notifier, token_client, profile):
        bound = []

        def factory(spreadsheet_id, access_token):
            bound.append((spreadsheet_id, access_token))
            return sheet

        ctrl = DashboardController(
            settings_store=settings_store,
            storage_factory=factory,
            notifier=notifier,
            token_client_factory=lambda settings: token_client,
            profile_fetcher=AsyncMock(return_value=profile),
            auto_sync=False,
        )
        await ctrl.update_settings({"spreadsheetId": "first"})
        await ctrl.login(access_token="t")
        await ctrl.refresh()
        await ctrl.update_settings({"spreadsheetId": "second"})

        assert bound == [("first", "t"), ("second", "t")]
        assert ctrl.orders == []

    @pytest.mark.asyncio
    async def test_shutdown_saves_settings(self, logged_in, settings_store):
        logged_in.settings = logged_in.settings.model_copy(update={"polling_interval": 90})
        await logged_in.shutdown()

        assert settings_store.load().polling_interval == 90
        assert logged_in.storage is None

    def test_token_client_built_from_settings(self, settings_store, sheet, notifier):
        ctrl = DashboardController(
            settings_store=settings_store,
            storage_factory=lambda spreadsheet_id, access_token: sheet,
            notifier=notifier,
        )
        assert ctrl.authorization_url("http://localhost/cb") is None

        ctrl.settings = ctrl.settings.model_copy(update={"google_client_id": "cid"})
        url = ctrl.authorization_url("http://localhost/cb")
        assert url.startswith("https://accounts.google.com/")
        assert "client_id=cid" in url


def test_fake_token_client_records_calls():
    client = FakeTokenClient()
    asyncio.run(client.request_access_token(code="c", redirect_uri="http://x"))
    assert client.calls == [{"code": "c", "access_token": None, "redirect_uri": "http://x"}]
