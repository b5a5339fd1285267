# backend/orderdesk/main.py
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from orderdesk.api import auth_router, menu_router, orders_router, settings_router
from orderdesk.api.dependencies import get_controller
from orderdesk.config import CORS_ORIGINS, SETTINGS_DATABASE_URL, STORAGE_BACKEND, setup_logging
from orderdesk.controller import DashboardController, StorageFactory
from orderdesk.db.settings_store import SettingsStore
from orderdesk.notify import ConnectionManager, Notifier
from orderdesk.storage import GoogleSheetsStorage, InMemoryStorage

logger = logging.getLogger(__name__)


def build_storage_factory(backend: str = STORAGE_BACKEND) -> StorageFactory:
    """
    Pick the spreadsheet backend.

    "inmemory" serves every spreadsheet id from one local fake sheet, which is
    enough to click through the dashboard without Google credentials.
    """
    if backend == "inmemory":
        shared = InMemoryStorage()
        logger.info("Using in-memory spreadsheet backend")
        return lambda spreadsheet_id, access_token: shared
    if backend != "sheets":
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    return lambda spreadsheet_id, access_token: GoogleSheetsStorage(spreadsheet_id, access_token)


def build_controller(database_url: str = SETTINGS_DATABASE_URL) -> DashboardController:
    manager = ConnectionManager()
    controller = DashboardController(
        settings_store=SettingsStore(database_url),
        storage_factory=build_storage_factory(),
        notifier=Notifier(manager),
    )
    return controller


def create_app(controller: Optional[DashboardController] = None) -> FastAPI:
    """Build the dashboard app; settings are loaded here and saved on shutdown."""
    setup_logging()
    controller = controller or build_controller()
    controller.load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Order dashboard backend started")
        yield
        await app.state.controller.shutdown()
        app.state.controller.settings_store.close()

    app = FastAPI(title="Order Dashboard Backend", lifespan=lifespan)
    app.state.controller = controller

    # Allow CORS for the dashboard front-end (restrict via CORS_ORIGINS in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(orders_router)
    app.include_router(menu_router)
    app.include_router(settings_router)

    # ---------- Config endpoint (convenience for frontends) ----------
    @app.get("/config", summary="Return backend URL info for frontends")
    async def get_config(request: Request):
        scheme = request.url.scheme or "http"
        host = request.url.hostname or "localhost"
        port = request.url.port or 8000
        base = f"{scheme}://{host}:{port}"
        ws_base = f"{'wss' if scheme == 'https' else 'ws'}://{host}:{port}"
        return {"backend_base": base, "ws_base": ws_base, "backend_port": port}

    @app.get("/api/state", summary="Full dashboard snapshot")
    async def get_state(request: Request):
        return get_controller(request).snapshot()

    @app.post("/api/sync/refresh", summary="Run a sync tick now")
    async def refresh(request: Request):
        ctrl = get_controller(request)
        ran = await ctrl.refresh()
        return {"ran": ran, **ctrl.snapshot()}

    @app.post("/api/error/dismiss", summary="Dismiss the error banner")
    async def dismiss_error(request: Request):
        get_controller(request).dismiss_error()
        return {"status": "ok"}

    # ---------- WebSocket for dashboards ----------
    @app.websocket("/ws/dashboard")
    async def dashboard_ws(websocket: WebSocket):
        """
        Dashboards receive JSON messages of the form:
          { action: "init" | "state", ...snapshot }
          { action: "new_orders", order_ids: [...], sound: bool, vibrate: [..] | null }

        Dashboards may send:
          { action: "ack", order_id: "..." }  -> dismiss the new-order marker
          { action: "refresh" }               -> run a tick now
        """
        ctrl: DashboardController = websocket.app.state.controller
        manager = ctrl.notifier.manager
        await manager.connect(websocket)
        try:
            await websocket.send_json({"action": "init", **ctrl.snapshot()})
            while True:
                try:
                    data = json.loads(await websocket.receive_text())
                except ValueError:
                    data = None
                if not isinstance(data, dict) or "action" not in data:
                    await websocket.send_json({"error": "invalid message"})
                    continue

                if data["action"] == "ack" and "order_id" in data:
                    ctrl.acknowledge(str(data["order_id"]))
                    await websocket.send_json({"action": "state", **ctrl.snapshot()})
                elif data["action"] == "refresh":
                    # a tick that runs broadcasts its own state, failures included
                    ran = await ctrl.refresh()
                    if not ran:
                        await websocket.send_json({"action": "state", **ctrl.snapshot()})
                else:
                    await websocket.send_json({"error": "unknown action"})
        except WebSocketDisconnect:
            logger.debug("Dashboard socket closed by client")
        finally:
            manager.disconnect(websocket)

    return app


app = create_app()
