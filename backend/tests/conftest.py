import os
import sys
import tempfile

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Configure before orderdesk.config is imported anywhere
_TEST_DIR = tempfile.mkdtemp(prefix="orderdesk-tests-")
os.environ.setdefault("SETTINGS_DATABASE_URL", f"sqlite:///{os.path.join(_TEST_DIR, 'settings.db')}")
os.environ.setdefault("STORAGE_BACKEND", "inmemory")

from unittest.mock import AsyncMock

import httpx
from httpx import ASGITransport

from orderdesk.controller import DashboardController
from orderdesk.db.settings_store import SettingsStore
from orderdesk.identity import Err, Ok, TokenClient
from orderdesk.models import AppSettings, UserProfile
from orderdesk.notify import ConnectionManager, Notifier
from orderdesk.storage import InMemoryStorage


ORDER_HEADER = ["order_id", "customer_name", "phone", "order_type", "items",
                "total_amount", "payment_status", "order_status", "created_at"]


def order_row(order_id, created_at, status="new", items="Paneer Tikka, Naan"):
    """Orders sheet row in column order A:I."""
    return [order_id, f"Customer {order_id}", "9876543210", "pickup", items,
            "450", "paid", status, created_at]


class FakeTokenClient(TokenClient):
    """Token client that never leaves the process."""

    def __init__(self, token="token-123", reason=None):
        self.token = token
        self.reason = reason
        self.calls = []

    async def request_access_token(self, code=None, access_token=None, redirect_uri=None):
        self.calls.append({"code": code, "access_token": access_token, "redirect_uri": redirect_uri})
        if self.reason:
            return Err(reason=self.reason)
        return Ok(token=access_token or self.token)


@pytest.fixture
def sample_sheets():
    """Spreadsheet with three orders, three menu items and no watermark."""
    return {
        "Orders": [
            ORDER_HEADER,
            order_row("O1", "2024-05-01 12:00:00", status="completed"),
            order_row("O2", "2024-05-01 12:30:00", status="preparing"),
            order_row("O3", "2024-05-01 13:00:00"),
        ],
        "Menu": [
            ["item_id", "item_name", "price", "available"],
            ["M1", "Butter Chicken", "320", "TRUE"],
            ["M2", "Dal Makhani", "240", "TRUE"],
            ["M3", "Gulab Jamun", "90", "FALSE"],
        ],
        "Meta": [["key", "value"]],
    }


@pytest.fixture
def sheet(sample_sheets):
    """In-memory spreadsheet seeded with sample data."""
    return InMemoryStorage(sample_sheets)


@pytest.fixture
def settings_store(tmp_path):
    """File-backed settings store in a temp directory."""
    store = SettingsStore(f"sqlite:///{tmp_path / 'settings.db'}")
    yield store
    store.close()


@pytest.fixture
def notifier():
    """Notifier whose side effects are recorded instead of sent."""
    n = Notifier(ConnectionManager())
    n.new_orders = AsyncMock()
    n.state_changed = AsyncMock()
    return n


@pytest.fixture
def token_client():
    return FakeTokenClient()


@pytest.fixture
def profile():
    return UserProfile(email="staff@example.com", name="Front Desk", picture="https://example.com/a.png")


@pytest.fixture
def controller(settings_store, sheet, notifier, token_client, profile):
    """Controller bound to the in-memory sheet, with polling disabled."""
    ctrl = DashboardController(
        settings_store=settings_store,
        storage_factory=lambda spreadsheet_id, access_token: sheet,
        notifier=notifier,
        token_client_factory=lambda settings: token_client,
        profile_fetcher=AsyncMock(return_value=profile),
        auto_sync=False,
    )
    settings_store.save(AppSettings(
        spreadsheet_id="sheet-abc",
        google_client_id="client-123.apps.googleusercontent.com",
    ))
    ctrl.load_settings()
    return ctrl


@pytest_asyncio.fixture
async def logged_in(controller):
    """Controller with an active session and one completed sync."""
    assert await controller.login(access_token="token-123")
    await controller.refresh()
    return controller


@pytest.fixture
def app(controller):
    from orderdesk.main import create_app
    return create_app(controller)


@pytest_asyncio.fixture
async def async_client(app):
    """Create async HTTP client for testing."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
