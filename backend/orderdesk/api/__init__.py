"""HTTP routers for the order dashboard."""

from .auth_router import router as auth_router
from .menu_router import router as menu_router
from .orders_router import router as orders_router
from .settings_router import router as settings_router

__all__ = ["auth_router", "menu_router", "orders_router", "settings_router"]
