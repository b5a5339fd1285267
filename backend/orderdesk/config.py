"""
Process configuration read from environment variables.

User-facing dashboard settings (polling interval, spreadsheet id, ...) are not
here; they live in the settings store (see orderdesk.db).
"""

import logging
import os

# "sheets" talks to Google; "inmemory" runs against a local fake spreadsheet
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sheets").lower()

SETTINGS_DATABASE_URL = os.getenv("SETTINGS_DATABASE_URL", "sqlite:///orderdesk.db")

SHEETS_API_BASE = os.getenv("SHEETS_API_BASE", "https://sheets.googleapis.com/v4")
SHEETS_TIMEOUT_SECONDS = float(os.getenv("SHEETS_TIMEOUT_SECONDS", "15"))

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = os.getenv("GOOGLE_TOKEN_URL", "https://oauth2.googleapis.com/token")
GOOGLE_USERINFO_URL = os.getenv("GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v3/userinfo")
GOOGLE_SCOPES = "openid email profile https://www.googleapis.com/auth/spreadsheets"

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs each poll request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
