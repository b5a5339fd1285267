"""
SQLite-backed settings store.

Settings are a flat key/value blob. Loading merges whatever is stored over
the defaults (see AppSettings.from_stored); saving overwrites every known key,
so the last write wins.
"""

import logging
from typing import Any, Dict

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from orderdesk.config import SETTINGS_DATABASE_URL
from orderdesk.db import init_db
from orderdesk.db.models import SettingModel
from orderdesk.models import AppSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Load and save AppSettings through SQLAlchemy."""

    def __init__(self, database_url: str = SETTINGS_DATABASE_URL):
        self.database_url = database_url
        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
            echo=False,
            future=True,
            pool_pre_ping=True,
        )
        self.SessionLocal = sessionmaker(bind=self.engine)
        init_db(self.engine)

    def _get_session(self) -> Session:
        return self.SessionLocal()

    def load_raw(self) -> Dict[str, Any]:
        """All stored keys, including ones this version does not recognize."""
        session = self._get_session()
        try:
            rows = session.execute(select(SettingModel)).scalars().all()
            return {row.key: row.value for row in rows}
        finally:
            session.close()

    def load(self) -> AppSettings:
        settings = AppSettings.from_stored(self.load_raw())
        logger.info(f"Loaded settings (spreadsheet configured: {bool(settings.spreadsheet_id)})")
        return settings

    def save(self, settings: AppSettings) -> None:
        """Persist every setting. Wrapped in one transaction."""
        session = self._get_session()
        try:
            with session.begin():
                for key, value in settings.to_stored().items():
                    row = session.get(SettingModel, key)
                    if row:
                        row.value = value
                    else:
                        session.add(SettingModel(key=key, value=value))
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
