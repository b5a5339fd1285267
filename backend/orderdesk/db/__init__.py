"""Local database models and schema setup for the dashboard."""

import logging
from typing import Any, Optional

from sqlalchemy.engine import Engine

from orderdesk.db.models import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine, base: Optional[Any] = None) -> None:
    """
    Create missing tables for the given declarative base.

    Existing tables and their data are left untouched.

    Raises:
        RuntimeError: if table creation fails
    """
    if base is None:
        base = Base
    try:
        base.metadata.create_all(engine)
    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        raise RuntimeError(f"Failed to create database tables: {e}") from e


__all__ = ["Base", "init_db"]
