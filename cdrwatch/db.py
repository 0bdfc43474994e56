from __future__ import annotations
import logging
from enum import Enum
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("cdrwatch.db")


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class Database:
    """Owns the SQLAlchemy engine. ``connect()`` rebuilds it from scratch."""

    def __init__(self, uri: str):
        self.uri = uri
        self.engine: Optional[Engine] = None
        self.state = ConnectionState.DISCONNECTED

    def connect(self) -> bool:
        self.dispose()
        try:
            self.engine = create_engine(self.uri, pool_pre_ping=True)
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Database connect failed: {e}")
            self.state = ConnectionState.DISCONNECTED
            return False
        self.state = ConnectionState.CONNECTED
        return True

    def is_connected(self) -> bool:
        if self.engine is None or self.state is ConnectionState.DISCONNECTED:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Database connection lost: {e}")
            self.state = ConnectionState.DISCONNECTED
            return False
        return True

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        self.state = ConnectionState.DISCONNECTED
