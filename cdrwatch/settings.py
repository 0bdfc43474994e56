from __future__ import annotations
import logging
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .utils import merge

logger = logging.getLogger("cdrwatch.settings")

SETTINGS_TABLE = "default_settings"

TRUE_VALUES = {"true", "1", "yes", "on"}


class Settings:
    """Category/subcategory settings: YAML defaults overlaid with database rows."""

    def __init__(self, values: dict | None = None):
        self.values = merge({}, values or {})

    def get(self, category: str, subcategory: str, default: Any = None) -> Any:
        return self.values.get(category, {}).get(subcategory, default)

    def get_bool(self, category: str, subcategory: str, default: bool = False) -> bool:
        value = self.get(category, subcategory, default)
        if isinstance(value, str):
            return value.strip().lower() in TRUE_VALUES
        return bool(value)

    @classmethod
    def load(cls, db, defaults: dict | None = None) -> "Settings":
        values = merge({}, defaults or {})
        if db is None or db.engine is None:
            return cls(values)
        try:
            if not inspect(db.engine).has_table(SETTINGS_TABLE):
                return cls(values)
            query = text(
                f"SELECT category, subcategory, value FROM {SETTINGS_TABLE} "
                "WHERE enabled = :enabled"
            )
            with db.engine.connect() as conn:
                rows = conn.execute(query, {"enabled": True}).fetchall()
        except SQLAlchemyError as e:
            logger.warning(f"Settings unavailable, using defaults: {e}")
            return cls(values)
        for category, subcategory, value in rows:
            values.setdefault(category, {})[subcategory] = value
        return cls(values)
