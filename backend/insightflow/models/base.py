"""
Declarative base and shared column helpers.

Ids are UUID strings and timestamps are ISO strings, which keeps the
schema portable between SQLite and PostgreSQL. Nested documents (framework
results, chart lists, comparison payloads) live in Text columns as JSON
and are read and written through ``load_json`` / ``dump_json``.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Optional, Tuple

from sqlalchemy import Column, String, inspect
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def utc_now_iso() -> str:
    """Current UTC time, e.g. ``"2025-03-01T10:30:45.123456"``."""
    return datetime.utcnow().isoformat()


def new_uuid() -> str:
    return str(uuid.uuid4())


def load_json(raw: Optional[str], default: Any) -> Any:
    """
    Decode a JSON text column.

    NULL, empty and malformed values give ``default``; a single corrupt
    row must not break a listing.
    """
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


def dump_json(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value)


class UUIDMixin:
    id = Column(String, primary_key=True, default=new_uuid, doc="UUID primary key")


class ModelMixin:
    """
    Column access and a compact repr.

    Subclasses list the columns shown by ``repr`` in ``__repr_fields__``.
    """

    __repr_fields__: Tuple[str, ...] = ("id", "username", "company_name")

    def column_values(self) -> dict[str, Any]:
        """Raw column values; JSON columns stay encoded."""
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}

    def __repr__(self) -> str:
        values = self.column_values()
        shown = ", ".join(f"{name}={values[name]!r}" for name in self.__repr_fields__ if name in values)
        return f"{type(self).__name__}({shown})"
