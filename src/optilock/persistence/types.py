"""
SQLAlchemy column types for version tokens and UTC timestamps.

The version column is a plain nullable VARCHAR; conversion happens at the
bind/result boundary so queries and schemas stay vendor-neutral.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator

from ..core.token import VersionToken

TOKEN_LENGTH = 64  # ULIDs are 26 chars; explicit tokens may be longer


class VersionType(TypeDecorator):
    impl = String(TOKEN_LENGTH)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        if isinstance(value, VersionToken):
            return value.encode()
        return VersionToken.scan(value).encode()

    def process_result_value(self, value: Any, dialect) -> VersionToken:
        return VersionToken.scan(value)

    @property
    def python_type(self) -> type:
        return VersionToken


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetimes stored as UTC.

    Backends without a zone-aware column (SQLite) hand values back naive;
    those are read as UTC. Naive values written by callers are taken as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: dt.datetime | None, dialect) -> dt.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)

    def process_result_value(self, value: dt.datetime | None, dialect) -> dt.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)

    @property
    def python_type(self) -> type:
        return dt.datetime
