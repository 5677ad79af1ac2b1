"""
One table per Record subclass, derived from its pydantic fields.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, get_origin

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Uuid,
)
from sqlalchemy.types import TypeEngine

from ..core.record import unwrap_optional
from ..core.token import VersionToken
from ..errors import RecordDefinitionError
from .types import UTCDateTime, VersionType

PRIMARY_KEY = "id"

_SCALARS: dict[type, Any] = {
    VersionToken: VersionType,
    bool: Boolean,  # before int: bool is an int subclass
    int: Integer,
    float: Float,
    str: String,
    dt.datetime: UTCDateTime,
    uuid.UUID: Uuid,
    dict: JSON,
    list: JSON,
}


def column_type(annotation: Any) -> TypeEngine:
    """SQLAlchemy type for a pydantic field annotation."""
    target = unwrap_optional(annotation)
    target = get_origin(target) or target  # dict[str, Any] ➜ dict
    for py_type, sa_type in _SCALARS.items():
        if isinstance(target, type) and issubclass(target, py_type):
            return sa_type()
    raise RecordDefinitionError(f"no column type for annotation {annotation!r}")


def build_table(record_cls: type, metadata: MetaData) -> Table:
    """Describe ``record_cls`` as a Table on ``metadata``."""
    columns = []
    for name, info in record_cls.model_fields.items():
        try:
            sa_type = column_type(info.annotation)
        except RecordDefinitionError as exc:
            raise RecordDefinitionError(f"{record_cls.__name__}.{name}: {exc}") from exc
        if name == PRIMARY_KEY:
            columns.append(Column(name, sa_type, primary_key=True))
        else:
            columns.append(Column(name, sa_type, nullable=True))
    return Table(record_cls.__tablename__, metadata, *columns, extend_existing=True)
