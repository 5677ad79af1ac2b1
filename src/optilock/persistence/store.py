"""
Thin data-access layer: one table per Record subclass.

Every write is a single statement inside ``engine.begin()``; the version
compare-and-swap is left to the database's single-row atomicity.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.binder import StatementContext, VersionBinder
from ..errors import RecordDefinitionError
from ..events import emit_conflict, emit_create, emit_update
from .models import PRIMARY_KEY, build_table

logger = logging.getLogger(__name__)

T_Record = TypeVar("T_Record")


class RecordStore:
    """Thin data‑access layer around one versioned table per Record type."""

    def __init__(self, engine: Engine, binder: Optional[VersionBinder] = None):
        self.engine = engine
        self.binder = binder or VersionBinder()
        self.metadata = MetaData()
        self._tables: Dict[type, Table] = {}
        self._lock = threading.Lock()

    # ---- schema ---------------------------------------------------------
    def table_for(self, record_cls: type) -> Table:
        """Return (creating on first use) the table backing ``record_cls``."""
        with self._lock:
            table = self._tables.get(record_cls)
            if table is None:
                table = build_table(record_cls, self.metadata)
                self.metadata.create_all(self.engine, tables=[table])
                self._tables[record_cls] = table
                logger.info("table %s ready for %s", table.name, record_cls.__name__)
            return table

    # ---- writes ---------------------------------------------------------
    def insert(self, record: Any) -> None:
        """INSERT ``record``; an absent version is stamped first.

        The stamped token is visible on ``record`` afterwards. If the
        statement fails the record gets its previous token back and the
        store error propagates.
        """
        table = self.table_for(type(record))
        values = self._row_values(record)
        field = type(record).__version_field__
        previous = getattr(record, field.name) if field else None

        if field is not None:
            assignment = self.binder.before_insert(record, field, StatementContext())
            if assignment is not None:
                values[assignment.column] = assignment.value

        try:
            with self.engine.begin() as conn:
                conn.execute(insert(table).values(**values))
        except SQLAlchemyError:
            if field is not None:
                setattr(record, field.name, previous)
            raise

        logger.debug(
            "inserted %s %s",
            table.name,
            record.id,
            extra={"table": table.name, "record_id": str(record.id)},
        )
        emit_create(record)

    def update(self, record: Any, /, **changes: Any) -> int:
        """Version-checked UPDATE of ``changes``.

        Returns the affected-row count: 1 when the write won, 0 when the
        stored version no longer matches ``record`` (or the row is gone).
        On 0 neither the row nor ``record`` is modified.
        """
        cls = type(record)
        table = self.table_for(cls)
        field = cls.__version_field__

        unknown = sorted(set(changes) - set(table.c.keys()))
        if unknown:
            raise RecordDefinitionError(f"{cls.__name__} has no column(s) {', '.join(unknown)}")
        if PRIMARY_KEY in changes:
            raise RecordDefinitionError(f"{cls.__name__}.{PRIMARY_KEY} cannot be updated")
        if field is not None and field.name in changes:
            raise RecordDefinitionError(
                f"{cls.__name__}.{field.name} is managed by the store and cannot be set directly"
            )

        staged = cls.model_validate({**dict(record), **changes})
        values = {name: getattr(staged, name) for name in changes}

        stmt = update(table).where(table.c[PRIMARY_KEY] == record.id)
        directive = None
        if field is not None:
            directive = self.binder.before_update(record, field, StatementContext())
            if directive.predicate is not None:
                stmt = stmt.where(table.c[directive.predicate.column] == directive.predicate.value)
            values[directive.assignment.column] = directive.assignment.value
        if not values:
            raise ValueError(f"nothing to update on {cls.__name__} {record.id}")

        with self.engine.begin() as conn:
            rows = conn.execute(stmt.values(**values)).rowcount

        log_extra = {"table": table.name, "record_id": str(record.id), "rows": rows}
        if rows == 0:
            logger.warning(
                "version conflict on %s %s: row changed or removed since it was read",
                table.name,
                record.id,
                extra=log_extra,
            )
            emit_conflict(record)
            return rows

        for name in changes:
            setattr(record, name, values[name])
        if directive is not None:
            setattr(record, field.name, directive.token)
        logger.debug("updated %s %s", table.name, record.id, extra=log_extra)
        emit_update(record)
        return rows

    def save(self, record: Any) -> int:
        """Version-checked UPDATE of every non-key field of ``record``."""
        field = type(record).__version_field__
        skip = {PRIMARY_KEY, field.name if field else None}
        changes = {name: value for name, value in record if name not in skip}
        return self.update(record, **changes)

    def delete(self, record: Any) -> int:
        """Version-checked DELETE; 0 rows means conflict or already gone."""
        table = self.table_for(type(record))
        field = type(record).__version_field__

        stmt = delete(table).where(table.c[PRIMARY_KEY] == record.id)
        if field is not None:
            predicate = self.binder.before_delete(record, field, StatementContext())
            if predicate is not None:
                stmt = stmt.where(table.c[predicate.column] == predicate.value)

        with self.engine.begin() as conn:
            rows = conn.execute(stmt).rowcount

        log_extra = {"table": table.name, "record_id": str(record.id), "rows": rows}
        if rows == 0:
            logger.warning("version conflict deleting %s %s", table.name, record.id, extra=log_extra)
            emit_conflict(record)
        else:
            logger.debug("deleted %s %s", table.name, record.id, extra=log_extra)
        return rows

    # ---- reads ----------------------------------------------------------
    def get(self, record_cls: Type[T_Record], rec_id: uuid.UUID) -> T_Record | None:
        """Load the current row for ``rec_id`` or ``None``."""
        table = self.table_for(record_cls)
        with self.engine.connect() as conn:
            row = conn.execute(select(table).where(table.c[PRIMARY_KEY] == rec_id)).first()
        if row is None:
            return None
        return record_cls.model_validate(dict(row._mapping))

    # ---- helpers --------------------------------------------------------
    @staticmethod
    def _row_values(record: Any) -> Dict[str, Any]:
        return {name: value for name, value in record}
