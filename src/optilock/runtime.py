"""
optilock.runtime  ──  A thin façade so applications can wire everything
from the environment in one call.

Usage pattern in user code
--------------------------
    from optilock.runtime import Optilock

    Optilock.init()                 # reads OPTILOCK_* / .env
    invoice = Invoice(total=10).create()
    if invoice.update(total=12) == 0:
        ...                         # somebody else won; re-read and decide
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .bootstrap import init_optilock
from .config import Settings
from .core.record import Record
from .logging_config import configure_logging
from .persistence.store import RecordStore


class Optilock:
    """Process-wide holder for the engine and store built from settings."""

    _store: ClassVar[Optional[RecordStore]] = None
    _engine: ClassVar[Optional[Engine]] = None
    settings: ClassVar[Optional[Settings]] = None

    # ---------- one-shot initialiser ----------
    @classmethod
    def init(
        cls,
        settings: Optional[Settings] = None,
        *,
        json_logs: bool = False,
        **engine_kwargs: Any,
    ) -> RecordStore:
        if cls._store is None:
            settings = settings or Settings.from_env()
            if json_logs:
                configure_logging(settings.log_level)
            cls._engine = create_engine(settings.database_url, pool_pre_ping=True, **engine_kwargs)
            cls._store = init_optilock(cls._engine, policy=settings.missing_token_policy)
            cls.settings = settings
        return cls._store

    # ---------- convenience helpers ----------
    @classmethod
    def store(cls) -> RecordStore:
        if cls._store is None:
            raise RuntimeError("Optilock.init() has not been called")
        return cls._store

    @classmethod
    def shutdown(cls) -> None:
        """Dispose the engine so ``init`` can run again."""
        if cls._engine is not None:
            cls._engine.dispose()
        Record._store = None
        cls._store = None
        cls._engine = None
        cls.settings = None
