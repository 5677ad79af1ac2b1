"""
Single entry-point that wires SQLAlchemy into optilock.
Call once at application start-up, e.g. in a FastAPI lifespan handler.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from .core.binder import MissingTokenPolicy, VersionBinder
from .core.record import Record
from .persistence.store import RecordStore

logger = logging.getLogger(__name__)


def init_optilock(
    engine: Engine,
    *,
    policy: MissingTokenPolicy | str = MissingTokenPolicy.SKIP,
    binder: Optional[VersionBinder] = None,
) -> RecordStore:
    """
    Build the global RecordStore and inject it into ``Record`` (and so
    into every subclass). Tables are created on first use of each Record
    type.
    """
    store = RecordStore(engine, binder or VersionBinder(policy=MissingTokenPolicy(policy)))

    Record._store = store
    logger.info(
        "optilock initialised on %s (missing token policy: %s)",
        engine.url.render_as_string(hide_password=True),
        store.binder.policy.value,
    )
    return store
