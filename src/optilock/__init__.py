"""
Public surface for optilock.
Importing this module does **not** touch the database; call
`optilock.init_optilock(engine)` during application start-up.
"""

from .bootstrap import init_optilock
from .core.binder import MissingTokenPolicy, StatementContext, VersionBinder
from .core.record import Record
from .core.token import VersionToken
from .errors import DecodingError, MissingVersionError, OptilockError, RecordDefinitionError
from .events import on
from .runtime import Optilock

__all__ = [
    "DecodingError",
    "MissingTokenPolicy",
    "MissingVersionError",
    "Optilock",
    "OptilockError",
    "Record",
    "RecordDefinitionError",
    "StatementContext",
    "VersionBinder",
    "VersionToken",
    "init_optilock",
    "on",
]
