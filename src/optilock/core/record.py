"""
Record kernel – *pure Pydantic* (no SQLAlchemy imports).

* A Record subclass declares at most one ``VersionToken`` field; the
  metaclass finds it at class-creation time and stores it on the class
  as ``__version_field__``.
* Persistence goes through the store injected by ``init_optilock()``.
"""

from __future__ import annotations

import re
import types
import uuid
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, Field

from ..errors import RecordDefinitionError
from .binder import VersionField
from .token import VersionToken

if TYPE_CHECKING:
    from ..persistence.store import RecordStore

T_Record = TypeVar("T_Record", bound="Record")
ModelMeta = BaseModel.__class__


# helpers
def _snake(name: str) -> str:
    """CamelCase ➜ snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def unwrap_optional(annotation: Any) -> Any:
    """``Optional[X]`` / ``X | None`` ➜ ``X``; anything else unchanged."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _is_token(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, VersionToken)


def _find_version_field(cls: type, name: str) -> VersionField | None:
    found = []
    for field_name, info in cls.model_fields.items():
        if _is_token(info.annotation):
            found.append(field_name)
        elif _is_token(unwrap_optional(info.annotation)):
            raise RecordDefinitionError(
                f"{name}.{field_name} is Optional; declare it as "
                f"`{field_name}: VersionToken = VersionToken()`, the token itself is nullable"
            )
    if len(found) > 1:
        raise RecordDefinitionError(
            f"{name} declares {len(found)} version fields ({', '.join(found)}); only one is allowed"
        )
    if not found:
        return None
    return VersionField(name=found[0], column=found[0])


class RecordMeta(ModelMeta):
    """Attach ``__tablename__`` and ``__version_field__`` at class-creation time."""

    def __new__(mcls, name: str, bases, ns, **kw):
        cls = super().__new__(mcls, name, bases, ns, **kw)
        if name == "Record" and ns.get("__module__") == __name__:  # skip abstract base
            return cls

        if "__tablename__" not in ns:
            cls.__tablename__ = _snake(name)
        cls.__version_field__ = _find_version_field(cls, name)
        return cls


class Record(BaseModel, metaclass=RecordMeta):
    """Base class for rows guarded by an optimistic version token."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)

    __version_field__ = None
    _store: ClassVar[Optional["RecordStore"]] = None  # injected by init_optilock()
    model_config = {"validate_assignment": True, "arbitrary_types_allowed": True}

    # ---- writes ---------------------------------------------------------
    def create(self: T_Record) -> T_Record:
        """INSERT this record, stamping a version if it has none."""
        self._ensure_store().insert(self)
        return self

    def update(self, /, **changes: Any) -> int:
        """Conditionally UPDATE ``changes``; returns the affected-row count."""
        return self._ensure_store().update(self, **changes)

    def save(self) -> int:
        """Conditionally UPDATE every field; returns the affected-row count."""
        return self._ensure_store().save(self)

    def delete(self) -> int:
        return self._ensure_store().delete(self)

    # ---- reads ----------------------------------------------------------
    @classmethod
    def get(cls: Type[T_Record], rec_id: uuid.UUID) -> T_Record | None:
        return cls._ensure_store().get(cls, rec_id)

    @classmethod
    def hydrate(cls: Type[T_Record], rec_id: uuid.UUID) -> T_Record:
        obj = cls.get(rec_id)
        if obj is None:
            raise KeyError(f"{cls.__name__} {rec_id} not found")
        return obj

    # internal util
    @classmethod
    def _ensure_store(cls) -> "RecordStore":
        if cls._store is None:
            raise RuntimeError("Call init_optilock(engine) before using Record")
        return cls._store
