"""Opaque version token stamped on every versioned record.

A token is either *absent* (the record was built in memory and never
stamped) or *present* with an opaque string value. Present values are
ULIDs: unique with overwhelming probability and sortable by creation time.

The token knows how to cross the two boundaries it lives on:

* storage   ``scan`` / ``encode``          (nullable string column)
* JSON      ``deserialize`` / ``serialize`` (JSON string or ``null``)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import (
    GetCoreSchemaHandler,
    GetJsonSchemaHandler,
    StrictStr,
    TypeAdapter,
    ValidationError,
)
from pydantic_core import core_schema
from ulid import ULID

from ..errors import DecodingError

_JSON_ADAPTER: TypeAdapter[Optional[str]] = TypeAdapter(Optional[StrictStr])


@dataclass(frozen=True)
class VersionToken:
    """Nullable, immutable version identifier.

    Two tokens are equal when both are absent or both carry the same value.
    """

    value: str | None = None

    def __post_init__(self) -> None:
        if self.value is not None and not isinstance(self.value, str):
            raise TypeError(
                f"VersionToken value must be str or None, got {type(self.value).__name__}"
            )

    # ---- construction ---------------------------------------------------
    @classmethod
    def generate(cls) -> "VersionToken":
        """Mint a fresh, present token."""
        return cls(str(ULID()))

    @classmethod
    def absent(cls) -> "VersionToken":
        return cls(None)

    # ---- state ----------------------------------------------------------
    @property
    def present(self) -> bool:
        return self.value is not None

    def __bool__(self) -> bool:
        return self.present

    def __str__(self) -> str:
        return self.value or ""

    # ---- storage boundary -----------------------------------------------
    @classmethod
    def scan(cls, raw: Any) -> "VersionToken":
        """Convert a raw column value into a token.

        ``None`` is absent, ``str`` is present. Some drivers hand back text
        columns as bytes; those are decoded as UTF-8.
        """
        if raw is None:
            return cls(None)
        if isinstance(raw, str):
            return cls(raw)
        if isinstance(raw, (bytes, bytearray)):
            try:
                return cls(bytes(raw).decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise DecodingError(f"version token is not valid UTF-8: {exc}") from exc
        raise DecodingError(
            f"cannot scan {type(raw).__name__} into a version token"
        )

    def encode(self) -> str | None:
        """Value to bind when writing the version column."""
        return self.value

    # ---- JSON boundary --------------------------------------------------
    def serialize(self) -> bytes:
        return _JSON_ADAPTER.dump_json(self.value)

    @classmethod
    def deserialize(cls, data: bytes | str) -> "VersionToken":
        """Parse a JSON document; ``null`` is absent, a string is present."""
        try:
            return cls(_JSON_ADAPTER.validate_json(data))
        except ValidationError as exc:
            raise DecodingError(f"invalid version token JSON: {data!r}") from exc

    # ---- pydantic integration -------------------------------------------
    @classmethod
    def _coerce(cls, value: Any) -> "VersionToken":
        if isinstance(value, VersionToken):
            return value
        if value is None or isinstance(value, str):
            return cls(value)
        raise DecodingError(
            f"expected a string or null version token, got {type(value).__name__}"
        )

    @staticmethod
    def _dump(token: "VersionToken", info: core_schema.SerializationInfo) -> Any:
        """JSON gets the raw string or null; python dumps keep the token."""
        if info.mode_is_json():
            return token.encode()
        return token

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls._dump, info_arg=True
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"anyOf": [{"type": "string"}, {"type": "null"}]}
