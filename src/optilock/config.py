"""
Environment-driven settings.

    OPTILOCK_DATABASE_URL           SQLAlchemy URL (default: sqlite:///optilock.db)
    OPTILOCK_MISSING_TOKEN_POLICY   "skip" | "reject" (default: skip)
    OPTILOCK_LOG_LEVEL              logging level name (default: WARNING)

Values from a local ``.env`` are loaded too; real environment variables win.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.binder import MissingTokenPolicy
from .errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite:///optilock.db"


class Settings(BaseSettings):
    database_url: str = DEFAULT_DATABASE_URL
    missing_token_policy: MissingTokenPolicy = MissingTokenPolicy.SKIP
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="OPTILOCK_", env_file=".env", extra="ignore", frozen=True
    )

    @field_validator("missing_token_policy", mode="before")
    @classmethod
    def _normalise_policy(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            if not isinstance(logging.getLevelName(value), int):
                raise ValueError(f"{value!r} is not a logging level")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Read ``OPTILOCK_*`` settings, raising ConfigError on bad values."""
        try:
            return cls()
        except ValidationError as exc:
            problems = "; ".join(
                f"OPTILOCK_{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigError(f"invalid optilock settings: {problems}") from exc
