"""
Lifecycle binder: the two hooks that turn a plain insert/update into an
optimistic-concurrency write.

The binder knows nothing about SQL. A persistence adapter calls

* ``before_insert`` while building an INSERT, and writes the returned
  column assignment (if any);
* ``before_update`` while building an UPDATE, and adds the returned
  equality predicate to its WHERE clause and the returned assignment to
  its SET clause, all in the **same** statement.

The adapter then reads the affected-row count: 1 means the write won,
0 means somebody else changed (or deleted) the row first.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Optional, Set

from ..errors import MissingVersionError
from .token import VersionToken

logger = logging.getLogger(__name__)

UPDATE_HOOK = "optilock.update_predicate"
DELETE_HOOK = "optilock.delete_predicate"


class MissingTokenPolicy(str, enum.Enum):
    """What an update does when the in-memory token is absent."""

    SKIP = "skip"  # no predicate, unconditional write
    REJECT = "reject"


@dataclass(frozen=True)
class VersionField:
    """Where a record type keeps its token."""

    name: str
    column: str


@dataclass(frozen=True)
class ColumnAssignment:
    column: str
    value: Any


@dataclass(frozen=True)
class EqualityPredicate:
    column: str
    value: Any


@dataclass(frozen=True)
class UpdateDirective:
    predicate: Optional[EqualityPredicate]
    assignment: ColumnAssignment
    token: VersionToken


@dataclass
class StatementContext:
    """Per-statement scratch space shared by every hook invocation."""

    applied: Set[str] = dc_field(default_factory=set)

    def once(self, key: str) -> bool:
        """True the first time ``key`` is seen, False afterwards."""
        if key in self.applied:
            return False
        self.applied.add(key)
        return True


class VersionBinder:
    def __init__(
        self,
        policy: MissingTokenPolicy = MissingTokenPolicy.SKIP,
        generator: Callable[[], VersionToken] = VersionToken.generate,
    ):
        self.policy = MissingTokenPolicy(policy)
        self.generator = generator

    def before_insert(
        self, record: Any, field: VersionField, ctx: StatementContext
    ) -> ColumnAssignment | None:
        """Stamp a fresh token on ``record`` unless the caller supplied one.

        Explicit tokens are kept verbatim so exported rows can be restored
        with their original versions.
        """
        current: VersionToken = getattr(record, field.name)
        if current.present:
            logger.debug("keeping explicit version %s on insert", current)
            return None

        token = self.generator()
        setattr(record, field.name, token)
        logger.debug("stamped version %s on insert", token)
        return ColumnAssignment(field.column, token.encode())

    def before_update(
        self, record: Any, field: VersionField, ctx: StatementContext
    ) -> UpdateDirective | None:
        """Build the compare-and-swap pair for one UPDATE statement.

        Returns ``None`` when the directive was already produced for ``ctx``.
        The record itself is left alone; the caller copies
        ``directive.token`` onto it once the row count confirms the write.
        """
        if not ctx.once(UPDATE_HOOK):
            return None

        token = self.generator()
        return UpdateDirective(
            predicate=self._seen_predicate(record, field),
            assignment=ColumnAssignment(field.column, token.encode()),
            token=token,
        )

    def before_delete(
        self, record: Any, field: VersionField, ctx: StatementContext
    ) -> EqualityPredicate | None:
        """Same guard as an update, without a new version."""
        if not ctx.once(DELETE_HOOK):
            return None
        return self._seen_predicate(record, field)

    def _seen_predicate(self, record: Any, field: VersionField) -> EqualityPredicate | None:
        seen: VersionToken = getattr(record, field.name)
        if seen.present:
            return EqualityPredicate(field.column, seen.encode())
        if self.policy is MissingTokenPolicy.REJECT:
            raise MissingVersionError(
                f"{type(record).__name__}.{field.name} was never read from storage; "
                "reload the record before writing it"
            )
        logger.debug("no version on %s, writing unconditionally", type(record).__name__)
        return None
