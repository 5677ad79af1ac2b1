"""Tests for the store-agnostic insert/update hooks."""

import itertools
from dataclasses import dataclass, field

import pytest

from optilock import MissingTokenPolicy, MissingVersionError, StatementContext, VersionBinder, VersionToken
from optilock.core.binder import ColumnAssignment, EqualityPredicate, VersionField


@dataclass
class Row:
    name: str = ""
    version: VersionToken = field(default_factory=VersionToken)


VERSION = VersionField(name="version", column="version")


@pytest.fixture
def tokens():
    counter = itertools.count(1)
    return lambda: VersionToken(f"v{next(counter)}")


@pytest.fixture
def binder(tokens):
    return VersionBinder(generator=tokens)


class TestStatementContext:
    def test_once(self):
        ctx = StatementContext()
        assert ctx.once("a")
        assert not ctx.once("a")
        assert ctx.once("b")
        assert ctx.applied == {"a", "b"}


class TestBeforeInsert:
    def test_stamps_absent_token(self, binder):
        row = Row()
        assignment = binder.before_insert(row, VERSION, StatementContext())
        assert assignment == ColumnAssignment("version", "v1")
        assert row.version == VersionToken("v1")

    def test_keeps_explicit_token(self, binder):
        row = Row(version=VersionToken("imported"))
        assert binder.before_insert(row, VERSION, StatementContext()) is None
        assert row.version == VersionToken("imported")

    def test_default_generator_mints_ulids(self):
        row = Row()
        VersionBinder().before_insert(row, VERSION, StatementContext())
        assert row.version.present
        assert len(row.version.value) == 26


class TestBeforeUpdate:
    def test_predicate_on_seen_token_and_new_assignment(self, binder):
        row = Row(version=VersionToken("seen"))
        directive = binder.before_update(row, VERSION, StatementContext())

        assert directive.predicate == EqualityPredicate("version", "seen")
        assert directive.assignment == ColumnAssignment("version", "v1")
        assert directive.token == VersionToken("v1")

    def test_does_not_touch_record(self, binder):
        row = Row(version=VersionToken("seen"))
        binder.before_update(row, VERSION, StatementContext())
        assert row.version == VersionToken("seen")

    def test_runs_once_per_statement(self, binder):
        row = Row(version=VersionToken("seen"))
        ctx = StatementContext()
        assert binder.before_update(row, VERSION, ctx) is not None
        assert binder.before_update(row, VERSION, ctx) is None

    def test_fresh_context_runs_again(self, binder):
        row = Row(version=VersionToken("seen"))
        first = binder.before_update(row, VERSION, StatementContext())
        second = binder.before_update(row, VERSION, StatementContext())
        assert first.token != second.token

    def test_absent_token_skips_predicate_by_default(self, binder):
        directive = binder.before_update(Row(), VERSION, StatementContext())
        assert directive.predicate is None
        assert directive.assignment == ColumnAssignment("version", "v1")

    def test_absent_token_rejected_by_policy(self, tokens):
        binder = VersionBinder(policy=MissingTokenPolicy.REJECT, generator=tokens)
        with pytest.raises(MissingVersionError):
            binder.before_update(Row(), VERSION, StatementContext())

    def test_policy_accepts_string(self):
        assert VersionBinder(policy="reject").policy is MissingTokenPolicy.REJECT

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            VersionBinder(policy="merge")


class TestBeforeDelete:
    def test_predicate_on_seen_token(self, binder):
        row = Row(version=VersionToken("seen"))
        assert binder.before_delete(row, VERSION, StatementContext()) == EqualityPredicate("version", "seen")

    def test_runs_once_per_statement(self, binder):
        row = Row(version=VersionToken("seen"))
        ctx = StatementContext()
        binder.before_delete(row, VERSION, ctx)
        assert binder.before_delete(row, VERSION, ctx) is None

    def test_absent_token_rejected_by_policy(self):
        binder = VersionBinder(policy=MissingTokenPolicy.REJECT)
        with pytest.raises(MissingVersionError):
            binder.before_delete(Row(), VERSION, StatementContext())
