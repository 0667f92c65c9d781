"""Migration records, their collections and execution of SQL migration files."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

MigrationFunc = Callable[[Any], None]

SPLIT_DIRECTIVE_PREFIX = "--bun:"

CODE_TEMPLATE = '''from %s import migrations


def up(conn):
    print(" [up migration] ", end="")


def down(conn):
    print(" [down migration] ", end="")


migrations.register(up, down)
'''

SQL_TEMPLATE = """SET statement_timeout = 0;

--bun:split

SELECT 1

--bun:split

SELECT 2
"""


@dataclass
class Migration:
    """A single migration and, once applied, its bookkeeping data."""

    name: str = ""
    comment: str = ""
    id: int = 0
    group_id: int = 0
    migrated_at: datetime | None = None
    up: MigrationFunc | None = field(default=None, repr=False, compare=False)
    down: MigrationFunc | None = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        return f"{self.name}_{self.comment}"

    def is_applied(self) -> bool:
        """Return True if the migration has been recorded as applied."""
        return self.id > 0


class MigrationSlice(list):
    """A list of migrations with helpers for ordering and grouping."""

    def __str__(self) -> str:
        if not self:
            return "empty"
        if len(self) > 5:
            return f"{len(self)} migrations ({self[0].name} ... {self[-1].name})"
        return ", ".join(str(m) for m in self)

    def applied(self) -> MigrationSlice:
        """Return applied migrations in descending name order."""
        return MigrationSlice(
            sorted((m for m in self if m.is_applied()), key=lambda m: m.name, reverse=True)
        )

    def unapplied(self) -> MigrationSlice:
        """Return unapplied migrations in ascending name order."""
        return MigrationSlice(
            sorted((m for m in self if not m.is_applied()), key=lambda m: m.name)
        )

    def last_group_id(self) -> int:
        """Return the highest group id, or 0 when there are no groups."""
        return max((m.group_id for m in self), default=0)

    def last_group(self) -> MigrationGroup:
        """Return the most recently applied migration group."""
        group = MigrationGroup(id=self.last_group_id())
        if group.id == 0:
            return group
        group.migrations = MigrationSlice(m for m in self if m.group_id == group.id)
        return group


@dataclass
class MigrationGroup:
    """Migrations that were applied together."""

    id: int = 0
    migrations: MigrationSlice = field(default_factory=MigrationSlice)

    def is_zero(self) -> bool:
        """Return True for an empty group."""
        return self.id == 0 and not self.migrations

    def __str__(self) -> str:
        if self.is_zero():
            return "nil"
        return f"group #{self.id} ({self.migrations})"


@dataclass
class MigrationFile:
    """A migration file created on disk."""

    name: str
    path: str
    content: str


def _strip_line_ending(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def split_queries(stream: Iterable[str]) -> list[str]:
    """Split SQL text into queries at ``--bun:split`` directive lines.

    Raises :class:`ValueError` on any other ``--bun:`` directive.
    """
    queries: list[str] = []
    query: list[str] = []
    for raw in stream:
        line = _strip_line_ending(raw)
        if line.startswith(SPLIT_DIRECTIVE_PREFIX):
            directive = line[len(SPLIT_DIRECTIVE_PREFIX):]
            if directive == "split":
                queries.append("".join(query))
                query = []
                continue
            raise ValueError(f"unknown directive: {directive!r}")
        query.append(line)
        query.append("\n")
    if query:
        queries.append("".join(query))
    return queries


def execute_sql(conn: Any, stream: Iterable[str], is_tx: bool) -> None:
    """Execute the queries of an SQL migration on a DB-API connection.

    When ``is_tx`` is true the connection is committed afterwards, as the
    transaction is finished whether or not a query failed.
    """
    queries = split_queries(stream)
    cursor = conn.cursor()
    try:
        for query in queries:
            cursor.execute(query)
    finally:
        cursor.close()
        if is_tx:
            conn.commit()


def new_sql_migration_func(path: str | os.PathLike[str]) -> MigrationFunc:
    """Return a migration function that runs the SQL file at ``path``."""
    fpath = os.fspath(path)
    is_tx = fpath.endswith(".tx.up.sql") or fpath.endswith(".tx.down.sql")

    def run(conn: Any) -> None:
        with open(fpath, encoding="utf-8") as f:
            execute_sql(conn, f, is_tx)

    return run