"""Applying and rolling back migrations, recorded in a database table.

The migrator works with a DB-API 2.0 connection that uses the ``qmark``
parameter style, such as :mod:`sqlite3`. Migration functions receive that
connection.
"""

from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from typing import Any

from sqlbun.migration import (
    CODE_TEMPLATE,
    SQL_TEMPLATE,
    Migration,
    MigrationFile,
    MigrationGroup,
    MigrationSlice,
)
from sqlbun.migrations import Migrations
from sqlbun.timeparse import parse_time

_NAME_RE = re.compile(r"^[0-9a-z_\-]+$", re.ASCII)
_VERSION_FORMAT = "%Y%m%d%H%M%S"


class MigrationError(Exception):
    """A migration step failed; ``group`` holds the migrations attempted so far."""

    def __init__(self, cause: BaseException, group: MigrationGroup) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.group = group


def _to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    parsed = parse_time(str(value))
    return parsed if isinstance(parsed, datetime) else None


class Migrator:
    """Runs registered migrations and keeps track of which were applied."""

    def __init__(
        self,
        conn: Any,
        migrations: Migrations,
        table: str = "bun_migrations",
        locks_table: str = "bun_migration_locks",
        mark_applied_on_success: bool = False,
    ) -> None:
        self._conn = conn
        self._migrations = migrations
        self.table = table
        self.locks_table = locks_table
        self.mark_applied_on_success = mark_applied_on_success

    @property
    def conn(self) -> Any:
        """The database connection."""
        return self._conn

    def _execute(self, query: str, params: tuple[Any, ...] = ()) -> int | None:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            last_id = getattr(cursor, "lastrowid", None)
        finally:
            cursor.close()
        self._conn.commit()
        return last_id

    def _query(self, query: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return list(cursor.fetchall())
        finally:
            cursor.close()

    def migrations_with_status(self) -> MigrationSlice:
        """Return all migrations in ascending order with their applied status."""
        return self._migrations_with_status()[0]

    def _migrations_with_status(self) -> tuple[MigrationSlice, int]:
        ordered = self._migrations.sorted()
        applied = self.applied_migrations()
        by_name = {m.name: m for m in applied}
        for migration in ordered:
            found = by_name.get(migration.name)
            if found is not None:
                migration.id = found.id
                migration.group_id = found.group_id
                migration.migrated_at = found.migrated_at
        return ordered, applied.last_group_id()

    def init(self) -> None:
        """Create the migrations and locks tables if they do not exist."""
        self._execute(
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            "id INTEGER PRIMARY KEY, "
            "name VARCHAR, "
            "group_id BIGINT, "
            "migrated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
        self._execute(
            f"CREATE TABLE IF NOT EXISTS {self.locks_table} ("
            "id INTEGER PRIMARY KEY, "
            "table_name VARCHAR UNIQUE)"
        )

    def reset(self) -> None:
        """Drop and recreate the migrations and locks tables."""
        self._execute(f"DROP TABLE IF EXISTS {self.table}")
        self._execute(f"DROP TABLE IF EXISTS {self.locks_table}")
        self.init()

    def _validate(self) -> None:
        if not self._migrations.migrations:
            raise ValueError("there are no migrations")

    def migrate(self, nop: bool = False) -> MigrationGroup:
        """Run unapplied migrations as a new group, stopping at the first failure.

        With ``nop`` the migrations are only recorded, not run. A failure
        raises :class:`MigrationError` carrying the group attempted so far.
        """
        self._validate()
        migrations, last_group_id = self._migrations_with_status()
        pending = migrations.unapplied()

        group = MigrationGroup()
        if not pending:
            return group
        group.id = last_group_id + 1

        for i, migration in enumerate(pending):
            migration.group_id = group.id
            try:
                if not self.mark_applied_on_success:
                    self.mark_applied(migration)
                group.migrations = MigrationSlice(pending[: i + 1])
                if not nop and migration.up is not None:
                    migration.up(self._conn)
                if self.mark_applied_on_success:
                    self.mark_applied(migration)
            except Exception as exc:
                raise MigrationError(exc, group) from exc
        return group

    def rollback(self, nop: bool = False) -> MigrationGroup:
        """Undo the last applied group, newest migration first.

        With ``nop`` the migrations are only unrecorded, not run. A failure
        raises :class:`MigrationError` carrying the group.
        """
        self._validate()
        last_group = self.migrations_with_status().last_group()

        for migration in reversed(last_group.migrations):
            try:
                if not self.mark_applied_on_success:
                    self.mark_unapplied(migration)
                if not nop and migration.down is not None:
                    migration.down(self._conn)
                if self.mark_applied_on_success:
                    self.mark_unapplied(migration)
            except Exception as exc:
                raise MigrationError(exc, last_group) from exc
        return last_group

    def create_code_migration(
        self,
        name: str,
        package_name: str = "migrations",
        template: str = CODE_TEMPLATE,
    ) -> MigrationFile:
        """Write a code migration file from ``template`` and describe it."""
        fname = self._gen_migration_name(name) + ".py"
        fpath = os.path.join(self._migrations.directory(), fname)
        content = template % package_name
        with open(fpath, "w", encoding="utf-8") as f:
            f.write(content)
        return MigrationFile(name=fname, path=fpath, content=content)

    def create_sql_migrations(self, name: str) -> list[MigrationFile]:
        """Write an up and a down SQL migration file."""
        base = self._gen_migration_name(name)
        return [self._create_sql(base + ".up.sql"), self._create_sql(base + ".down.sql")]

    def _create_sql(self, fname: str) -> MigrationFile:
        fpath = os.path.join(self._migrations.directory(), fname)
        with open(fpath, "w", encoding="utf-8") as f:
            f.write(SQL_TEMPLATE)
        return MigrationFile(name=fname, path=fpath, content=SQL_TEMPLATE)

    @staticmethod
    def _gen_migration_name(name: str) -> str:
        if not name:
            raise ValueError("migration name can't be empty")
        if not _NAME_RE.match(name):
            raise ValueError(f"invalid migration name: {name!r}")
        version = datetime.now(timezone.utc).strftime(_VERSION_FORMAT)
        return f"{version}_{name}"

    def mark_applied(self, migration: Migration) -> None:
        """Record the migration as applied, setting its id."""
        row_id = self._execute(
            f"INSERT INTO {self.table} (name, group_id) VALUES (?, ?)",
            (migration.name, migration.group_id),
        )
        if row_id is not None:
            migration.id = row_id

    def mark_unapplied(self, migration: Migration) -> None:
        """Remove the record of the migration."""
        self._execute(f"DELETE FROM {self.table} WHERE id = ?", (migration.id,))

    def truncate_table(self) -> None:
        """Remove all records of applied migrations."""
        self._execute(f"DELETE FROM {self.table}")

    def missing_migrations(self) -> MigrationSlice:
        """Return applied migrations that are no longer registered."""
        existing = {m.name for m in self._migrations.migrations}
        return MigrationSlice(m for m in self.applied_migrations() if m.name not in existing)

    def applied_migrations(self) -> MigrationSlice:
        """Return the migrations recorded in the migrations table."""
        rows = self._query(f"SELECT id, name, group_id, migrated_at FROM {self.table}")
        return MigrationSlice(
            Migration(
                id=row_id,
                name=name,
                group_id=group_id or 0,
                migrated_at=_to_datetime(migrated_at),
            )
            for row_id, name, group_id, migrated_at in rows
        )

    def lock(self) -> None:
        """Take the migrations lock; raises RuntimeError if it is already held."""
        try:
            self._execute(
                f"INSERT INTO {self.locks_table} (table_name) VALUES (?)", (self.table,)
            )
        except Exception as exc:
            self._conn.rollback()
            raise RuntimeError(f"migrations table is already locked ({exc})") from exc

    def unlock(self) -> None:
        """Release the migrations lock."""
        self._execute(f"DELETE FROM {self.locks_table} WHERE table_name = ?", (self.table,))