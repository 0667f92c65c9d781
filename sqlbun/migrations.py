"""A registry of migrations, filled by registration or by directory discovery."""

from __future__ import annotations

import inspect
import os
import re
from dataclasses import replace

from sqlbun.migration import (
    Migration,
    MigrationFunc,
    MigrationSlice,
    new_sql_migration_func,
)

_FNAME_RE = re.compile(r"^(\d{14})_([0-9a-z_\-]+)\.", re.ASCII)
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _migration_file() -> str:
    """Return the file of the nearest caller outside this package."""
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = os.path.abspath(frame.f_code.co_filename)
            if os.path.dirname(filename) != _PACKAGE_DIR:
                return filename
            frame = frame.f_back
    finally:
        del frame
    return ""


def extract_migration_name(path: str | os.PathLike[str]) -> tuple[str, str]:
    """Split a migration file name into its version and comment."""
    fname = os.path.basename(os.fspath(path))
    match = _FNAME_RE.match(fname)
    if match is None:
        raise ValueError(f"unsupported migration name format: {fname!r}")
    return match.group(1), match.group(2)


class Migrations:
    """A set of known migrations."""

    def __init__(self, directory: str | os.PathLike[str] | None = None) -> None:
        self._ms = MigrationSlice()
        self._explicit_directory = os.fspath(directory) if directory else ""
        self._implicit_directory = os.path.dirname(_migration_file())

    @property
    def migrations(self) -> MigrationSlice:
        """The registered migrations in registration order."""
        return self._ms

    def sorted(self) -> MigrationSlice:
        """Return copies of the migrations in ascending name order."""
        return MigrationSlice(replace(m) for m in sorted(self._ms, key=lambda m: m.name))

    def register(self, up: MigrationFunc | None, down: MigrationFunc | None) -> None:
        """Add a migration named after the calling file."""
        name, comment = extract_migration_name(_migration_file())
        self.add(Migration(name=name, comment=comment, up=up, down=down))

    def add(self, migration: Migration) -> None:
        """Add a migration; its name is required."""
        if not migration.name:
            raise ValueError("migration name is required")
        self._ms.append(migration)

    def discover_caller(self) -> None:
        """Discover SQL migrations next to the calling file."""
        self.discover(os.path.dirname(_migration_file()))

    def discover(self, directory: str | os.PathLike[str]) -> None:
        """Find ``*.up.sql`` and ``*.down.sql`` files under ``directory``."""
        root = os.fspath(directory)
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for fname in sorted(filenames):
                is_up = fname.endswith(".up.sql")
                if not is_up and not fname.endswith(".down.sql"):
                    continue
                path = os.path.join(dirpath, fname)
                name, comment = extract_migration_name(path)
                migration = self._get_or_create(name)
                migration.comment = comment
                func = new_sql_migration_func(path)
                if is_up:
                    migration.up = func
                else:
                    migration.down = func

    def _get_or_create(self, name: str) -> Migration:
        for migration in self._ms:
            if migration.name == name:
                return migration
        migration = Migration(name=name)
        self._ms.append(migration)
        return migration

    def directory(self) -> str:
        """Return the directory where new migration files are created."""
        if self._explicit_directory:
            return self._explicit_directory
        if self._implicit_directory:
            return self._implicit_directory
        return os.path.dirname(_migration_file())