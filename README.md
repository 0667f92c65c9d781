# sqlbun

`sqlbun` runs versioned migrations against a DB-API 2.0 database connection and records which of them have been applied. It also holds a few small parsing helpers: field tags, SQL date and time text, and identifier case conversion.

## Installation

```
pip install sqlbun
```

To run the test suite:

```
pip install "sqlbun[test]"
pytest
```

## Migrations

### Files

SQL migration files are named `<14-digit version>_<comment>.up.sql` and `<14-digit version>_<comment>.down.sql`. The comment may contain lower-case letters, digits, `_` and `-`. `sqlbun.migrations.extract_migration_name` splits such a name into its version and its comment. It raises `ValueError` for any other name.

Statements in a file are separated by a line that reads exactly `--bun:split`. Any other line that starts with `--bun:` makes the run raise `ValueError`. `sqlbun.migration.split_queries` does this splitting on its own.

If a file name ends in `.tx.up.sql` or `.tx.down.sql`, the connection is committed after its statements have run. This happens even when one of the statements fails.

### Running

```python
import sqlite3

from sqlbun.migrations import Migrations
from sqlbun.migrator import Migrator

migrations = Migrations(directory="migrations")
migrations.discover("migrations")

conn = sqlite3.connect("app.db")
migrator = Migrator(conn, migrations)
migrator.init()

group = migrator.migrate()
print(group)            # e.g. "group #1 (20240101000000_init)"

group = migrator.rollback()
```

`Migrator` takes a connection that uses the `qmark` parameter style, such as one from `sqlite3`. Migration functions are called with that connection.

- `migrate(nop=False)` runs the unapplied migrations in ascending name order as one new group. It stops at the first failure. The failure is raised as `sqlbun.migrator.MigrationError`, whose `group` attribute holds the migrations attempted so far and whose `cause` attribute holds the original exception.
- `rollback(nop=False)` undoes the most recently applied group, newest migration first.
- With `nop=True`, either method records the change of status but does not call the migration functions.
- By default a migration is recorded before its function runs. With `Migrator(..., mark_applied_on_success=True)` it is recorded only after the function has returned.
- If no migrations are registered, `migrate()` and `rollback()` raise `ValueError`.

The bookkeeping tables are called `bun_migrations` and `bun_migration_locks` by default. Pass `table=` and `locks_table=` to use other names.

- `init()` creates the two tables if they do not exist.
- `reset()` drops both tables and creates them again.
- `truncate_table()` deletes every applied-migration record.
- `applied_migrations()` returns the recorded migrations.
- `migrations_with_status()` returns every registered migration in ascending order, with its id, group and time of application filled in.
- `missing_migrations()` returns the migrations that are recorded but no longer registered.
- `mark_applied(migration)` and `mark_unapplied(migration)` add or remove a single record.
- `lock()` takes the lock row. It raises `RuntimeError` if the lock is already held. `unlock()` releases it.

### Registering migrations in code

```python
from sqlbun.migration import Migration

def up(conn):
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY)")

def down(conn):
    conn.execute("DROP TABLE users")

migrations.add(Migration(name="20240101000000", comment="users", up=up, down=down))
```

`Migrations.register(up, down)` takes the name and comment from the file name of the module that calls it. `Migrations.discover_caller()` discovers SQL files in that module's directory. `Migrations.sorted()` returns copies of the registered migrations in name order.

`MigrationSlice` is a list of migrations. It provides:

- `applied()`, in descending name order
- `unapplied()`, in ascending name order
- `last_group_id()`
- `last_group()`

### Creating files

Each of these writes into `Migrations.directory()` and returns `MigrationFile` records. The directory is the one given to `Migrations`; without one, it is the directory of the module that created the `Migrations` object.

- `Migrator.create_sql_migrations("add_users")` writes an up and a down SQL file from a template.
- `Migrator.create_code_migration("add_users", package_name="migrations")` writes a Python module. That module registers an `up` and a `down` function with the `migrations` object of the given package.

The new names start with the current UTC time as the version. A name that is empty, or that has characters other than lower-case letters, digits, `_` and `-`, raises `ValueError`.

## Helpers

- `sqlbun.tagparser.parse(s)` parses option strings such as `"name,pk,type:varchar(50)"` into a `Tag`. A `Tag` has `name`, `options`, `has_option()`, `option()` and `is_zero()`.
- `sqlbun.timeparse.parse_time(s)` parses SQL date, time, timestamp and timestamptz text.
  - Dates and timestamps give an aware `datetime`, in UTC when no offset is given.
  - Times give an aware `time`.
  - Text it cannot parse raises `ValueError`.
- `sqlbun.naming` provides:
  - `underscore` (`CamelCase` to `snake_case`)
  - `camel_cased` (the reverse)
  - `to_exported`
  - `make_map_key`, which builds a hashable tuple key.
- `sqlbun.parser.Parser` is a character-level cursor over a string. It can read separators, identifiers and numbers.
- `sqlbun.hexenc.HexEncoder` builds a `'\x…'` hex literal from written bytes. If nothing was written, it produces `NULL`.
- `sqlbun.flag.Flag` is an integer bit set with `has`, `set` and `remove`.

## What it does not do

- `sqlbun` has no query builder and no object mapping. Migrations are plain SQL files or Python functions that use the connection directly.
- The bookkeeping tables are created with generic DDL (`INTEGER PRIMARY KEY`, `CURRENT_TIMESTAMP`). That DDL suits SQLite and may need adapting for other databases.
- There is no command-line tool. Everything is done through the Python API.