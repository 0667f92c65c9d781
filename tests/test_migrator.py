import os
import re
import sqlite3
from datetime import datetime

import pytest

from sqlbun.migration import SQL_TEMPLATE, Migration
from sqlbun.migrations import Migrations
from sqlbun.migrator import MigrationError, Migrator


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


def _recorder(history, label, fail=False):
    def run(conn):
        history.append(label)
        if fail:
            raise RuntimeError("failed")

    return run


def _two_migrations(history):
    migrations = Migrations()
    migrations.add(Migration(name="20060102150405", up=_recorder(history, "up1"),
                             down=_recorder(history, "down1")))
    migrations.add(Migration(name="20060102160405", up=_recorder(history, "up2"),
                             down=_recorder(history, "down2")))
    return migrations


def test_migrate_up_and_down(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()

    group = m.migrate()
    assert group.id == 1
    assert len(group.migrations) == 2
    assert history == ["up1", "up2"]

    history.clear()
    group = m.rollback()
    assert group.id == 1
    assert len(group.migrations) == 2
    assert history == ["down2", "down1"]


def test_migrate_up_error(conn):
    history = []
    migrations = _two_migrations(history)
    migrations.migrations[1].up = _recorder(history, "up2", fail=True)
    migrations.add(Migration(name="20060102170405", up=_recorder(history, "up3", fail=True),
                             down=_recorder(history, "down3")))
    m = Migrator(conn, migrations)
    m.reset()

    with pytest.raises(MigrationError) as info:
        m.migrate()
    assert str(info.value) == "failed"
    assert info.value.group.id == 1
    assert len(info.value.group.migrations) == 2
    assert history == ["up1", "up2"]

    history.clear()
    group = m.rollback()
    assert group.id == 1
    assert len(group.migrations) == 2
    assert history == ["down2", "down1"]


def test_mark_applied_on_success_skips_failed(conn):
    history = []
    migrations = _two_migrations(history)
    migrations.migrations[1].up = _recorder(history, "up2", fail=True)
    m = Migrator(conn, migrations, mark_applied_on_success=True)
    m.reset()

    with pytest.raises(MigrationError):
        m.migrate()
    assert [mig.name for mig in m.applied_migrations()] == ["20060102150405"]

    history.clear()
    group = m.rollback()
    assert len(group.migrations) == 1
    assert history == ["down1"]


def test_migrate_without_migrations(conn):
    m = Migrator(conn, Migrations())
    m.reset()
    with pytest.raises(ValueError, match="there are no migrations"):
        m.migrate()


def test_nop_migrate_records_only(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()
    group = m.migrate(nop=True)
    assert history == []
    assert len(group.migrations) == 2
    assert len(m.applied_migrations()) == 2


def test_second_migrate_has_nothing_to_do(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()
    m.migrate()
    group = m.migrate()
    assert group.is_zero()


def test_new_group_id_increments(conn):
    history = []
    migrations = _two_migrations(history)
    m = Migrator(conn, migrations)
    m.reset()
    m.migrate()
    migrations.add(Migration(name="20070102150405", up=_recorder(history, "up3")))
    group = m.migrate()
    assert group.id == 2
    assert [mig.name for mig in group.migrations] == ["20070102150405"]


def test_migrations_with_status(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()
    m.migrate()
    status = m.migrations_with_status()
    assert [mig.name for mig in status] == ["20060102150405", "20060102160405"]
    assert all(mig.is_applied() and mig.group_id == 1 for mig in status)
    assert all(isinstance(mig.migrated_at, datetime) for mig in status)


def test_missing_migrations(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()
    m.migrate()

    remaining = Migrations()
    remaining.add(Migration(name="20060102150405"))
    other = Migrator(conn, remaining)
    assert [mig.name for mig in other.missing_migrations()] == ["20060102160405"]


def test_truncate_table(conn):
    history = []
    m = Migrator(conn, _two_migrations(history))
    m.reset()
    m.migrate()
    m.truncate_table()
    assert len(m.applied_migrations()) == 0


def test_lock_and_unlock(conn):
    m = Migrator(conn, Migrations())
    m.reset()
    m.lock()
    with pytest.raises(RuntimeError, match="already locked"):
        m.lock()
    m.unlock()
    m.lock()
    rows = conn.execute("SELECT table_name FROM bun_migration_locks").fetchall()
    assert rows == [("bun_migrations",)]


def test_custom_table_names(conn):
    history = []
    m = Migrator(conn, _two_migrations(history), table="my_migrations",
                 locks_table="my_locks")
    m.reset()
    m.migrate()
    count = conn.execute("SELECT count(*) FROM my_migrations").fetchone()[0]
    assert count == 2


def test_create_sql_migrations(conn, tmp_path):
    m = Migrator(conn, Migrations(directory=tmp_path))
    files = m.create_sql_migrations("add_users")
    assert len(files) == 2
    assert re.fullmatch(r"\d{14}_add_users\.up\.sql", files[0].name)
    assert re.fullmatch(r"\d{14}_add_users\.down\.sql", files[1].name)
    for mf in files:
        assert mf.path == os.path.join(str(tmp_path), mf.name)
        with open(mf.path, encoding="utf-8") as f:
            assert f.read() == SQL_TEMPLATE


def test_create_code_migration(conn, tmp_path):
    m = Migrator(conn, Migrations(directory=tmp_path))
    mf = m.create_code_migration("seed", package_name="mypkg")
    assert re.fullmatch(r"\d{14}_seed\.py", mf.name)
    assert "from mypkg import migrations" in mf.content
    with open(mf.path, encoding="utf-8") as f:
        assert f.read() == mf.content


@pytest.mark.parametrize("name, message", [("", "can't be empty"), ("Bad Name", "invalid")])
def test_invalid_migration_names(conn, tmp_path, name, message):
    m = Migrator(conn, Migrations(directory=tmp_path))
    with pytest.raises(ValueError, match=message):
        m.create_sql_migrations(name)


def test_discovered_sql_migrations_run(conn, tmp_path):
    (tmp_path / "20200101000000_create_t.up.sql").write_text(
        "CREATE TABLE t (x INTEGER);\n--bun:split\nINSERT INTO t VALUES (1);\n"
    )
    (tmp_path / "20200101000000_create_t.down.sql").write_text("DROP TABLE t;\n")
    migrations = Migrations()
    migrations.discover(tmp_path)
    m = Migrator(conn, migrations)
    m.reset()

    m.migrate()
    assert conn.execute("SELECT x FROM t").fetchall() == [(1,)]

    m.rollback()
    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 't'"
    ).fetchall()
    assert tables == []