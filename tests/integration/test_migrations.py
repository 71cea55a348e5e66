import sqlite3

import pytest

from src.adapters.sqlite.migrator import MigrationError, SQLiteMigrator


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


@pytest.fixture
def migrations_dir():
    # Real migrations, so the SQL itself is exercised
    return "migrations"


def table_names(db_path):
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        return {r[0] for r in rows}
    finally:
        conn.close()


def test_migrator_creates_analytics_tables(temp_db_path, migrations_dir):
    SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    tables = table_names(temp_db_path)
    assert {"_migrations", "sessions", "stats", "contact_messages"} <= tables


def test_migrator_records_applied_file(temp_db_path, migrations_dir):
    applied = SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    assert applied == ["001_analytics.sql"]
    conn = sqlite3.connect(temp_db_path)
    row = conn.execute(
        "SELECT filename FROM _migrations WHERE filename='001_analytics.sql'"
    ).fetchone()
    conn.close()
    assert row is not None


def test_migrator_is_idempotent(temp_db_path, migrations_dir):
    migrator = SQLiteMigrator(temp_db_path, migrations_dir)

    migrator.run_migrations()
    assert migrator.run_migrations() == []


def test_down_section_is_not_applied(tmp_path, temp_db_path):
    mig_dir = tmp_path / "mig"
    mig_dir.mkdir()
    (mig_dir / "001_x.sql").write_text(
        "-- Up\nCREATE TABLE x (id INTEGER);\n\n-- Down\nDROP TABLE x;\n", encoding="utf-8"
    )

    SQLiteMigrator(temp_db_path, str(mig_dir)).run_migrations()

    assert "x" in table_names(temp_db_path)


def test_failed_migration_raises(tmp_path, temp_db_path):
    mig_dir = tmp_path / "mig"
    mig_dir.mkdir()
    (mig_dir / "001_bad.sql").write_text("CREATE TABLE (;", encoding="utf-8")

    with pytest.raises(RuntimeError, match="001_bad.sql"):
        SQLiteMigrator(temp_db_path, str(mig_dir)).run_migrations()


def test_failed_migration_leaves_no_partial_schema(tmp_path, temp_db_path):
    mig_dir = tmp_path / "mig"
    mig_dir.mkdir()
    (mig_dir / "001_partial.sql").write_text(
        "CREATE TABLE half_done (id INTEGER);\nCREATE TABLE (;", encoding="utf-8"
    )

    with pytest.raises(MigrationError):
        SQLiteMigrator(temp_db_path, str(mig_dir)).run_migrations()

    assert "half_done" not in table_names(temp_db_path)
    conn = sqlite3.connect(temp_db_path)
    assert conn.execute("SELECT COUNT(*) FROM _migrations").fetchone()[0] == 0
    conn.close()


def test_pending_lists_unapplied_files(tmp_path, temp_db_path):
    mig_dir = tmp_path / "mig"
    mig_dir.mkdir()
    (mig_dir / "002_b.sql").write_text("CREATE TABLE b (id INTEGER);", encoding="utf-8")
    (mig_dir / "001_a.sql").write_text("CREATE TABLE a (id INTEGER);", encoding="utf-8")
    migrator = SQLiteMigrator(temp_db_path, mig_dir)

    assert [p.name for p in migrator.pending()] == ["001_a.sql", "002_b.sql"]
    migrator.run_migrations()
    assert migrator.pending() == []
