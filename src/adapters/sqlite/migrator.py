"""
Forward-only SQL migrations for the analytics database.

Each `migrations/NNN_name.sql` file holds an `-- Up` section and an optional
`-- Down` section; only the Up part is run. A file is applied at most once,
together with its `_migrations` row in a single transaction, so a failing
file leaves no trace and is retried on the next run.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


class MigrationError(RuntimeError):
    pass


def up_section(sql: str) -> str:
    return sql.split(DOWN_MARKER, 1)[0]


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _applied(self, conn: sqlite3.Connection) -> set[str]:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            " filename TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
        return {row[0] for row in conn.execute("SELECT filename FROM _migrations")}

    def pending(self) -> list[Path]:
        """Migration files not yet applied, in filename order."""
        conn = sqlite3.connect(self.db_path)
        try:
            applied = self._applied(conn)
        finally:
            conn.close()
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in applied]

    def run_migrations(self) -> list[str]:
        """Apply every pending file. Returns the filenames applied."""
        done: list[str] = []
        conn = sqlite3.connect(self.db_path)
        try:
            for path in self.pending():
                logger.info("Applying migration %s", path.name)
                self._apply(conn, path)
                done.append(path.name)
        finally:
            conn.close()

        logger.info("Database %s up to date (%d applied)", self.db_path, len(done))
        return done

    def _apply(self, conn: sqlite3.Connection, path: Path) -> None:
        script = up_section(path.read_text(encoding="utf-8"))
        name = path.name.replace("'", "''")
        try:
            conn.executescript(
                f"BEGIN;\n{script}\n;INSERT INTO _migrations (filename) VALUES ('{name}');\nCOMMIT;"
            )
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise MigrationError(f"Migration {path.name} failed: {e}") from e
