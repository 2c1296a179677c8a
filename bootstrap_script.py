"""Apply the SQL migrations under ``migrations/`` to the Supabase Postgres database."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Sequence
from urllib.parse import quote_plus

from dotenv import load_dotenv
import psycopg
from psycopg import Connection


LOGGER = logging.getLogger(__name__)
MIGRATIONS_DIR = Path(__file__).with_name("migrations")
CONNECTION_PARTS = ("DB_USER", "DB_PASSWORD", "DB_HOST", "DB_PORT", "DB_NAME")


def load_configuration() -> str:
    """Return the Postgres DSN for the Supabase project.

    ``SUPABASE_DB_URL`` wins when set; otherwise the DSN is assembled from
    ``DB_USER``, ``DB_PASSWORD``, ``DB_HOST``, ``DB_PORT`` and ``DB_NAME``.

    Raises:
        RuntimeError: If neither form is fully configured.
    """

    load_dotenv()
    db_url = os.getenv("SUPABASE_DB_URL")
    if db_url:
        return build_conninfo(db_url)

    values = {name: os.getenv(name) for name in CONNECTION_PARTS}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise RuntimeError(
            f"Set SUPABASE_DB_URL or all of {', '.join(CONNECTION_PARTS)}; missing {', '.join(missing)}."
        )

    return (
        f"postgresql://{quote_plus(values['DB_USER'])}:{quote_plus(values['DB_PASSWORD'])}"
        f"@{values['DB_HOST']}:{values['DB_PORT']}/{values['DB_NAME']}"
    )


def build_conninfo(db_url: str) -> str:
    """Normalize the legacy ``postgres://`` scheme accepted by Supabase dashboards."""

    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def ensure_schema_migrations_table(connection: Connection[Any]) -> None:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            migration_id TEXT PRIMARY KEY,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
        """
    )


def fetch_applied_migrations(connection: Connection[Any]) -> set[str]:
    rows = connection.execute("SELECT migration_id FROM schema_migrations;")
    return {row[0] for row in rows}


def discover_migrations(directory: Path) -> Sequence[Path]:
    """Return migration files sorted by filename."""

    return sorted(directory.glob("*.sql"), key=lambda path: path.name)


def run_migration(connection: Connection[Any], migration_path: Path) -> None:
    """Execute one migration and record it, atomically."""

    sql = migration_path.read_text(encoding="utf-8").strip()
    if not sql:
        LOGGER.info("Skipping empty migration %s", migration_path.name)
        return

    with connection.transaction():
        connection.execute(sql) # type: ignore
        connection.execute(
            "INSERT INTO schema_migrations (migration_id) VALUES (%s) ON CONFLICT (migration_id) DO NOTHING;",
            (migration_path.name,),
        )


def apply_pending_migrations(connection: Connection[Any], migrations: Iterable[Path]) -> list[str]:
    """Apply the migrations that have not run yet.

    Returns:
        Filenames of the migrations applied by this call.
    """

    ensure_schema_migrations_table(connection)
    applied = fetch_applied_migrations(connection)
    pending = [migration for migration in migrations if migration.name not in applied]
    for migration in pending:
        LOGGER.info("Applying migration %s", migration.name)
        try:
            run_migration(connection, migration)
        except psycopg.Error as exc:
            LOGGER.error("Failed to apply migration %s", migration.name)
            raise RuntimeError(f"Migration {migration.name} failed") from exc
    return [migration.name for migration in pending]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    conninfo = load_configuration()
    migrations = discover_migrations(MIGRATIONS_DIR)
    if not migrations:
        LOGGER.info("No migrations found under %s", MIGRATIONS_DIR)
        return

    LOGGER.info("Connecting to Supabase database.")
    with psycopg.connect(conninfo) as connection:
        applied = apply_pending_migrations(connection, migrations)
        if applied:
            LOGGER.info("Applied migrations: %s", ", ".join(applied))
        else:
            LOGGER.info("Ticketing schema already up to date.")


if __name__ == "__main__":
    main()
