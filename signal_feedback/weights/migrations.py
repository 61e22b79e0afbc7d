"""SQLite schema migrations for the weight store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from signal_feedback.weights.errors import MigrationError


logger = structlog.get_logger()

# Current schema version
CURRENT_VERSION = 2


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
        down_sql: SQL to rollback the migration.
    """

    version: int
    description: str
    up_sql: str
    down_sql: str


# All migrations in order
MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Per-user signal weights",
        up_sql="""
CREATE TABLE IF NOT EXISTS user_signal_weights (
    user_id TEXT NOT NULL,
    feature_key TEXT NOT NULL,
    feature_type TEXT NOT NULL,
    feature_value TEXT NOT NULL,
    weight REAL NOT NULL DEFAULT 0,
    state TEXT NOT NULL DEFAULT 'active' CHECK (state IN ('active', 'muted')),
    updated_at TEXT NOT NULL,
    PRIMARY KEY (user_id, feature_key)
);
CREATE INDEX IF NOT EXISTS idx_usw_user_type
    ON user_signal_weights(user_id, feature_type);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_usw_user_type;
DROP TABLE IF EXISTS user_signal_weights;
""",
    ),
    Migration(
        version=2,
        description="Decision tracking columns for weight decay",
        up_sql="""
ALTER TABLE user_signal_weights ADD COLUMN last_decision_at TEXT;
ALTER TABLE user_signal_weights ADD COLUMN decision_count INTEGER NOT NULL DEFAULT 0;
CREATE INDEX IF NOT EXISTS idx_usw_user_last_decision
    ON user_signal_weights(user_id, last_decision_at);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_usw_user_last_decision;
ALTER TABLE user_signal_weights DROP COLUMN decision_count;
ALTER TABLE user_signal_weights DROP COLUMN last_decision_at;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied.

    Args:
        current_version: The current schema version.

    Returns:
        List of migrations to apply in order.
    """
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Manages SQLite schema migrations."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="weights", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number, or 0 if no migrations applied.
        """
        self.ensure_version_table()
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def _record(self, migration: Migration) -> None:
        self._conn.execute(
            """
            INSERT INTO schema_version (version, applied_at, description)
            VALUES (?, ?, ?)
            """,
            (migration.version, datetime.now(UTC).isoformat(), migration.description),
        )

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration fails to apply.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.info("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []
        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                self._conn.executescript(migration.up_sql)
                self._record(migration)
                self._conn.commit()
            except sqlite3.Error as e:
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

            applied.append(migration.version)
            self._log.info("migration_applied", version=migration.version)

        return applied

    def rollback_to(self, target_version: int) -> list[int]:
        """Rollback to a specific version.

        Args:
            target_version: The version to rollback to.

        Returns:
            List of version numbers that were rolled back.

        Raises:
            ValueError: If target version is invalid.
            MigrationError: If a rollback fails.
        """
        if target_version < 0:
            msg = f"Invalid target version: {target_version}"
            raise ValueError(msg)

        by_version = {m.version: m for m in MIGRATIONS}
        rolled_back: list[int] = []

        while (current := self.get_current_version()) > target_version:
            migration = by_version.get(current)
            if migration is None:
                break

            self._log.info("rolling_back_migration", version=migration.version)
            try:
                self._conn.executescript(migration.down_sql)
                self._conn.execute(
                    "DELETE FROM schema_version WHERE version = ?",
                    (migration.version,),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._log.error(
                    "rollback_failed", version=migration.version, error=str(e)
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

            rolled_back.append(migration.version)

        return rolled_back
