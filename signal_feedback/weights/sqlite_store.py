"""SQLite weight store implementation."""

import sqlite3
import threading
import time
import uuid
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from signal_feedback.signals.models import SignalKey
from signal_feedback.weights.errors import StoreConnectionError, WeightStoreError
from signal_feedback.weights.migrations import CURRENT_VERSION, MigrationManager
from signal_feedback.weights.models import WeightRecord, WeightState, WeightUpdate


logger = structlog.get_logger()

# Increment is done in SQL so concurrent writers never lose an update.
_UPSERT_ADD_SQL = """
INSERT INTO user_signal_weights (
    user_id, feature_key, feature_type, feature_value,
    weight, state, updated_at, last_decision_at, decision_count
) VALUES (?, ?, ?, ?, ?, 'active', ?, ?, 1)
ON CONFLICT (user_id, feature_key) DO UPDATE SET
    weight = user_signal_weights.weight + excluded.weight,
    updated_at = excluded.updated_at,
    last_decision_at = excluded.last_decision_at,
    decision_count = user_signal_weights.decision_count + 1
"""

_SET_STATE_SQL = """
INSERT INTO user_signal_weights (
    user_id, feature_key, feature_type, feature_value,
    weight, state, updated_at
) VALUES (?, ?, ?, ?, 0, ?, ?)
ON CONFLICT (user_id, feature_key) DO UPDATE SET
    state = excluded.state,
    updated_at = excluded.updated_at
"""

_RESET_SQL = """
INSERT INTO user_signal_weights (
    user_id, feature_key, feature_type, feature_value,
    weight, state, updated_at
) VALUES (?, ?, ?, ?, 0, 'active', ?)
ON CONFLICT (user_id, feature_key) DO UPDATE SET
    weight = 0,
    state = 'active',
    updated_at = excluded.updated_at
"""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqliteWeightStore:
    """SQLite-backed weight store.

    Uses WAL mode and applies schema migrations on connect. One connection
    is shared across threads behind a lock; increments are single SQL
    statements, so no update is lost to a read-modify-write race.
    """

    def __init__(
        self,
        db_path: Path | str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
            clock: Source of record timestamps.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._log = logger.bind(component="weights", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and apply migrations.

        Creates the database file and parent directories if missing.

        Raises:
            StoreConnectionError: If the file cannot be created or opened.
            MigrationError: If a schema migration fails.
        """
        if self._conn is not None:
            return

        self._log.info("connecting_to_database")
        conn: sqlite3.Connection | None = None
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            migration_mgr = MigrationManager(conn)
            old_version = migration_mgr.get_current_version()
            applied = migration_mgr.apply_migrations()
        except (OSError, sqlite3.Error) as e:
            if conn is not None:
                conn.close()
            self._log.warning("database_connect_failed", error=str(e))
            msg = f"cannot open {self._db_path}: {e}"
            raise StoreConnectionError(msg) from e
        except WeightStoreError:
            if conn is not None:
                conn.close()
            raise

        self._conn = conn
        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "SqliteWeightStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Connection, None, None]:
        """Run a block in a transaction with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            The database connection.

        Raises:
            WeightStoreError: If the database rejects the operation.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    error=str(e),
                )
                raise WeightStoreError(operation, str(e)) from e
            except Exception:
                conn.rollback()
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )

    def get_schema_version(self) -> int:
        """Get the applied schema version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()

    def get_weights(self, user_id: str) -> list[WeightRecord]:
        """Load every weight record of a user, ordered by key.

        Args:
            user_id: User identifier.

        Returns:
            Weight records.
        """
        with self._lock:
            rows = (
                self._ensure_connected()
                .execute(
                    """
                    SELECT * FROM user_signal_weights
                    WHERE user_id = ?
                    ORDER BY feature_key
                    """,
                    (user_id,),
                )
                .fetchall()
            )
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> WeightRecord:
        return WeightRecord(
            user_id=row["user_id"],
            feature_key=row["feature_key"],
            feature_type=row["feature_type"],
            feature_value=row["feature_value"],
            weight=row["weight"],
            state=WeightState(row["state"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            last_decision_at=(
                datetime.fromisoformat(row["last_decision_at"])
                if row["last_decision_at"]
                else None
            ),
            decision_count=row["decision_count"],
        )

    def _upsert_params(
        self, user_id: str, signal: SignalKey, delta: float
    ) -> tuple[str, str, str, str, float, str, str]:
        now = self._clock().isoformat()
        return (
            user_id,
            signal.key,
            signal.feature_type,
            signal.value,
            delta,
            now,
            now,
        )

    def upsert_add(self, user_id: str, signal: SignalKey, delta: float) -> None:
        """Atomically add ``delta`` to a signal weight.

        Args:
            user_id: User identifier.
            signal: Target signal.
            delta: Amount to add.
        """
        with self._transaction("upsert_add") as conn:
            conn.execute(_UPSERT_ADD_SQL, self._upsert_params(user_id, signal, delta))

    def upsert_add_many(self, user_id: str, updates: Sequence[WeightUpdate]) -> None:
        """Apply several increments in a single transaction.

        Args:
            user_id: User identifier.
            updates: Deltas to apply; all or none are persisted.
        """
        with self._transaction("upsert_add_many") as conn:
            conn.executemany(
                _UPSERT_ADD_SQL,
                [self._upsert_params(user_id, u.signal, u.delta) for u in updates],
            )

    def set_muted(self, user_id: str, signal: SignalKey, muted: bool) -> None:
        """Set the mute state of a signal, creating the row if needed.

        Args:
            user_id: User identifier.
            signal: Target signal.
            muted: True to mute, False to unmute.
        """
        state = WeightState.MUTED if muted else WeightState.ACTIVE
        with self._transaction("set_muted") as conn:
            conn.execute(
                _SET_STATE_SQL,
                (
                    user_id,
                    signal.key,
                    signal.feature_type,
                    signal.value,
                    state.value,
                    self._clock().isoformat(),
                ),
            )

    def reset_weight(self, user_id: str, signal: SignalKey) -> None:
        """Reset a signal to weight 0 and active state.

        Args:
            user_id: User identifier.
            signal: Target signal.
        """
        with self._transaction("reset_weight") as conn:
            conn.execute(
                _RESET_SQL,
                (
                    user_id,
                    signal.key,
                    signal.feature_type,
                    signal.value,
                    self._clock().isoformat(),
                ),
            )

    def get_stats(self) -> dict[str, int]:
        """Get row counts for the weights table.

        Returns:
            Dictionary with total, muted and user counts.
        """
        with self._lock:
            row = (
                self._ensure_connected()
                .execute(
                    """
                    SELECT
                        COUNT(*) AS total,
                        COALESCE(SUM(state = 'muted'), 0) AS muted,
                        COUNT(DISTINCT user_id) AS users
                    FROM user_signal_weights
                    """
                )
                .fetchone()
            )
        return {"weights": row["total"], "muted": row["muted"], "users": row["users"]}
