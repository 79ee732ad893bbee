"""
SQLite database module for candidates and GoHighLevel tokens.

Provides persistent storage for the two pieces of state the GoHighLevel
integration touches: the candidate records (and their ghl_contact_id link)
and the single OAuth token row used for v2 API calls.
"""

import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

# Token rows are keyed by the GoHighLevel user type they were issued for
LOCATION_USER_TYPE = "Location"

SCHEMA = """
CREATE TABLE IF NOT EXISTS candidates (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT,
    ghl_contact_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_candidates_ghl_contact ON candidates(ghl_contact_id);

CREATE TABLE IF NOT EXISTS ghl_tokens (
    token_id INTEGER PRIMARY KEY,
    access_token TEXT NOT NULL,
    refresh_token TEXT NOT NULL,
    user_type TEXT NOT NULL,
    company_id TEXT,
    updated_at TEXT,
    expires_at TEXT,
    UNIQUE(user_type)
);
"""


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp stored by this module.

    Naive values are treated as UTC. Returns None for empty or unparseable
    input.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SyncDatabase:
    """
    SQLite database manager for candidates and GoHighLevel tokens.

    Provides methods for:
    - Adding and listing candidates
    - Linking a candidate to a GoHighLevel contact (never overwriting)
    - Reading and rotating the OAuth token row

    Usage:
        db = SyncDatabase('/path/to/hireos.db')
        db.initialize()

        # Or use in-memory for testing:
        db = SyncDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None
        self._shared_lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        In-memory databases share one connection (usable from any thread) so
        the schema survives between operations; file databases open a new
        connection each time.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(
                    ":memory:", check_same_thread=False
                )
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success and rolls back on error.

        Usage:
            with db.connection() as conn:
                conn.execute("SELECT * FROM candidates")
        """
        if self.db_path != ":memory:":
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()
            return

        # One connection for every thread; transactions must not interleave
        with self._shared_lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def initialize(self) -> None:
        """Create the candidates and ghl_tokens tables if they don't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # =========================================================================
    # Candidate Operations
    # =========================================================================

    def add_candidate(
        self,
        name: str,
        email: Optional[str] = None,
        ghl_contact_id: Optional[str] = None,
    ) -> int:
        """
        Insert a candidate.

        Args:
            name: Candidate's full name
            email: Optional email address
            ghl_contact_id: Optional pre-existing GoHighLevel contact id

        Returns:
            The new candidate's id
        """
        now = _utcnow_iso()
        with self.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO candidates (name, email, ghl_contact_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, email, ghl_contact_id, now, now),
            )
            return int(cursor.lastrowid)

    def get_candidates(self) -> list[dict[str, Any]]:
        """
        Get all candidates, ordered by id.

        Returns:
            List of candidate dictionaries
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT id, name, email, ghl_contact_id FROM candidates ORDER BY id"
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_candidate(self, candidate_id: int) -> Optional[dict[str, Any]]:
        """Get a single candidate by id, or None if it doesn't exist."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT id, name, email, ghl_contact_id FROM candidates WHERE id = ?",
                (candidate_id,),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def set_candidate_ghl_contact_id(self, candidate_id: int, contact_id: str) -> bool:
        """
        Link a candidate to a GoHighLevel contact.

        The update only applies while the candidate has no link yet, so an
        existing ghl_contact_id is never overwritten.

        Args:
            candidate_id: Candidate to update
            contact_id: GoHighLevel contact id

        Returns:
            True if the candidate was linked, False if it doesn't exist or was
            already linked
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE candidates
                SET ghl_contact_id = ?, updated_at = ?
                WHERE id = ? AND ghl_contact_id IS NULL
                """,
                (contact_id, _utcnow_iso(), candidate_id),
            )
            return cursor.rowcount > 0

    def get_candidate_counts(self) -> dict[str, int]:
        """
        Count candidates by link state.

        Returns:
            Dictionary with 'total', 'linked' and 'unlinked' counts
        """
        with self.connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COUNT(ghl_contact_id) AS linked
                FROM candidates
                """
            ).fetchone()
            total = row["total"]
            linked = row["linked"]
            return {"total": total, "linked": linked, "unlinked": total - linked}

    # =========================================================================
    # Token Operations
    # =========================================================================

    def get_token_row(
        self, user_type: str = LOCATION_USER_TYPE
    ) -> Optional[dict[str, Any]]:
        """
        Get the stored OAuth token row.

        Args:
            user_type: Token owner type (default "Location")

        Returns:
            Dictionary with the token columns, or None if no row exists
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                SELECT access_token, refresh_token, user_type, company_id,
                       updated_at, expires_at
                FROM ghl_tokens
                WHERE user_type = ?
                LIMIT 1
                """,
                (user_type,),
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def save_token_row(
        self,
        access_token: str,
        refresh_token: str,
        expires_at: Optional[datetime],
        user_type: str = LOCATION_USER_TYPE,
        company_id: Optional[str] = None,
    ) -> None:
        """
        Insert or replace the token row for a user type.

        Used when seeding tokens after an OAuth authorization.
        """
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO ghl_tokens
                    (access_token, refresh_token, user_type, company_id,
                     updated_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_type) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    company_id = COALESCE(excluded.company_id, ghl_tokens.company_id),
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (
                    access_token,
                    refresh_token,
                    user_type,
                    company_id,
                    _utcnow_iso(),
                    _to_iso(expires_at),
                ),
            )

    def update_tokens(
        self,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        user_type: str = LOCATION_USER_TYPE,
    ) -> bool:
        """
        Overwrite the token pair after a refresh.

        Returns:
            True if a row was updated, False if no row exists for user_type
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE ghl_tokens
                SET access_token = ?, refresh_token = ?, updated_at = ?,
                    expires_at = ?
                WHERE user_type = ?
                """,
                (
                    access_token,
                    refresh_token,
                    _utcnow_iso(),
                    _to_iso(expires_at),
                    user_type,
                ),
            )
            return cursor.rowcount > 0
