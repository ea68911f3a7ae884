"""
SQLite State Store for QuizIt.

Provides portable persistence for:
- Collections of learning items with their SM-2 state
- Attempt log for per-item analytics
- Session history for collection analytics

Database location: ~/.quizit/quizit.db (override with QUIZIT_DB_PATH)
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from quizit.core.errors import StorageError
from quizit.core.models import DEFAULT_EASE, AttemptRecord, LearningItem, SessionRecord, StudyMode

ITEM_REQUIRED = ("id", "front", "back", "ease_factor", "interval_days", "repetitions", "next_review_at")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_db(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Collection:
    """A named set of learning items."""

    id: int
    name: str
    description: str
    created_at: datetime


# =============================================================================
# State Store
# =============================================================================


class StateStore:
    """
    SQLite-backed persistence for QuizIt.

    Handles:
    - Collections and their items (content plus SM-2 state)
    - Attempt log with timing and confidence
    - Session history with per-session answer counts
    """

    DEFAULT_DB_PATH = Path.home() / ".quizit" / "quizit.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.quizit/quizit.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"StateStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS collections (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                collection_id INTEGER NOT NULL,
                front TEXT NOT NULL,
                back TEXT NOT NULL,
                front_image TEXT,
                back_image TEXT,
                ease_factor REAL DEFAULT 2.5,
                interval_days INTEGER DEFAULT 0,
                repetitions INTEGER DEFAULT 0,
                next_review_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (collection_id) REFERENCES collections(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL,
                session_id INTEGER,
                correct BOOLEAN NOT NULL,
                time_spent_ms INTEGER DEFAULT 0,
                confidence INTEGER DEFAULT 3,
                timestamp TEXT NOT NULL,
                FOREIGN KEY (item_id) REFERENCES items(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                collection_id INTEGER NOT NULL,
                mode TEXT NOT NULL,
                started_at TEXT NOT NULL,
                ended_at TEXT,
                items_studied INTEGER DEFAULT 0,
                correct_count INTEGER DEFAULT 0,
                incorrect_count INTEGER DEFAULT 0,
                FOREIGN KEY (collection_id) REFERENCES collections(id)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_items_collection ON items(collection_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_items_next_review ON items(next_review_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_attempts_item ON attempts(item_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_sessions_collection ON sessions(collection_id)")

        self.conn.commit()

    # =========================================================================
    # Collection Operations
    # =========================================================================

    def create_collection(self, name: str, description: str = "") -> int:
        """
        Create a collection.

        Returns:
            Collection ID
        """
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO collections (name, description, created_at) VALUES (?, ?, ?)",
            (name, description, _to_db(_utc_now())),
        )
        self.conn.commit()
        logger.debug(f"Created collection {cursor.lastrowid}: {name}")
        return cursor.lastrowid

    def get_collection(self, collection_id: int) -> Collection:
        """
        Raises:
            StorageError: If no such collection exists
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM collections WHERE id = ?", (collection_id,))
        row = cursor.fetchone()

        if row is None:
            raise StorageError(f"Collection {collection_id} not found")

        return Collection(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            created_at=_from_db(row["created_at"]),
        )

    def list_collections(self) -> list[Collection]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM collections ORDER BY id")
        return [
            Collection(
                id=row["id"],
                name=row["name"],
                description=row["description"] or "",
                created_at=_from_db(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]

    def update_collection(
        self,
        collection_id: int,
        name: str | None = None,
        description: str | None = None,
    ) -> Collection:
        """Rename or re-describe a collection; ``None`` leaves a field as is."""
        current = self.get_collection(collection_id)

        self.conn.execute(
            "UPDATE collections SET name = ?, description = ? WHERE id = ?",
            (
                current.name if name is None else name,
                current.description if description is None else description,
                collection_id,
            ),
        )
        self.conn.commit()
        return self.get_collection(collection_id)

    def delete_collection(self, collection_id: int) -> None:
        """
        Delete a collection with its items, their attempts and its sessions.

        Raises:
            StorageError: If no such collection exists
        """
        self.get_collection(collection_id)

        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM attempts WHERE item_id IN (SELECT id FROM items WHERE collection_id = ?)",
            (collection_id,),
        )
        cursor.execute("DELETE FROM items WHERE collection_id = ?", (collection_id,))
        cursor.execute("DELETE FROM sessions WHERE collection_id = ?", (collection_id,))
        cursor.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
        self.conn.commit()

        logger.info(f"Deleted collection {collection_id}")

    # =========================================================================
    # Item Operations
    # =========================================================================

    def _row_to_item(self, row: sqlite3.Row) -> LearningItem:
        """Build a LearningItem, rejecting rows with missing required fields."""
        missing = [name for name in ITEM_REQUIRED if row[name] is None]
        if missing:
            raise StorageError(f"Item row {row['id']} missing required fields: {', '.join(missing)}")

        return LearningItem(
            id=row["id"],
            collection_id=row["collection_id"],
            front=row["front"],
            back=row["back"],
            front_image=row["front_image"],
            back_image=row["back_image"],
            ease_factor=row["ease_factor"],
            interval_days=row["interval_days"],
            repetitions=row["repetitions"],
            next_review_at=_from_db(row["next_review_at"]),
            created_at=_from_db(row["created_at"]),
        )

    def add_item(
        self,
        collection_id: int,
        front: str,
        back: str,
        front_image: str | None = None,
        back_image: str | None = None,
        initial_ease: float = DEFAULT_EASE,
        now: datetime | None = None,
    ) -> LearningItem:
        """
        Add a new item in its initial state (interval 0, due immediately).

        Returns:
            The stored LearningItem
        """
        self.get_collection(collection_id)
        now = now or _utc_now()

        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO items (
                collection_id, front, back, front_image, back_image,
                ease_factor, interval_days, repetitions, next_review_at, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?, ?)
        """,
            (
                collection_id,
                front,
                back,
                front_image,
                back_image,
                initial_ease,
                _to_db(now),
                _to_db(now),
            ),
        )
        self.conn.commit()
        return self.get_item(cursor.lastrowid)

    def get_item(self, item_id: int) -> LearningItem:
        """
        Raises:
            StorageError: If no such item exists
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM items WHERE id = ?", (item_id,))
        row = cursor.fetchone()

        if row is None:
            raise StorageError(f"Item {item_id} not found")
        return self._row_to_item(row)

    def get_items(self, collection_id: int) -> list[LearningItem]:
        """All items of a collection in creation order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM items WHERE collection_id = ? ORDER BY id", (collection_id,))
        return [self._row_to_item(row) for row in cursor.fetchall()]

    def get_due_items(self, collection_id: int, now: datetime | None = None) -> list[LearningItem]:
        """Items whose next review is at or before ``now``."""
        now = now or _utc_now()
        return [item for item in self.get_items(collection_id) if item.next_review_at <= now]

    def save_item(self, item: LearningItem) -> None:
        """
        Replace the SM-2 state of an item.

        Only the four scheduler fields are written; content is left untouched.
        """
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE items SET
                ease_factor = ?,
                interval_days = ?,
                repetitions = ?,
                next_review_at = ?
            WHERE id = ?
        """,
            (
                item.ease_factor,
                item.interval_days,
                item.repetitions,
                _to_db(item.next_review_at),
                item.id,
            ),
        )
        if cursor.rowcount == 0:
            raise StorageError(f"Item {item.id} not found")
        self.conn.commit()

    def update_item_content(
        self,
        item_id: int,
        front: str | None = None,
        back: str | None = None,
        front_image: str | None = None,
        back_image: str | None = None,
    ) -> LearningItem:
        """
        Edit the question/answer content of an item.

        ``None`` leaves a field unchanged; an empty string clears an image.
        Scheduling state is not touched.
        """
        current = self.get_item(item_id)

        def pick(new, old):
            return old if new is None else new

        self.conn.execute(
            "UPDATE items SET front = ?, back = ?, front_image = ?, back_image = ? WHERE id = ?",
            (
                pick(front, current.front),
                pick(back, current.back),
                pick(front_image, current.front_image) or None,
                pick(back_image, current.back_image) or None,
                item_id,
            ),
        )
        self.conn.commit()
        return self.get_item(item_id)

    def delete_item(self, item_id: int) -> None:
        """
        Delete an item and its attempt history.

        Raises:
            StorageError: If no such item exists
        """
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM attempts WHERE item_id = ?", (item_id,))
        cursor.execute("DELETE FROM items WHERE id = ?", (item_id,))
        if cursor.rowcount == 0:
            self.conn.rollback()
            raise StorageError(f"Item {item_id} not found")
        self.conn.commit()

    # =========================================================================
    # Attempt Log Operations
    # =========================================================================

    def log_attempt(self, attempt: AttemptRecord) -> int:
        """
        Append an attempt record.

        Returns:
            Attempt record ID
        """
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO attempts (item_id, session_id, correct, time_spent_ms, confidence, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                attempt.item_id,
                attempt.session_id,
                attempt.correct,
                attempt.time_spent_ms,
                attempt.confidence,
                _to_db(attempt.timestamp),
            ),
        )
        self.conn.commit()
        return cursor.lastrowid

    @staticmethod
    def _row_to_attempt(row: sqlite3.Row) -> AttemptRecord:
        return AttemptRecord(
            item_id=row["item_id"],
            session_id=row["session_id"],
            correct=bool(row["correct"]),
            time_spent_ms=row["time_spent_ms"] or 0,
            confidence=row["confidence"],
            timestamp=_from_db(row["timestamp"]),
        )

    def get_attempts(self, item_id: int) -> list[AttemptRecord]:
        """Attempts for one item in append order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM attempts WHERE item_id = ? ORDER BY id", (item_id,))
        return [self._row_to_attempt(row) for row in cursor.fetchall()]

    def get_attempts_by_item(self, collection_id: int) -> dict[int, list[AttemptRecord]]:
        """Attempts for every item of a collection, keyed by item id, in append order."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT attempts.* FROM attempts
            JOIN items ON items.id = attempts.item_id
            WHERE items.collection_id = ?
            ORDER BY attempts.id
        """,
            (collection_id,),
        )

        grouped: dict[int, list[AttemptRecord]] = {}
        for row in cursor.fetchall():
            attempt = self._row_to_attempt(row)
            grouped.setdefault(attempt.item_id, []).append(attempt)
        return grouped

    # =========================================================================
    # Session Operations
    # =========================================================================

    def start_session(self, collection_id: int, mode: StudyMode, now: datetime | None = None) -> int:
        """
        Start a new study session.

        Returns:
            Session ID
        """
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO sessions (collection_id, mode, started_at) VALUES (?, ?, ?)",
            (collection_id, StudyMode(mode).value, _to_db(now or _utc_now())),
        )
        self.conn.commit()
        return cursor.lastrowid

    def end_session(
        self,
        session_id: int,
        items_studied: int,
        correct_count: int,
        incorrect_count: int,
        now: datetime | None = None,
    ) -> None:
        """Close a study session with its answer counts."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE sessions SET
                ended_at = ?,
                items_studied = ?,
                correct_count = ?,
                incorrect_count = ?
            WHERE id = ?
        """,
            (_to_db(now or _utc_now()), items_studied, correct_count, incorrect_count, session_id),
        )
        if cursor.rowcount == 0:
            raise StorageError(f"Session {session_id} not found")
        self.conn.commit()

    def get_sessions(self, collection_id: int, since: datetime | None = None) -> list[SessionRecord]:
        """Sessions of a collection, oldest first; ``since`` keeps those started at or after it."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM sessions WHERE collection_id = ? ORDER BY started_at, id",
            (collection_id,),
        )
        sessions = [
            SessionRecord(
                id=row["id"],
                collection_id=row["collection_id"],
                mode=StudyMode(row["mode"]),
                started_at=_from_db(row["started_at"]),
                ended_at=_from_db(row["ended_at"]),
                items_studied=row["items_studied"],
                correct_count=row["correct_count"],
                incorrect_count=row["incorrect_count"],
            )
            for row in cursor.fetchall()
        ]
        if since is not None:
            sessions = [s for s in sessions if s.started_at >= since]
        return sessions

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
