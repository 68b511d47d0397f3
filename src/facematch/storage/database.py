"""Face database module.

This module provides SQLite-based persistence for enrolled faces: one
row per identifier holding the display name, the photo, the serialized
feature record and the enrollment timestamp. Designed for thread-safe
access, with change notification for callers that keep a live listing.
"""

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Union

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class DuplicateIdentifierError(Exception):
    """Raised when inserting an identifier that is already enrolled."""

    def __init__(self, identifier: str):
        super().__init__(f"Identifier {identifier} is already registered")
        self.identifier = identifier


def current_timestamp_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class FaceEntry:
    """Represents an enrolled face in the database."""

    identifier: str
    display_name: str
    features: str
    image: bytes = b""
    timestamp: int = field(default_factory=current_timestamp_ms)
    id: Optional[int] = None

    def to_dict(self, include_features: bool = True) -> dict:
        """Convert to dictionary for JSON serialization (without the image)."""
        data = {
            "id": self.id,
            "identifier": self.identifier,
            "display_name": self.display_name,
            "image_size": len(self.image),
            "timestamp": self.timestamp,
        }
        if include_features:
            data["features"] = self.features
        return data


# Type alias for listing subscribers
ListingCallback = Callable[[List[FaceEntry]], None]


class FaceDatabase:
    """SQLite-based face database with thread-safe access.

    Identifiers are unique: inserting an existing one is rejected rather
    than overwritten. Replacing an entry is a delete followed by an insert.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Union[str, Path] = MEMORY_PATH):
        """Initialize face database.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self._in_memory = str(db_path) == MEMORY_PATH
        self.db_path = Path(db_path) if not self._in_memory else None
        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Thread-local storage for connections
        self._local = threading.local()
        self._lock = threading.RLock()
        # An in-memory database exists per connection, so it is shared
        self._shared_connection: Optional[sqlite3.Connection] = None

        self._subscribers: List[ListingCallback] = []
        self._subscribers_lock = threading.Lock()

        self._init_schema()

        logger.info(f"Initialized face database at {db_path}")

    def _connect(self, target: str) -> sqlite3.Connection:
        connection = sqlite3.connect(target, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return connection

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if self._in_memory:
            if self._shared_connection is None:
                self._shared_connection = self._connect(MEMORY_PATH)
            return self._shared_connection

        if not hasattr(self._local, "connection") or self._local.connection is None:
            self._local.connection = self._connect(str(self.db_path))
        return self._local.connection

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS faces (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    identifier TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    image BLOB NOT NULL,
                    features TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
            """)
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_faces_identifier
                ON faces(identifier)
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)
            cursor.execute("""
                INSERT OR IGNORE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # -------------------------------------------------------------------------
    # Face CRUD Operations
    # -------------------------------------------------------------------------

    def insert_face(self, entry: FaceEntry) -> int:
        """Insert a new face if its identifier is not yet registered.

        Args:
            entry: Face entry to insert (its id is ignored)

        Returns:
            ID of the inserted row

        Raises:
            DuplicateIdentifierError: If the identifier already exists
        """
        try:
            with self._transaction() as cursor:
                cursor.execute("""
                    INSERT INTO faces (
                        identifier, display_name, image, features, timestamp
                    )
                    VALUES (?, ?, ?, ?, ?)
                """, (
                    entry.identifier,
                    entry.display_name,
                    sqlite3.Binary(entry.image),
                    entry.features,
                    entry.timestamp,
                ))
                face_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise DuplicateIdentifierError(entry.identifier) from None

        entry.id = face_id
        logger.info(f"Added face {face_id} for {entry.identifier}")
        self._notify()
        return face_id

    def get_face(self, identifier: str) -> Optional[FaceEntry]:
        """Get a face entry by identifier.

        Args:
            identifier: Enrolled identifier

        Returns:
            FaceEntry or None if not found
        """
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT * FROM faces WHERE identifier = ? LIMIT 1",
                (identifier,),
            )
            row = cursor.fetchone()

        if row is None:
            return None

        return self._row_to_entry(row)

    def exists(self, identifier: str) -> bool:
        """Check if an identifier is registered."""
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT COUNT(*) AS count FROM faces WHERE identifier = ?",
                (identifier,),
            )
            return cursor.fetchone()["count"] > 0

    def list_faces(self) -> List[FaceEntry]:
        """Get every enrolled face in insertion order."""
        with self._transaction() as cursor:
            cursor.execute("SELECT * FROM faces ORDER BY id")
            rows = cursor.fetchall()

        return [self._row_to_entry(row) for row in rows]

    def delete_face(self, identifier: str) -> bool:
        """Delete a face by identifier.

        Args:
            identifier: Enrolled identifier

        Returns:
            True if deleted, False if not found
        """
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM faces WHERE identifier = ?", (identifier,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted face {identifier}")
            self._notify()

        return deleted

    def replace_face(self, entry: FaceEntry) -> int:
        """Replace the entry for an identifier with a brand-new row.

        The delete and insert run in one transaction, so a failed insert
        leaves the previous entry in place.
        """
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM faces WHERE identifier = ?", (entry.identifier,))
            cursor.execute("""
                INSERT INTO faces (
                    identifier, display_name, image, features, timestamp
                )
                VALUES (?, ?, ?, ?, ?)
            """, (
                entry.identifier,
                entry.display_name,
                sqlite3.Binary(entry.image),
                entry.features,
                entry.timestamp,
            ))
            face_id = cursor.lastrowid

        entry.id = face_id
        logger.info(f"Replaced face for {entry.identifier} (row {face_id})")
        self._notify()
        return face_id

    # -------------------------------------------------------------------------
    # Change Notification
    # -------------------------------------------------------------------------

    def subscribe(self, callback: ListingCallback) -> Callable[[], None]:
        """Receive the full listing now and after every change.

        Args:
            callback: Called with the current list of entries

        Returns:
            Function that removes the subscription
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        self._deliver([callback], self.list_faces())

        def unsubscribe():
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        with self._subscribers_lock:
            callbacks = self._subscribers.copy()
        if callbacks:
            self._deliver(callbacks, self.list_faces())

    def _deliver(self, callbacks: List[ListingCallback], entries: List[FaceEntry]):
        for callback in callbacks:
            try:
                callback(list(entries))
            except Exception as e:
                logger.error(f"Subscriber error: {e}", exc_info=True)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_stats(self) -> Dict[str, int]:
        """Get database statistics."""
        with self._transaction() as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM faces")
            total = cursor.fetchone()["total"]
        return {"total_faces": total}

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _row_to_entry(self, row: sqlite3.Row) -> FaceEntry:
        """Convert database row to FaceEntry."""
        return FaceEntry(
            id=row["id"],
            identifier=row["identifier"],
            display_name=row["display_name"],
            image=bytes(row["image"]),
            features=row["features"],
            timestamp=row["timestamp"],
        )

    def close(self):
        """Close database connections owned by the calling thread."""
        if self._shared_connection is not None:
            self._shared_connection.close()
            self._shared_connection = None
        if hasattr(self._local, "connection") and self._local.connection:
            self._local.connection.close()
            self._local.connection = None

    def __len__(self) -> int:
        return self.get_stats()["total_faces"]

    def __contains__(self, identifier: str) -> bool:
        return self.exists(identifier)
