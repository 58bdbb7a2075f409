"""
Storage Backend Module

Provides the abstract storage interface and implementations for in-memory
(testing) and SQLite (persistence). Records are JSON documents; all monetary
values are stored as Decimal strings. ``atomic()`` groups writes into a single
all-or-nothing unit on every backend.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
import json
import re
import sqlite3
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .errors import StorageError


_TABLE_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _check_table(table: str) -> str:
    if not _TABLE_NAME.match(table):
        raise StorageError(f"Invalid table name: {table!r}", table)
    return table


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage (top-level fields only)"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, Enum):
                result[key] = value.value
        return result


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def next_sequence(self, name: str) -> int:
        """Return the next value of a named integer sequence (starts at 1)"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    @abstractmethod
    @contextmanager
    def atomic(self):
        """Context manager grouping writes into one all-or-nothing unit"""
        yield


_MISSING = object()


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._lock = threading.RLock()
        self._depth = 0
        # Prior values of records and sequences touched by the open transaction
        self._undo: Dict[Any, Any] = {}

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[_check_table(table)] = {}

    def _remember(self, table: str, record_id: str) -> None:
        if self._depth and (table, record_id) not in self._undo:
            self._undo[(table, record_id)] = self._data[table].get(record_id, _MISSING)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            self._remember(table, record_id)
            # Deep copy to prevent external mutation
            self._data[table][record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return json.loads(json.dumps(record))
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [json.loads(json.dumps(record)) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                self._remember(table, record_id)
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            results = []
            for record in self._data[table].values():
                if all(key in record and record[key] == value for key, value in filters.items()):
                    results.append(json.loads(json.dumps(record)))
            return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            for record_id in self._data[table]:
                self._remember(table, record_id)
            self._data[table] = {}

    def next_sequence(self, name: str) -> int:
        with self._lock:
            if self._depth and (None, name) not in self._undo:
                self._undo[(None, name)] = self._sequences.get(name, _MISSING)
            value = self._sequences.get(name, 0) + 1
            self._sequences[name] = value
            return value

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    @contextmanager
    def atomic(self):
        """
        Hold the storage lock for the whole block. The outermost block keeps
        the prior value of every record it touches and puts them back if the
        block raises; inner blocks join it.
        """
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield
            except Exception:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    self._undo = {}

    def _rollback(self) -> None:
        for (table, key), previous in self._undo.items():
            if table is None:
                target = self._sequences
            else:
                target = self._data[table]
            if previous is _MISSING:
                target.pop(key, None)
            else:
                target[key] = previous
        self._undo = {}


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:", timeout: float = 30.0):
        self.db_path = str(db_path)
        # Autocommit mode; atomic() issues BEGIN IMMEDIATE / COMMIT itself
        try:
            self._connection = sqlite3.connect(
                self.db_path, timeout=timeout, check_same_thread=False, isolation_level=None
            )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open SQLite database {self.db_path}: {e}", self.db_path) from e
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self._known_tables = set()

        with self._guard("initialise"):
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS sequences (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
            """)

    @contextmanager
    def _guard(self, operation: str):
        """Translate driver failures into StorageError"""
        try:
            yield
        except sqlite3.Error as e:
            raise StorageError(f"SQLite {operation} failed: {e}", self.db_path) from e

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._known_tables:
            return
        _check_table(table)
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._known_tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite (insert or update in place)"""
        with self._lock, self._guard(f"save into {table}"):
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)

            self._connection.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
            """, (record_id, data_json, now, now))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock, self._guard(f"load from {table}"):
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock, self._guard(f"load_all from {table}"):
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY seq
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from SQLite"""
        with self._lock, self._guard(f"delete from {table}"):
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock, self._guard(f"exists in {table}"):
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        results = []
        for record in self.load_all(table):
            if all(key in record and record[key] == value for key, value in filters.items()):
                results.append(record)
        return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock, self._guard(f"count {table}"):
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock, self._guard(f"clear {table}"):
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")

    def next_sequence(self, name: str) -> int:
        with self.atomic(), self._guard(f"next_sequence {name}"):
            self._connection.execute(
                "INSERT OR IGNORE INTO sequences (name, value) VALUES (?, 0)", (name,)
            )
            self._connection.execute(
                "UPDATE sequences SET value = value + 1 WHERE name = ?", (name,)
            )
            row = self._connection.execute(
                "SELECT value FROM sequences WHERE name = ?", (name,)
            ).fetchone()
            return row['value']

    @contextmanager
    def atomic(self):
        """
        Run the block inside one write transaction. The outermost block
        takes SQLite's reserved lock up front (BEGIN IMMEDIATE) so other
        connections cannot interleave writes; inner blocks join it.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                with self._guard("begin"):
                    self._connection.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield
            except Exception:
                self._depth -= 1
                if outermost:
                    with self._guard("rollback"):
                        self._connection.execute("ROLLBACK")
                    # DDL rolls back too
                    self._known_tables.clear()
                raise
            else:
                self._depth -= 1
                if outermost:
                    with self._guard("commit"):
                        self._connection.execute("COMMIT")

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str, sqlite_timeout: float = 30.0) -> StorageInterface:
    """
    Build a storage backend from a URL

    Args:
        database_url: "memory://" or "sqlite:///relative/or/absolute/path.db"
            ("sqlite://" alone opens an in-memory SQLite database)
        sqlite_timeout: Seconds SQLite waits on a locked database

    Returns:
        StorageInterface implementation
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()

    if database_url.startswith("sqlite://"):
        path = database_url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        return SQLiteStorage(path or ":memory:", timeout=sqlite_timeout)

    raise StorageError(f"Unsupported database URL: {database_url}", database_url)
