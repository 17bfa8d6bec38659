"""
Storage Backend Module

Provides the abstract storage interface and the in-memory implementation
used by every store. Records are kept as plain JSON-compatible dictionaries
in named tables; dates are stored as ISO strings and enums by value.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Any
from datetime import date, datetime
from dataclasses import asdict, fields
from enum import Enum
from contextlib import contextmanager
import json
import threading


class StorageRecord:
    """Mixin for dataclasses that are persisted through a StorageInterface"""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            elif isinstance(value, Enum):
                result[key] = value.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary, ignoring unknown keys"""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


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

    def last(self, table: str) -> Optional[Dict[str, Any]]:
        """Most recently inserted record (backends may override with a cheaper lookup)"""
        records = self.load_all(table)
        return records[-1] if records else None

    def begin_transaction(self) -> None:
        """Start a storage transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


_MISSING = object()


class InMemoryStorage(StorageInterface):
    """
    In-memory storage implementation

    atomic() holds a re-entrant lock for the duration of the block and keeps
    an undo journal of the records and tables it touches; if the block raises
    the journal is replayed. Nested atomic blocks join the outermost one.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._depth = 0
        # Pre-transaction state: whole tables (None = did not exist) and single records
        self._table_journal: Dict[str, Optional[Dict[str, Dict[str, Any]]]] = {}
        self._record_journal: Dict[Tuple[str, str], Any] = {}

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            if self._depth and table not in self._table_journal:
                self._table_journal[table] = None
            self._data[table] = {}

    def _journal_record(self, table: str, record_id: str) -> None:
        if not self._depth or table in self._table_journal:
            return
        key = (table, record_id)
        if key not in self._record_journal:
            self._record_journal[key] = self._data[table].get(record_id, _MISSING)

    @staticmethod
    def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
        # Round-trip through JSON so callers never share state with the store
        return json.loads(json.dumps(record, default=str))

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            self._journal_record(table, record_id)
            self._data[table][record_id] = self._copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record is not None:
                return self._copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [self._copy(record) for record in self._data[table].values()]

    def last(self, table: str) -> Optional[Dict[str, Any]]:
        """Most recently inserted record"""
        with self._lock:
            self._ensure_table(table)
            records = self._data[table]
            if not records:
                return None
            return self._copy(next(reversed(records.values())))

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
                    results.append(self._copy(record))
            return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            if self._depth and table not in self._table_journal:
                # Stored records are never mutated in place, a shallow copy is enough
                existing = self._data.get(table)
                self._table_journal[table] = dict(existing) if existing is not None else None
            self._data[table] = {}

    def begin_transaction(self) -> None:
        self._lock.acquire()
        self._depth += 1

    def commit(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._clear_journal()
        self._lock.release()

    def rollback(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            # Tables first: record entries were taken before any later clear_table
            for table, records in self._table_journal.items():
                if records is None:
                    self._data.pop(table, None)
                else:
                    self._data[table] = records
            for (table, record_id), record in self._record_journal.items():
                if record is _MISSING:
                    self._data[table].pop(record_id, None)
                else:
                    self._data[table][record_id] = record
            self._clear_journal()
        self._lock.release()

    def _clear_journal(self) -> None:
        self._table_journal = {}
        self._record_journal = {}

    def get_all_data(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Get all data for debugging/inspection"""
        with self._lock:
            return json.loads(json.dumps(self._data, default=str))
