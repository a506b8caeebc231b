"""
Ephemeral in-process record store.

Schema-checked tables with TTL expiry, equality filtering, ordering,
pagination and a simple secondary index. Nothing is persisted: the store is
rebuilt empty on every process start.
"""

import enum
import json
import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from numbers import Real
from typing import Any, Optional, Union
from uuid import uuid4

from fxconv.lib.errors import DuplicateTableError, SchemaViolationError, UnknownTableError

logger = logging.getLogger(__name__)


class FieldType(str, enum.Enum):
    """Field types a table schema can declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


TableSchema = Mapping[str, Union[FieldType, str]]


def type_name(value: Any) -> str:
    """Schema type name of a Python value ('null' and 'unknown' never match)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return FieldType.BOOLEAN.value
    if isinstance(value, (int, float)):
        return FieldType.NUMBER.value
    if isinstance(value, str):
        return FieldType.STRING.value
    if isinstance(value, Mapping):
        return FieldType.OBJECT.value
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY.value
    return type(value).__name__


def get_nested_value(data: Mapping[str, Any], path: str) -> Any:
    """Resolve a dot-path ("rates.EUR") against nested mappings; None if missing."""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


@dataclass
class StoredRecord:
    """A row: caller data plus bookkeeping timestamps (epoch seconds)."""

    id: str
    data: dict[str, Any]
    created_at: float
    updated_at: float
    expires_at: Optional[float] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Whether the record's expiry instant has passed."""
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) > self.expires_at


@dataclass
class QueryOptions:
    """Filter, ordering and pagination for find()/count()."""

    where: Optional[dict[str, Any]] = None
    order_by: Optional[str] = None
    order_direction: str = "ASC"
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class TableStats:
    """Diagnostic counters for one table."""

    table_name: str
    total_records: int
    active_records: int
    expired_records: int
    memory_usage: str


@dataclass
class _Table:
    schema: dict[str, FieldType]
    records: dict[str, StoredRecord] = field(default_factory=dict)
    # field -> str(value) -> ids, in insertion order
    index: dict[str, dict[str, dict[str, None]]] = field(default_factory=dict)


class RecordStore:
    """Minimal schema-checked table store with lazy TTL expiry.

    Expired records behave as absent on every read path. They are physically
    removed when a point read or update touches them, or by cleanup_expired().

    Example:
        store = RecordStore()
        store.create_table("notes", {"title": "string", "views": "number"})
        note_id = store.insert("notes", {"title": "hello", "views": 1}, ttl_hours=2)
        store.find("notes", where={"title": "hello"})
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._tables: dict[str, _Table] = {}
        self._lock = threading.RLock()

    # Table management

    def create_table(self, name: str, schema: TableSchema) -> None:
        """
        Create a table.

        Args:
            name: Table name
            schema: Field name -> FieldType (or its string value)

        Raises:
            DuplicateTableError: If the table already exists
            ValueError: If the schema names an unknown type
        """
        with self._lock:
            if name in self._tables:
                raise DuplicateTableError(name)
            self._tables[name] = _Table(
                schema={field_name: FieldType(kind) for field_name, kind in schema.items()}
            )
        logger.debug(f"Created table: {name}")

    def drop_table(self, name: str) -> None:
        """Drop a table and all its records."""
        with self._lock:
            if self._tables.pop(name, None) is None:
                raise UnknownTableError(name)
        logger.debug(f"Dropped table: {name}")

    def list_tables(self) -> list[str]:
        """Names of all tables in creation order."""
        with self._lock:
            return list(self._tables)

    # Record operations

    def insert(
        self, table_name: str, record: Mapping[str, Any], ttl_hours: Optional[float] = None
    ) -> str:
        """
        Insert a record.

        Args:
            table_name: Target table
            record: Field values; fields outside the schema are stored un-typed
            ttl_hours: Lifetime in hours (fractional allowed); None never expires

        Returns:
            Generated record id

        Raises:
            UnknownTableError: If the table does not exist
            SchemaViolationError: If a declared field has the wrong type
        """
        with self._lock:
            table = self._get_table(table_name)
            data = dict(record)
            self._validate(data, table.schema)

            now = time.time()
            record_id = uuid4().hex
            table.records[record_id] = StoredRecord(
                id=record_id,
                data=data,
                created_at=now,
                updated_at=now,
                expires_at=now + ttl_hours * 3600 if ttl_hours is not None else None,
            )
            self._index(table, record_id, data)
            return record_id

    def find_by_id(self, table_name: str, record_id: str) -> Optional[StoredRecord]:
        """
        Point lookup.

        Returns:
            The record, or None if absent or expired (expired records are evicted)
        """
        with self._lock:
            table = self._get_table(table_name)
            record = table.records.get(record_id)
            if record is None:
                return None
            if record.is_expired():
                self._evict(table, record_id)
                return None
            return record

    def find(
        self,
        table_name: str,
        options: Optional[QueryOptions] = None,
        *,
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        order_direction: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[StoredRecord]:
        """
        Scan a table.

        Keyword arguments override the matching fields of ``options``.

        Args:
            table_name: Table to scan
            options: Query options
            where: Exact-match conditions over top-level or dot-path fields, ANDed
            order_by: Dot-path field to sort on (stable, natural ordering)
            order_direction: "ASC" (default) or "DESC"
            limit: Maximum records returned (applied after offset)
            offset: Records skipped after filtering and ordering

        Returns:
            Matching non-expired records
        """
        query = options or QueryOptions()
        where = where if where is not None else query.where
        order_by = order_by if order_by is not None else query.order_by
        direction = (order_direction or query.order_direction or "ASC").upper()
        limit = limit if limit is not None else query.limit
        offset = offset if offset is not None else query.offset

        if direction not in ("ASC", "DESC"):
            raise ValueError(f"order_direction must be ASC or DESC, got {direction}")

        now = time.time()
        with self._lock:
            table = self._get_table(table_name)
            records = [r for r in table.records.values() if not r.is_expired(now)]

        if where:
            records = [r for r in records if self._matches(r.data, where)]

        if order_by:
            records = sorted(
                records,
                key=lambda r: self._sort_key(get_nested_value(r.data, order_by)),
                reverse=direction == "DESC",
            )

        if offset:
            records = records[offset:]
        if limit is not None:
            records = records[:limit]

        return records

    def find_by_index(self, table_name: str, field_name: str, value: Any) -> list[StoredRecord]:
        """
        Look up records through the secondary index on a top-level field.

        Only string and number values are indexed.
        """
        with self._lock:
            table = self._get_table(table_name)
            ids = table.index.get(field_name, {}).get(str(value), {})
            now = time.time()
            return [
                table.records[record_id]
                for record_id in sorted(ids, key=lambda i: table.records[i].created_at)
                if not table.records[record_id].is_expired(now)
                and table.records[record_id].data.get(field_name) == value
            ]

    def update(self, table_name: str, record_id: str, fields: Mapping[str, Any]) -> bool:
        """
        Shallow-merge fields into a record and re-validate it.

        Returns:
            False if the record is absent or expired (expired records are evicted)

        Raises:
            SchemaViolationError: If the merged record violates the schema
        """
        with self._lock:
            table = self._get_table(table_name)
            record = table.records.get(record_id)
            if record is None:
                return False
            if record.is_expired():
                self._evict(table, record_id)
                return False

            merged = {**record.data, **fields}
            self._validate(merged, table.schema)

            self._unindex(table, record_id, record.data)
            record.data = merged
            record.updated_at = time.time()
            self._index(table, record_id, merged)
            return True

    def delete(self, table_name: str, record_id: str) -> bool:
        """Remove a record regardless of expiry. False if absent."""
        with self._lock:
            table = self._get_table(table_name)
            if record_id not in table.records:
                return False
            self._evict(table, record_id)
            return True

    def count(self, table_name: str, options: Optional[QueryOptions] = None, **kwargs: Any) -> int:
        """Number of records find() would return for the same arguments."""
        return len(self.find(table_name, options, **kwargs))

    def cleanup_expired(self) -> int:
        """
        Evict every expired record in every table.

        Returns:
            Total number of records evicted
        """
        deleted = 0
        now = time.time()
        with self._lock:
            for table in self._tables.values():
                expired = [rid for rid, r in table.records.items() if r.is_expired(now)]
                for record_id in expired:
                    self._evict(table, record_id)
                deleted += len(expired)

        if deleted:
            logger.info(f"Record store cleanup: removed {deleted} expired records")
        return deleted

    def get_stats(self, table_name: str) -> TableStats:
        """Record counts and an approximate serialized size for one table."""
        now = time.time()
        with self._lock:
            records = list(self._get_table(table_name).records.values())

        expired = sum(1 for r in records if r.is_expired(now))
        return TableStats(
            table_name=table_name,
            total_records=len(records),
            active_records=len(records) - expired,
            expired_records=expired,
            memory_usage=self._estimate_memory_usage(records),
        )

    # Helpers

    def _get_table(self, name: str) -> _Table:
        table = self._tables.get(name)
        if table is None:
            raise UnknownTableError(name)
        return table

    @staticmethod
    def _validate(data: Mapping[str, Any], schema: Mapping[str, FieldType]) -> None:
        for field_name, expected in schema.items():
            if data.get(field_name) is None:
                continue
            actual = type_name(data[field_name])
            if actual != expected.value:
                raise SchemaViolationError(field_name, expected.value, actual)

    @staticmethod
    def _matches(data: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
        return all(get_nested_value(data, key) == value for key, value in where.items())

    @staticmethod
    def _sort_key(value: Any) -> tuple[int, Any]:
        # None first, then numbers, then strings, then anything else by its text
        if value is None:
            return (0, 0)
        if isinstance(value, Real):
            return (1, value)
        if isinstance(value, str):
            return (2, value)
        return (3, str(value))

    @staticmethod
    def _index(table: _Table, record_id: str, data: Mapping[str, Any]) -> None:
        for field_name, value in data.items():
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                table.index.setdefault(field_name, {}).setdefault(str(value), {})[record_id] = None

    @staticmethod
    def _unindex(table: _Table, record_id: str, data: Mapping[str, Any]) -> None:
        for field_name, value in data.items():
            ids = table.index.get(field_name, {}).get(str(value))
            if ids is not None:
                ids.pop(record_id, None)
                if not ids:
                    del table.index[field_name][str(value)]

    def _evict(self, table: _Table, record_id: str) -> None:
        record = table.records.pop(record_id)
        self._unindex(table, record_id, record.data)

    @staticmethod
    def _estimate_memory_usage(records: list[StoredRecord]) -> str:
        size = len(json.dumps([asdict(r) for r in records], default=str))
        if size < 1024:
            return f"{size} B"
        if size < 1024 * 1024:
            return f"{size / 1024:.2f} KB"
        return f"{size / 1024 / 1024:.2f} MB"
