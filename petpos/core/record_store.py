"""
Record Store - local persistence for POS records

Keeps JSON records in three collections (products, orders, categories) inside
a single SQLite database, with secondary indexes for the fields the catalog
and the ledger look records up by.

Each collection is one table:
    id        primary key (opaque string generated by the repositories)
    position  insertion order, kept when a record is replaced
    data      the record as JSON
    idx_*     one column per declared index, copied from the record

Every operation runs in its own transaction and touches one collection.
Writes are serialised with a process-wide lock (single writer).
"""
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, ContextManager, Dict, List, Optional, Tuple

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from petpos.core.exceptions import ConstraintViolation, StorageUnavailable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

PRODUCTS = "products"
ORDERS = "orders"
CATEGORIES = "categories"


@dataclass(frozen=True)
class IndexSpec:
    """Secondary index over one top-level record field"""
    field: str
    unique: bool = False

    @property
    def column(self) -> str:
        return f"idx_{self.field}"


COLLECTIONS: Dict[str, Tuple[IndexSpec, ...]] = {
    PRODUCTS: (
        IndexSpec("barcode", unique=True),
        IndexSpec("name"),
        IndexSpec("category"),
    ),
    ORDERS: (
        IndexSpec("orderNumber", unique=True),
        IndexSpec("createdAt"),
    ),
    CATEGORIES: (),
}


def create_sqlite_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for a SQLite URL

    In-memory databases live as long as their single connection, so they get a
    StaticPool to share that connection across threads.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"check_same_thread": False})


class RecordStore:
    """
    Indexed key-value storage for POS records

    Usage:
        store = RecordStore("sqlite:///petstore_pos.db").open()
        store.put("products", {"id": "p1", "barcode": "893...", "name": "Pedigree"})
        store.get_by_index("products", "barcode", "893...")
    """

    def __init__(self, database_url: str = "sqlite://", engine: Optional[Engine] = None):
        self.database_url = database_url
        self._engine = engine
        self._opened = False
        self._lock = threading.RLock()
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}

        for name, indexes in COLLECTIONS.items():
            table = Table(
                name,
                self._metadata,
                Column("id", String, primary_key=True),
                Column("position", Integer, nullable=False),
                Column("data", Text, nullable=False),
                *[Column(spec.column, String, nullable=True) for spec in indexes],
            )
            for spec in indexes:
                Index(f"ix_{name}_{spec.field}", table.c[spec.column], unique=spec.unique)
            self._tables[name] = table

        self._sequences = Table(
            "sequences",
            self._metadata,
            Column("name", String, primary_key=True),
            Column("value", Integer, nullable=False),
        )
        self._meta = Table(
            "store_meta",
            self._metadata,
            Column("key", String, primary_key=True),
            Column("value", String, nullable=False),
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def open(self) -> "RecordStore":
        """
        Create or upgrade the schema and mark the store usable

        Missing collections and indexes are created; existing ones are kept.

        Raises:
            StorageUnavailable: the engine cannot be opened, or the datastore
                was written by a newer schema version
        """
        try:
            if self._engine is None:
                self._engine = create_sqlite_engine(self.database_url)

            with self._lock, self._engine.begin() as conn:
                conn.execute(text("SELECT 1"))
                self._metadata.create_all(bind=conn)

                row = conn.execute(
                    select(self._meta.c.value).where(self._meta.c.key == "schema_version")
                ).first()
                stored_version = int(row.value) if row else 0

                if stored_version > SCHEMA_VERSION:
                    raise StorageUnavailable(
                        f"Datastore schema version {stored_version} is newer than supported version {SCHEMA_VERSION}"
                    )
                if row is None:
                    conn.execute(insert(self._meta).values(key="schema_version", value=str(SCHEMA_VERSION)))
                elif stored_version < SCHEMA_VERSION:
                    logger.info(f"Upgrading datastore schema {stored_version} -> {SCHEMA_VERSION}")
                    conn.execute(
                        update(self._meta)
                        .where(self._meta.c.key == "schema_version")
                        .values(value=str(SCHEMA_VERSION))
                    )

        except SQLAlchemyError as e:
            logger.error(f"Could not open datastore {self.database_url}: {e}")
            raise StorageUnavailable(f"Could not open datastore: {e}") from e

        self._opened = True
        logger.debug(f"Datastore open: {self.database_url}")
        return self

    def close(self):
        """Dispose the engine. The store must be reopened before further use."""
        if self._engine is not None:
            self._engine.dispose()
        self._opened = False

    @property
    def write_lock(self) -> threading.RLock:
        """
        The single-writer lock

        Hold it to run a read-compute-write sequence (order numbering) without
        another writer slipping in between. It is re-entrant, so store calls
        made while holding it do not block.
        """
        return self._lock

    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def collections(self) -> List[str]:
        return list(COLLECTIONS)

    # ========================================================================
    # Records
    # ========================================================================

    def add(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new record

        Raises:
            ConstraintViolation: the id already exists (index "id") or a
                unique index collides with another record
        """
        return self._write(collection, record, replace=False)

    def put(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert or replace a record by primary key

        Raises:
            ConstraintViolation: a unique index collides with a different record
        """
        return self._write(collection, record, replace=True)

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Return the record with this id, or None"""
        table = self._table(collection)
        with self._connect() as conn:
            row = conn.execute(select(table.c.data).where(table.c.id == record_id)).first()
        return json.loads(row.data) if row else None

    def get_by_index(self, collection: str, index_name: str, value: Any) -> Optional[Dict[str, Any]]:
        """Return the first record (in insertion order) whose index matches value, or None"""
        table = self._table(collection)
        spec = self._index(collection, index_name)
        if value is None:
            return None

        with self._connect() as conn:
            row = conn.execute(
                select(table.c.data)
                .where(table.c[spec.column] == str(value))
                .order_by(table.c.position)
                .limit(1)
            ).first()
        return json.loads(row.data) if row else None

    def get_all_by_index(self, collection: str, index_name: str, value: Any) -> List[Dict[str, Any]]:
        """Return every record whose index matches value, in insertion order"""
        table = self._table(collection)
        spec = self._index(collection, index_name)
        if value is None:
            return []

        with self._connect() as conn:
            rows = conn.execute(
                select(table.c.data)
                .where(table.c[spec.column] == str(value))
                .order_by(table.c.position)
            ).fetchall()
        return [json.loads(row.data) for row in rows]

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every record of a collection in insertion order"""
        table = self._table(collection)
        with self._connect() as conn:
            rows = conn.execute(select(table.c.data).order_by(table.c.position)).fetchall()
        return [json.loads(row.data) for row in rows]

    def count(self, collection: str) -> int:
        table = self._table(collection)
        with self._connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def delete(self, collection: str, record_id: str) -> None:
        """Delete a record. Deleting a missing id is not an error."""
        table = self._table(collection)
        with self._lock, self._connect() as conn:
            conn.execute(delete(table).where(table.c.id == record_id))

    def clear(self, collection: str) -> None:
        """Remove every record of one collection"""
        table = self._table(collection)
        with self._lock, self._connect() as conn:
            result = conn.execute(delete(table))
        logger.info(f"Cleared {collection} ({result.rowcount} records)")

    # ========================================================================
    # Sequences (persisted counters)
    # ========================================================================

    def get_sequence(self, name: str) -> int:
        """Return the last value of a counter, 0 if it was never advanced"""
        with self._connect() as conn:
            value = conn.execute(
                select(self._sequences.c.value).where(self._sequences.c.name == name)
            ).scalar()
        return value or 0

    def advance_sequence(self, name: str, value: int) -> int:
        """
        Move a counter forward to value

        Counters never go backwards: advancing to a smaller value keeps the
        current one.

        Returns:
            The counter value after the call
        """
        with self._lock, self._connect() as conn:
            current = conn.execute(
                select(self._sequences.c.value).where(self._sequences.c.name == name)
            ).scalar()

            if current is None:
                conn.execute(insert(self._sequences).values(name=name, value=value))
                return value
            if value > current:
                conn.execute(
                    update(self._sequences).where(self._sequences.c.name == name).values(value=value)
                )
                return value
            return current

    def reset_sequence(self, name: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(delete(self._sequences).where(self._sequences.c.name == name))

    # ========================================================================
    # Internals
    # ========================================================================

    def _connect(self) -> ContextManager[Connection]:
        if not self._opened or self._engine is None:
            raise StorageUnavailable("Record store is not open")
        return self._engine.begin()

    def _table(self, collection: str) -> Table:
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _index(self, collection: str, index_name: str) -> IndexSpec:
        for spec in COLLECTIONS[collection]:
            if spec.field == index_name:
                return spec
        raise ValueError(f"Unknown index {index_name} on {collection}")

    @staticmethod
    def _index_value(record: Dict[str, Any], field: str) -> Optional[str]:
        value = record.get(field)
        return None if value is None else str(value)

    def _write(self, collection: str, record: Dict[str, Any], replace: bool) -> Dict[str, Any]:
        table = self._table(collection)
        record_id = record.get("id")
        if not record_id or not isinstance(record_id, str):
            raise ValueError(f"{collection} record has no string id")

        indexes = COLLECTIONS[collection]
        values = {"data": json.dumps(record, ensure_ascii=False)}
        for spec in indexes:
            values[spec.column] = self._index_value(record, spec.field)

        try:
            with self._lock, self._connect() as conn:
                existing = conn.execute(select(table.c.id).where(table.c.id == record_id)).first()
                if existing is not None and not replace:
                    raise ConstraintViolation(collection, "id", record_id)

                for spec in indexes:
                    if not spec.unique or values[spec.column] is None:
                        continue
                    clash = conn.execute(
                        select(table.c.id).where(
                            table.c[spec.column] == values[spec.column],
                            table.c.id != record_id,
                        )
                    ).first()
                    if clash is not None:
                        raise ConstraintViolation(collection, spec.field, record.get(spec.field))

                if existing is None:
                    position = conn.execute(
                        select(func.coalesce(func.max(table.c.position), 0) + 1)
                    ).scalar_one()
                    conn.execute(insert(table).values(id=record_id, position=position, **values))
                else:
                    conn.execute(update(table).where(table.c.id == record_id).values(**values))

        except IntegrityError as e:
            raise self._constraint_from_integrity_error(collection, record, e) from e

        return record

    @staticmethod
    def _constraint_from_integrity_error(
        collection: str, record: Dict[str, Any], error: IntegrityError
    ) -> ConstraintViolation:
        # sqlite reports "UNIQUE constraint failed: products.idx_barcode"
        message = str(error.orig)
        column = message.rsplit(".", 1)[-1].strip() if "." in message else "id"
        field = column[len("idx_"):] if column.startswith("idx_") else column
        return ConstraintViolation(collection, field, record.get(field))


def open_record_store(database_url: str) -> RecordStore:
    """Build and open a store for a SQLite URL"""
    return RecordStore(database_url).open()


