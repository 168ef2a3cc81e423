"""SQLite document store client with CRUD operations."""

import asyncio
import json
import logging
import re
import secrets
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Store operation failed for a reason other than a missing or duplicate record."""


class RecordNotFoundError(KeyError):
    """No record with the requested id exists in the collection."""


class DuplicateRecordError(DatabaseError):
    """A unique index rejected the write."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def generate_record_id() -> str:
    """Issue a new 24 character hexadecimal record id."""
    return secrets.token_hex(constants.TASK_ID_BYTES)


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.database_path
    return Path(path_str).resolve()


def _where_equals(filters: dict[str, Any] | None) -> tuple[str, list[Any]]:
    """Build a WHERE clause ANDing exact matches on validated column names."""
    if not filters:
        return "", []
    for field in filters:
        _validate_collection_name(field)
    conditions = " AND ".join(f"{field} = ?" for field in filters)
    return f"WHERE {conditions}", [_serialize(value) for value in filters.values()]


def parse_sort(sort: str) -> str:
    """Translate a sort expression into a safe ORDER BY clause.

    Accepts "field", "field ASC|DESC", "+field" and "-field". Insertion order
    (rowid) breaks ties so records created in the same instant keep a stable order.
    Anything else falls back to insertion order.
    """
    if not sort:
        return "rowid ASC"

    expression = sort.strip()
    prefixed = re.match(r"^([+-])([A-Za-z_][A-Za-z0-9_]*)$", expression)
    if prefixed:
        direction = "DESC" if prefixed.group(1) == "-" else "ASC"
        return f"{prefixed.group(2)} {direction}, rowid {direction}"

    plain = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", expression, re.IGNORECASE)
    if plain:
        direction = (plain.group(2) or "ASC").upper()
        return f"{plain.group(1)} {direction}, rowid {direction}"

    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return "rowid ASC"


def _row_to_record(cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, row, strict=True))


def _serialize(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    conn = _db_connections.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info(
            "Closed SQLite connection",
            extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
        )
    except (aiosqlite.Error, ValueError) as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    _validate_collection_name(collection)
    record_id = generate_record_id()
    now = _utc_now()
    fields = {"id": record_id, **data, "created_at": now, "updated_at": now}

    try:
        conn = await get_connection()

        columns_str = ", ".join(fields)
        placeholders_str = ", ".join("?" for _ in fields)
        values = [_serialize(value) for value in fields.values()]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        await conn.execute(query, values)
        await conn.commit()
    except aiosqlite.IntegrityError as e:
        logger.info("create_record_duplicate", extra={"collection": collection, "error": str(e)})
        msg = f"Duplicate record in {collection}: {e}"
        raise DuplicateRecordError(msg) from e
    except aiosqlite.OperationalError as e:
        if "no such table" in str(e):
            logger.error("Table not found", extra={"collection": collection})
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _row_to_record(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID, stamp updated_at, and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    fields = {**data, "updated_at": _utc_now()}

    try:
        conn = await get_connection()

        set_clause = ", ".join(f"{key} = ?" for key in fields)
        values = [_serialize(value) for value in fields.values()]
        values.append(record_id)

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
    except aiosqlite.IntegrityError as e:
        logger.info("update_record_duplicate", extra={"collection": collection, "record_id": record_id})
        msg = f"Duplicate record in {collection}: {e}"
        raise DuplicateRecordError(msg) from e
    except aiosqlite.Error as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e

    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int | None = 50,
    where: dict[str, Any] | None = None,
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records matching every field in where, sorted and paginated.

    per_page=None returns every matching record in one list.
    """
    _validate_collection_name(collection)
    where_clause, params = _where_equals(where)

    order_by = parse_sort(sort)
    limit_clause = ""
    if per_page is not None:
        limit_clause = "LIMIT ? OFFSET ?"
        params.extend([per_page, (page - 1) * per_page])

    try:
        conn = await get_connection()

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} {limit_clause}"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e

    records = [_row_to_record(cursor, row) for row in rows]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def get_record_by_field(*, collection: str, field: str, value: str | int | float) -> dict[str, Any] | None:
    """Return the first record whose field equals value exactly, or None.

    Unlike filter queries the value is bound as-is, so it may contain quotes.
    """
    _validate_collection_name(collection)
    _validate_collection_name(field)

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE {field} = ? LIMIT 1"  # noqa: S608 - names are validated
        cursor = await conn.execute(query, (value,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_record_by_field_failed", extra={"collection": collection, "field": field, "error": str(e)})
        msg = f"Failed to look up record in {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        return None

    return _row_to_record(cursor, row)
