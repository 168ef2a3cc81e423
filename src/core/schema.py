"""SQLite schema management (code-first approach)."""

import logging

from src.core.db_client import get_connection


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "tasks",
]


_COLLECTION_SCHEMAS: dict[str, list[str]] = {
    "tasks": [
        """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            title_key TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'completed')),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        # Case-insensitive title uniqueness is enforced by the store as well as by the service
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_title_key ON tasks (title_key)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks (created_at)",
    ],
}


async def init_db(*, db_path: str | None = None) -> None:
    """Create every collection and index that does not exist yet."""
    conn = await get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        for statement in _COLLECTION_SCHEMAS[collection]:
            await conn.execute(statement)
        logger.info("Collection ready", extra={"collection": collection})

    await conn.commit()
