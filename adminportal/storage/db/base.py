"""Portal record store connection: one aiosqlite handle per process."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from .helpers import DatabaseFetchMixin
from .schema import DatabaseSchemaMixin

logger = logging.getLogger(__name__)

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
)


class DatabaseBase(
    DatabaseSchemaMixin,
    DatabaseFetchMixin,
):
    """Owns the connection for the users, sessions and activity mixins.

    Writes go through ``self._lock`` so bulk updates commit as one unit.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self):
        """Open the portal store, creating its directory and tables on first use."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        # Some SQLite builds reject these pragmas; the defaults still work.
        try:
            for pragma in SQLITE_PRAGMAS:
                await self._connection.execute(pragma)
            await self._connection.commit()
        except aiosqlite.Error as exc:
            logger.debug("SQLite pragmas not applied to %s: %s", self.db_path, exc)
        await self._create_tables()
        logger.info("Portal store ready at %s", self.db_path)

    async def close(self):
        if self._connection:
            await self._connection.close()
            self._connection = None
