from __future__ import annotations

import aiosqlite
from typing import Any, Iterable, Optional, Sequence, Tuple


class Database:
    """
    Async SQLite helper:
    - opens a new connection per operation
    - sets row_factory to aiosqlite.Row
    - enables WAL + foreign keys
    - `transaction` runs several statements under one commit
    """

    def __init__(self, path: str) -> None:
        self._path = path

    async def executescript(self, sql: str) -> None:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute("PRAGMA foreign_keys=ON;")
            await db.executescript(sql)
            await db.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and return the number of affected rows."""
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            cur = await db.execute(sql, params)
            await db.commit()
            return cur.rowcount

    async def transaction(self, statements: Iterable[Tuple[str, Sequence[Any]]]) -> list[int]:
        """
        Run every statement on one connection and commit once. Any failure
        rolls the whole batch back and re-raises.
        """
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            counts = []
            try:
                for sql, params in statements:
                    cur = await db.execute(sql, params)
                    counts.append(cur.rowcount)
            except BaseException:
                await db.rollback()
                raise
            await db.commit()
            return counts

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            cur = await db.execute(sql, params)
            return await cur.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            cur = await db.execute(sql, params)
            return await cur.fetchall()
