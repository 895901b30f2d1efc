from __future__ import annotations

from typing import Sequence

import aiosqlite

from taskboard.domain.common.errors import PersistenceError
from taskboard.domain.common.time import duration_from_millis, duration_to_millis, from_millis, to_millis
from taskboard.domain.focus.models import FocusSessionRecord
from taskboard.domain.focus.ports import FocusSessionRepository
from taskboard.infra.db.connection import Database


class SqliteFocusSessionRepo(FocusSessionRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def record(self, record: FocusSessionRecord) -> None:
        try:
            await self._db.execute(
                """
                INSERT INTO focus_sessions(task_id, start_time, duration_ms, completed, sessions_completed)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    record.task_id,
                    to_millis(record.start_time),
                    duration_to_millis(record.duration),
                    1 if record.completed else 0,
                    record.sessions_completed,
                ),
            )
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not record focus session: {e}") from e

    async def list_recent(self, limit: int) -> Sequence[FocusSessionRecord]:
        return await self._select(
            """
            SELECT *
            FROM focus_sessions
            ORDER BY start_time DESC, session_id DESC
            LIMIT ?;
            """,
            (limit,),
        )

    async def list_for_task(self, task_id: str) -> Sequence[FocusSessionRecord]:
        return await self._select(
            """
            SELECT *
            FROM focus_sessions
            WHERE task_id = ?
            ORDER BY start_time DESC, session_id DESC;
            """,
            (task_id,),
        )

    async def _select(self, sql: str, params) -> Sequence[FocusSessionRecord]:
        try:
            rows = await self._db.fetchall(sql, params)
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not read focus sessions: {e}") from e
        return [self._row_to_record(r) for r in rows]

    def _row_to_record(self, row) -> FocusSessionRecord:
        return FocusSessionRecord(
            task_id=row["task_id"],
            start_time=from_millis(int(row["start_time"])),
            duration=duration_from_millis(int(row["duration_ms"])),
            completed=bool(row["completed"]),
            sessions_completed=int(row["sessions_completed"] or 0),
        )
