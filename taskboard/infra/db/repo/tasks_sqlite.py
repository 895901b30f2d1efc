from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, List, Sequence, Set

import aiosqlite

from taskboard.domain.board.codec import entry_to_task, task_to_entry
from taskboard.domain.common.errors import ConflictError, DecodeError, NotFoundError, PersistenceError
from taskboard.domain.common.time import to_millis
from taskboard.domain.tasks.models import Task
from taskboard.domain.tasks.ports import TaskStore
from taskboard.infra.db.connection import Database

logger = logging.getLogger(__name__)


class SqliteTaskStore(TaskStore):
    """
    Tasks as rows of (status, order_index, payload_json). The payload is the
    snapshot codec's task entry, so one wire format serves both the store and
    board snapshots.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._subscribers: Set[asyncio.Queue] = set()

    # ----- reads -----

    async def list_all(self) -> List[Task]:
        try:
            rows = await self._db.fetchall(
                "SELECT task_id, payload_json FROM tasks ORDER BY created_at, task_id;"
            )
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not read tasks: {e}") from e
        tasks = []
        for row in rows:
            try:
                tasks.append(self._row_to_task(row))
            except DecodeError as e:
                logger.warning("Skipping unreadable task row %s: %s", row["task_id"], e)
        return tasks

    async def observe_all(self) -> AsyncIterator[List[Task]]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield await self.list_all()
            while True:
                await queue.get()
                # collapse bursts of writes into one emission
                while not queue.empty():
                    queue.get_nowait()
                yield await self.list_all()
        finally:
            self._subscribers.discard(queue)

    def _notify(self) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(None)

    # ----- writes -----

    async def create(self, task: Task) -> Task:
        try:
            row = await self._db.fetchone("SELECT task_id FROM tasks WHERE task_id = ?;", (task.id,))
            if row:
                raise ConflictError(f"Task {task.id} already exists.")
            await self._db.execute(
                """
                INSERT INTO tasks(task_id, status, order_index, payload_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                self._insert_params(task),
            )
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not create task {task.id}: {e}") from e
        self._notify()
        return task

    async def update(self, task: Task) -> Task:
        try:
            changed = await self._db.execute(self._UPDATE_SQL, self._update_params(task))
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not update task {task.id}: {e}") from e
        if changed == 0:
            raise NotFoundError(f"Task {task.id} not found.")
        self._notify()
        return task

    async def update_all(self, tasks: Sequence[Task]) -> List[Task]:
        tasks = list(tasks)
        if not tasks:
            return []
        ids = [t.id for t in tasks]
        try:
            placeholders = ", ".join("?" for _ in ids)
            rows = await self._db.fetchall(
                f"SELECT task_id FROM tasks WHERE task_id IN ({placeholders});", ids
            )
            missing = set(ids) - {r["task_id"] for r in rows}
            if missing:
                raise NotFoundError(f"Task {sorted(missing)[0]} not found.")
            await self._db.transaction([(self._UPDATE_SQL, self._update_params(t)) for t in tasks])
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not update {len(tasks)} tasks: {e}") from e
        self._notify()
        return tasks

    async def upsert_all(self, tasks: Sequence[Task]) -> List[Task]:
        tasks = list(tasks)
        if not tasks:
            return []
        try:
            await self._db.transaction([(self._UPSERT_SQL, self._insert_params(t)) for t in tasks])
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not write {len(tasks)} tasks: {e}") from e
        self._notify()
        return tasks

    async def delete(self, task_id: str) -> None:
        try:
            changed = await self._db.execute("DELETE FROM tasks WHERE task_id = ?;", (task_id,))
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not delete task {task_id}: {e}") from e
        if changed == 0:
            raise NotFoundError(f"Task {task_id} not found.")
        self._notify()

    # ----- mapping -----

    _UPDATE_SQL = """
        UPDATE tasks
        SET status = ?,
            order_index = ?,
            payload_json = ?,
            updated_at = ?
        WHERE task_id = ?;
    """

    _UPSERT_SQL = """
        INSERT INTO tasks(task_id, status, order_index, payload_json, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(task_id) DO UPDATE SET
            status = excluded.status,
            order_index = excluded.order_index,
            payload_json = excluded.payload_json,
            created_at = excluded.created_at,
            updated_at = excluded.updated_at;
    """

    def _payload(self, task: Task) -> str:
        return json.dumps(task_to_entry(task), ensure_ascii=False)

    def _insert_params(self, task: Task):
        return (
            task.id,
            task.status.name,
            task.order,
            self._payload(task),
            to_millis(task.created_at),
            to_millis(task.updated_at),
        )

    def _update_params(self, task: Task):
        return (task.status.name, task.order, self._payload(task), to_millis(task.updated_at), task.id)

    def _row_to_task(self, row) -> Task:
        try:
            entry = json.loads(row["payload_json"])
        except ValueError as e:
            raise DecodeError(f"payload is not JSON: {e}") from e
        return entry_to_task(entry)
