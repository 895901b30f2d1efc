"""
Tests for the aiosqlite adapters: task store, focus session records and
snapshot files.

Uses a temporary DB file (in-memory SQLite would use a new DB per connection).
Run with: python -m pytest tests/test_sqlite_store.py -v
"""
from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.domain.board.models import Board
from taskboard.domain.board.rules import default_columns
from taskboard.domain.common.errors import ConflictError, NotFoundError, PersistenceError
from taskboard.domain.focus.models import FocusSessionRecord
from taskboard.domain.tasks import rules, timer
from taskboard.domain.tasks.models import Subtask, TagColor, Task, TaskStatus, TaskTag
from taskboard.infra.db.connection import Database
from taskboard.infra.db.repo.focus_sessions_sqlite import SqliteFocusSessionRepo
from taskboard.infra.db.repo.tasks_sqlite import SqliteTaskStore
from taskboard.infra.db.schema_version import apply_migrations
from taskboard.infra.snapshot_file import load_board, save_board
from taskboard.sample_data import sample_tasks

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _temp_db_path() -> str:
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path


async def _run_with_db(test_fn):
    path = _temp_db_path()
    try:
        db = Database(path)
        await apply_migrations(db, now_iso=T0.isoformat())
        await test_fn(db)
    finally:
        for suffix in ("", "-wal", "-shm"):
            if os.path.exists(path + suffix):
                os.unlink(path + suffix)


def _task(task_id: str, status: TaskStatus = TaskStatus.TODO, order: int = 0) -> Task:
    return Task(id=task_id, title=task_id, created_at=T0, updated_at=T0, status=status, order=order)


def test_migrations_are_applied_once():
    async def run(db: Database):
        assert await apply_migrations(db, now_iso=T0.isoformat()) == 0
        row = await db.fetchone("SELECT COUNT(*) AS n FROM schema_migrations;")
        assert row["n"] == 1

    asyncio.run(_run_with_db(run))


def test_create_and_read_back_full_task():
    async def run(db: Database):
        store = SqliteTaskStore(db)
        task = replace(
            _task("a"),
            tags=(TaskTag("Backend", TagColor.BLUE),),
            subtasks=(Subtask("s1", "step", True, 0),),
            assignee="Alice",
            estimated_hours=1.5,
            timer=timer.pause(timer.start(T0), T0 + timedelta(seconds=90)),
        )
        await store.create(task)
        assert await store.list_all() == [task]
        with pytest.raises(ConflictError):
            await store.create(task)

    asyncio.run(_run_with_db(run))


def test_update_and_delete_unknown_ids():
    async def run(db: Database):
        store = SqliteTaskStore(db)
        with pytest.raises(NotFoundError):
            await store.update(_task("ghost"))
        with pytest.raises(NotFoundError):
            await store.delete("ghost")

        await store.create(_task("a"))
        await store.update(replace(_task("a"), title="Renamed"))
        assert (await store.list_all())[0].title == "Renamed"
        await store.delete("a")
        assert await store.list_all() == []

    asyncio.run(_run_with_db(run))


def test_update_all_is_all_or_nothing():
    async def run(db: Database):
        store = SqliteTaskStore(db)
        tasks = [_task("a", TaskStatus.TODO, 0), _task("b", TaskStatus.TODO, 1), _task("x", TaskStatus.IN_PROGRESS, 0)]
        for t in tasks:
            await store.create(t)

        with pytest.raises(NotFoundError):
            await store.update_all([replace(tasks[0], title="changed"), _task("ghost")])
        assert (await store.list_all())[0].title == "a"

        _, changed = rules.move_task(tasks, "a", TaskStatus.IN_PROGRESS, 0, T0 + timedelta(minutes=1))
        await store.update_all(changed)
        rows = await db.fetchall("SELECT task_id, status, order_index FROM tasks ORDER BY status, order_index;")
        assert [(r["task_id"], r["status"], r["order_index"]) for r in rows] == [
            ("a", "IN_PROGRESS", 0),
            ("x", "IN_PROGRESS", 1),
            ("b", "TODO", 0),
        ]

    asyncio.run(_run_with_db(run))


def test_observe_all_emits_after_each_write():
    async def run(db: Database):
        store = SqliteTaskStore(db)
        stream = store.observe_all()
        try:
            assert await stream.__anext__() == []
            await store.create(_task("a"))
            assert [t.id for t in await stream.__anext__()] == ["a"]
            await store.update_all([replace(_task("a"), order=3)])
            assert (await stream.__anext__())[0].order == 3
        finally:
            await stream.aclose()

    asyncio.run(_run_with_db(run))


def test_focus_session_records():
    async def run(db: Database):
        repo = SqliteFocusSessionRepo(db)
        first = FocusSessionRecord("a", T0, timedelta(minutes=25), True, 1)
        second = FocusSessionRecord("b", T0 + timedelta(hours=1), timedelta(minutes=10), False, 0)
        await repo.record(first)
        await repo.record(second)
        assert await repo.list_recent(10) == [second, first]
        assert await repo.list_recent(1) == [second]
        assert await repo.list_for_task("a") == [first]
        assert await repo.list_for_task("zzz") == []

    asyncio.run(_run_with_db(run))


def test_snapshot_file_round_trip(tmp_path):
    board = Board(columns=default_columns(), tasks=tuple(sample_tasks(T0)))
    path = save_board(board, tmp_path / "exports" / "board.json")
    assert load_board(path) == board
    assert load_board(tmp_path / "missing.json") == Board()
    (tmp_path / "corrupt.json").write_text("{nope", encoding="utf-8")
    assert load_board(tmp_path / "corrupt.json") == Board()


def test_upsert_all_inserts_and_replaces_in_one_write():
    async def run(db: Database):
        store = SqliteTaskStore(db)
        await store.create(_task("a", TaskStatus.TODO, 0))
        written = await store.upsert_all(
            [replace(_task("a", TaskStatus.TODO, 0), title="Renamed"), _task("b", TaskStatus.TODO, 1)]
        )
        assert [t.id for t in written] == ["a", "b"]
        by_id = {t.id: t for t in await store.list_all()}
        assert by_id["a"].title == "Renamed"
        assert by_id["b"].order == 1

        await db.executescript(
            """
            CREATE TRIGGER reject_boom BEFORE INSERT ON tasks WHEN NEW.task_id = 'boom'
            BEGIN SELECT RAISE(ABORT, 'rejected'); END;
            """
        )
        with pytest.raises(PersistenceError):
            await store.upsert_all([_task("c", TaskStatus.TODO, 2), _task("boom", TaskStatus.TODO, 3)])
        assert sorted(by_id) == sorted(t.id for t in await store.list_all())

    asyncio.run(_run_with_db(run))
