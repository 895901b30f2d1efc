"""
Tests for task creation, update, completion and move/reindex rules.

Run with: python -m pytest tests/test_task_rules.py -v
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.domain.common.errors import ConflictError, NotFoundError, ValidationError
from taskboard.domain.tasks import rules
from taskboard.domain.tasks.models import NewTask, Task, TaskStatus, TaskTimer

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(minutes=10)


def _task(task_id: str, status: TaskStatus, order: int, **kwargs) -> Task:
    return Task(id=task_id, title=task_id, created_at=T0, updated_at=T0, status=status, order=order, **kwargs)


def _board():
    return [
        _task("a", TaskStatus.TODO, 0),
        _task("b", TaskStatus.TODO, 1),
        _task("c", TaskStatus.TODO, 2),
        _task("x", TaskStatus.IN_PROGRESS, 0),
        _task("y", TaskStatus.IN_PROGRESS, 1),
    ]


def _orders(tasks, status):
    return [(t.id, t.order) for t in rules.column_tasks(tasks, status)]


def test_create_task_appends_after_highest_order():
    """New tasks get max(order)+1 in their column, 0 in an empty column."""
    tasks = [_task("a", TaskStatus.TODO, 0), _task("b", TaskStatus.TODO, 7)]
    created = rules.create_task(tasks, NewTask(title="Next", status=TaskStatus.TODO), "n1", T1)
    assert created.order == 8
    first = rules.create_task(tasks, NewTask(status=TaskStatus.DONE), "n2", T1)
    assert first.order == 0
    assert first.title == "New Task"
    assert created.created_at == created.updated_at == T1
    assert created.timer is None


def test_create_task_truncates_to_milliseconds():
    now = datetime(2024, 5, 1, 9, 0, 0, 123456, tzinfo=timezone.utc)
    created = rules.create_task([], NewTask(), "n1", now)
    assert created.created_at.microsecond == 123000


def test_create_task_rejects_duplicate_id_and_blank_title():
    tasks = _board()
    with pytest.raises(ConflictError):
        rules.create_task(tasks, NewTask(), "a", T1)
    with pytest.raises(ValidationError):
        rules.create_task(tasks, NewTask(title="   "), "n1", T1)


def test_update_task_is_full_replace():
    tasks = _board()
    edited = replace(tasks[0], title="Renamed", description="", assignee=None)
    updated = rules.update_task(tasks, edited, T1)
    assert updated.title == "Renamed"
    assert updated.updated_at == T1
    with pytest.raises(NotFoundError):
        rules.update_task(tasks, replace(edited, id="missing"), T1)


def test_toggle_completion_keeps_status_and_clears_timer():
    tasks = [_task("a", TaskStatus.IN_PROGRESS, 0, timer=TaskTimer(started_at=T0))]
    done = rules.toggle_completion(tasks, "a", T1)
    assert done.completed is True
    assert done.completed_at == T1
    assert done.status is TaskStatus.IN_PROGRESS
    assert done.timer is None

    undone = rules.toggle_completion([done], "a", T1)
    assert undone.completed is False
    assert undone.completed_at is None


def test_move_to_other_column_head():
    """A TODO task at order 0 moved to IN_PROGRESS index 0 leads that column; TODO is reindexed from 0."""
    tasks = _board()
    moved, changed = rules.move_task(tasks, "a", TaskStatus.IN_PROGRESS, 0, T1)
    after = rules.apply_changes(tasks, changed)

    assert moved.status is TaskStatus.IN_PROGRESS
    assert _orders(after, TaskStatus.IN_PROGRESS) == [("a", 0), ("x", 1), ("y", 2)]
    assert _orders(after, TaskStatus.TODO) == [("b", 0), ("c", 1)]
    assert all(t.updated_at == T1 for t in changed)
    assert {t.id for t in changed} == {"a", "b", "c", "x", "y"}


def test_move_clamps_index():
    tasks = _board()
    _, changed = rules.move_task(tasks, "a", TaskStatus.IN_PROGRESS, 99, T1)
    after = rules.apply_changes(tasks, changed)
    assert _orders(after, TaskStatus.IN_PROGRESS) == [("x", 0), ("y", 1), ("a", 2)]

    _, changed = rules.move_task(tasks, "c", TaskStatus.TODO, -5, T1)
    after = rules.apply_changes(tasks, changed)
    assert _orders(after, TaskStatus.TODO) == [("c", 0), ("a", 1), ("b", 2)]


def test_move_within_column_only_touches_changed_tasks():
    tasks = _board()
    _, changed = rules.move_task(tasks, "a", TaskStatus.TODO, 1, T1)
    after = rules.apply_changes(tasks, changed)
    assert _orders(after, TaskStatus.TODO) == [("b", 0), ("a", 1), ("c", 2)]
    assert {t.id for t in changed} == {"a", "b"}


def test_move_unknown_task():
    with pytest.raises(NotFoundError):
        rules.move_task(_board(), "nope", TaskStatus.DONE, 0, T1)


def test_delete_and_counts():
    tasks = _board()
    remaining = rules.delete_task(tasks, "b")
    assert [t.id for t in remaining] == ["a", "c", "x", "y"]
    counts = rules.counts_by_status(remaining)
    assert counts[TaskStatus.TODO] == 2
    assert counts[TaskStatus.IN_PROGRESS] == 2
    assert counts[TaskStatus.DONE] == 0
    with pytest.raises(NotFoundError):
        rules.delete_task(tasks, "nope")


def test_apply_changes_keeps_positions_and_appends_new():
    tasks = _board()
    new = _task("z", TaskStatus.DONE, 0)
    merged = rules.apply_changes(tasks, [replace(tasks[1], title="B"), new])
    assert [t.id for t in merged] == ["a", "b", "c", "x", "y", "z"]
    assert merged[1].title == "B"


def test_sub_millisecond_dates_are_truncated():
    due = T0 + timedelta(days=1, microseconds=123456)
    created = rules.create_task([], NewTask(title="x", due_date=due, start_date=due), "t1", T1)
    assert created.due_date == T0 + timedelta(days=1, milliseconds=123)
    assert created.start_date == created.due_date

    edited = replace(
        created,
        completed_at=T1 + timedelta(microseconds=999),
        timer=TaskTimer(started_at=T1 + timedelta(microseconds=1500), paused_duration=timedelta(microseconds=2500)),
    )
    updated = rules.update_task([created], edited, T1)
    assert updated.completed_at == T1
    assert updated.timer.started_at == T1 + timedelta(milliseconds=1)
    assert updated.timer.paused_duration == timedelta(milliseconds=2)


def test_naive_date_is_a_validation_error():
    with pytest.raises(ValidationError):
        rules.create_task([], NewTask(title="x", due_date=datetime(2024, 5, 1)), "t1", T1)


def test_update_changing_status_appends_to_new_column():
    tasks = [_task("a", TaskStatus.TODO, 0), _task("b", TaskStatus.DONE, 0), _task("c", TaskStatus.DONE, 4)]
    updated = rules.update_task(tasks, replace(tasks[0], status=TaskStatus.DONE), T1)
    assert updated.order == 5
    after = rules.apply_changes(tasks, [updated])
    orders = [t.order for t in rules.column_tasks(after, TaskStatus.DONE)]
    assert len(orders) == len(set(orders))


def test_update_keeping_status_keeps_order():
    tasks = _board()
    updated = rules.update_task(tasks, replace(tasks[1], title="Renamed", order=7), T1)
    assert updated.order == 7


def test_merge_imported_appends_after_staying_tasks():
    stored = [_task("local", TaskStatus.TODO, 0), _task("shared", TaskStatus.TODO, 3)]
    imported = [
        _task("n2", TaskStatus.TODO, 1),
        _task("shared", TaskStatus.TODO, 0),
        _task("d", TaskStatus.DONE, 9),
    ]
    merged = rules.merge_imported(stored, imported)
    assert [t.id for t in merged] == ["n2", "shared", "d"]
    assert {t.id: t.order for t in merged} == {"shared": 1, "n2": 2, "d": 0}

    after = rules.apply_changes(stored, merged)
    for status in TaskStatus:
        orders = [t.order for t in rules.column_tasks(after, status)]
        assert len(orders) == len(set(orders))
