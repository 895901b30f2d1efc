"""
Task entity operations.

Every function here is pure: it takes the current flat task collection and
returns new values. Callers persist what changed.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from taskboard.domain.common.errors import ConflictError, NotFoundError, ValidationError
from taskboard.domain.common.time import truncate_duration_ms, truncate_ms
from taskboard.domain.tasks.models import NewTask, Task, TaskStatus


def find_task(tasks: Sequence[Task], task_id: str) -> Task:
    for task in tasks:
        if task.id == task_id:
            return task
    raise NotFoundError(f"Task {task_id} not found.")


def column_tasks(tasks: Sequence[Task], status: TaskStatus) -> List[Task]:
    """Tasks of one status, ascending by order (stable for equal orders)."""
    return sorted((t for t in tasks if t.status == status), key=lambda t: t.order)


def next_order(tasks: Sequence[Task], status: TaskStatus) -> int:
    orders = [t.order for t in tasks if t.status == status]
    return max(orders) + 1 if orders else 0


def _ms(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    try:
        return truncate_ms(dt)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {e}") from None


def normalize_instants(task: Task) -> Task:
    """Bring every instant and duration on the task down to whole milliseconds."""
    timer = task.timer
    if timer is not None:
        timer = replace(
            timer,
            started_at=_ms(timer.started_at),
            paused_duration=truncate_duration_ms(timer.paused_duration),
            frozen_elapsed=(
                truncate_duration_ms(timer.frozen_elapsed) if timer.frozen_elapsed is not None else None
            ),
        )
    return replace(
        task,
        created_at=_ms(task.created_at),
        updated_at=_ms(task.updated_at),
        due_date=_ms(task.due_date),
        start_date=_ms(task.start_date),
        completed_at=_ms(task.completed_at),
        timer=timer,
    )


def validate_title(title: str) -> None:
    if not title or not title.strip():
        raise ValidationError("Title is required.")


def create_task(tasks: Sequence[Task], fields: NewTask, task_id: str, now: datetime) -> Task:
    validate_title(fields.title)
    if any(t.id == task_id for t in tasks):
        raise ConflictError(f"Task {task_id} already exists.")
    now = truncate_ms(now)
    return Task(
        id=task_id,
        title=fields.title,
        description=fields.description,
        status=fields.status,
        priority=fields.priority,
        tags=tuple(fields.tags),
        points=fields.points,
        assignee=fields.assignee,
        due_date=_ms(fields.due_date),
        start_date=_ms(fields.start_date),
        estimated_hours=fields.estimated_hours,
        subtasks=tuple(fields.subtasks),
        linked_note_ids=tuple(fields.linked_note_ids),
        created_at=now,
        updated_at=now,
        order=next_order(tasks, fields.status),
    )


def update_task(tasks: Sequence[Task], task: Task, now: datetime) -> Task:
    """
    Replace the stored task wholesale with `task`.

    This is a full-field replace, not a merge: whatever the caller passes is
    the new value, except that updated_at is refreshed. A status change puts
    the task at the end of its new column so orders stay unique there.
    """
    validate_title(task.title)
    stored = find_task(tasks, task.id)
    updated = normalize_instants(replace(task, updated_at=now))
    if updated.status != stored.status:
        others = [t for t in tasks if t.id != task.id]
        updated = replace(updated, order=next_order(others, updated.status))
    return updated


def toggle_completion(tasks: Sequence[Task], task_id: str, now: datetime) -> Task:
    task = find_task(tasks, task_id)
    now = truncate_ms(now)
    if task.completed:
        return replace(task, completed=False, completed_at=None, updated_at=now)
    return replace(task, completed=True, completed_at=now, timer=None, updated_at=now)


def move_task(
    tasks: Sequence[Task],
    task_id: str,
    target_status: TaskStatus,
    target_index: int,
    now: datetime,
) -> Tuple[Task, List[Task]]:
    """
    Move a task to `target_status` at `target_index`.

    Both the source and the destination column are reindexed 0..n-1 so the
    moved task ends up with order == clamped target_index. Returns the moved
    task and every task whose status or order changed; those must be
    committed together.
    """
    moving = find_task(tasks, task_id)
    now = truncate_ms(now)

    source = [t for t in column_tasks(tasks, moving.status) if t.id != task_id]
    if target_status == moving.status:
        destination = source
    else:
        destination = [t for t in column_tasks(tasks, target_status) if t.id != task_id]

    index = max(0, min(target_index, len(destination)))
    destination.insert(index, moving)

    new_values: Dict[str, Tuple[TaskStatus, int]] = {}
    if target_status != moving.status:
        for i, t in enumerate(source):
            new_values[t.id] = (t.status, i)
    for i, t in enumerate(destination):
        new_values[t.id] = (target_status, i)

    changed: List[Task] = []
    moved = moving
    for t in tasks:
        if t.id not in new_values:
            continue
        status, order = new_values[t.id]
        if t.id == task_id:
            moved = replace(t, status=status, order=order, updated_at=now)
            changed.append(moved)
        elif t.status != status or t.order != order:
            changed.append(replace(t, status=status, order=order, updated_at=now))
    return moved, changed


def delete_task(tasks: Sequence[Task], task_id: str) -> List[Task]:
    find_task(tasks, task_id)
    return [t for t in tasks if t.id != task_id]


def apply_changes(tasks: Sequence[Task], changed: Sequence[Task]) -> List[Task]:
    """Upsert `changed` into `tasks`, keeping the original positions."""
    by_id = {t.id: t for t in changed}
    merged = [by_id.pop(t.id, t) for t in tasks]
    merged.extend(t for t in changed if t.id in by_id)
    return merged


def merge_imported(tasks: Sequence[Task], imported: Sequence[Task]) -> List[Task]:
    """
    Prepare imported tasks for committing next to `tasks`.

    Imported tasks replace stored ones with the same id. Per status they are
    appended after the tasks that stay, keeping their relative snapshot order,
    so no order is shared within a column.
    """
    incoming = {t.id for t in imported}
    staying = [t for t in tasks if t.id not in incoming]
    base = {status: next_order(staying, status) for status in TaskStatus}
    merged: List[Task] = []
    for status in TaskStatus:
        group = sorted((t for t in imported if t.status == status), key=lambda t: t.order)
        for i, t in enumerate(group):
            merged.append(normalize_instants(replace(t, order=base[status] + i)))
    position = {t.id: i for i, t in enumerate(imported)}
    merged.sort(key=lambda t: position[t.id])
    return merged


def counts_by_status(tasks: Sequence[Task]) -> Dict[TaskStatus, int]:
    counts = {status: 0 for status in TaskStatus}
    for t in tasks:
        counts[t.status] += 1
    return counts
