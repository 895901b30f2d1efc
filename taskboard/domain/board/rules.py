"""
Board derivation. Columns are recomputed from the flat task list on every
read; the board never keeps its own copy of task data.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from taskboard.domain.board.models import Board, BoardColumn, Column, WipWarning
from taskboard.domain.common.errors import NotFoundError
from taskboard.domain.tasks import rules as task_rules
from taskboard.domain.tasks.models import Task, TaskStatus

DEFAULT_WIP_LIMITS = {
    TaskStatus.TODO: 5,
    TaskStatus.IN_PROGRESS: 3,
}


def default_columns() -> Tuple[Column, ...]:
    return tuple(
        Column(
            id=status.name,
            title=status.label,
            status=status,
            order=index,
            wip_limit=DEFAULT_WIP_LIMITS.get(status),
        )
        for index, status in enumerate(TaskStatus)
    )


def columns_from_tasks(tasks: Sequence[Task], column_defs: Sequence[Column]) -> List[BoardColumn]:
    """One view per defined column (even when empty), tasks ascending by order."""
    return [
        BoardColumn(column=col, tasks=tuple(task_rules.column_tasks(tasks, col.status)))
        for col in sorted(column_defs, key=lambda c: c.order)
    ]


def find_column(column_defs: Sequence[Column], status: TaskStatus) -> Column:
    for col in column_defs:
        if col.status == status:
            return col
    raise NotFoundError(f"Column {status.name} not found.")


def set_collapsed(column_defs: Sequence[Column], status: TaskStatus, collapsed: bool) -> Tuple[Column, ...]:
    find_column(column_defs, status)
    return tuple(replace(c, is_collapsed=collapsed) if c.status == status else c for c in column_defs)


def wip_warning(tasks: Sequence[Task], column_defs: Sequence[Column], status: TaskStatus) -> Optional[WipWarning]:
    """Advisory only: reports an exceeded limit, never blocks anything."""
    try:
        col = find_column(column_defs, status)
    except NotFoundError:
        return None
    if col.wip_limit is None:
        return None
    count = sum(1 for t in tasks if t.status == status)
    if count > col.wip_limit:
        return WipWarning(status=status, count=count, limit=col.wip_limit)
    return None


def move(
    board: Board,
    task_id: str,
    to_status: TaskStatus,
    to_index: int,
    now: datetime,
) -> Tuple[Board, List[Task], Optional[WipWarning]]:
    """
    Move a task on the board. Returns the resulting board, the tasks that
    must be committed together, and a WIP warning if the destination is now
    over its limit.
    """
    _, changed = task_rules.move_task(board.tasks, task_id, to_status, to_index, now)
    tasks = tuple(task_rules.apply_changes(board.tasks, changed))
    return replace(board, tasks=tasks), changed, wip_warning(tasks, board.columns, to_status)
