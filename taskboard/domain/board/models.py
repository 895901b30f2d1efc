from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from taskboard.domain.tasks.models import Task, TaskStatus


@dataclass(frozen=True)
class Column:
    """A status-bound column definition. It owns no tasks."""
    id: str
    title: str
    status: TaskStatus
    order: int
    is_collapsed: bool = False
    wip_limit: Optional[int] = None


@dataclass(frozen=True)
class BoardColumn:
    """Derived view: a column plus the tasks currently grouped into it."""
    column: Column
    tasks: Tuple[Task, ...]

    @property
    def status(self) -> TaskStatus:
        return self.column.status

    @property
    def is_over_wip_limit(self) -> bool:
        limit = self.column.wip_limit
        return limit is not None and len(self.tasks) > limit


@dataclass(frozen=True)
class Board:
    columns: Tuple[Column, ...] = ()
    tasks: Tuple[Task, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.columns and not self.tasks


@dataclass(frozen=True)
class WipWarning:
    status: TaskStatus
    count: int
    limit: int
