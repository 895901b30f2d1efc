"""
Filter & sort for task views.

Facets combine with AND; inside one facet any member matches (OR). An empty
facet puts no constraint on the result, so the default filter passes every
task.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from taskboard.domain.tasks.models import Task, TaskPriority, TaskStatus


class TaskSortOption(Enum):
    PRIORITY = "PRIORITY"
    DUE_DATE = "DUE_DATE"
    CREATED_DATE = "CREATED_DATE"
    UPDATED_DATE = "UPDATED_DATE"
    TITLE = "TITLE"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class TaskFilter:
    assignees: FrozenSet[str] = frozenset()
    tags: FrozenSet[str] = frozenset()
    priorities: FrozenSet[TaskPriority] = frozenset()
    statuses: FrozenSet[TaskStatus] = frozenset()
    search_query: str = ""
    show_overdue_only: bool = False

    @property
    def is_empty(self) -> bool:
        return not (
            self.assignees
            or self.tags
            or self.priorities
            or self.statuses
            or self.search_query.strip()
            or self.show_overdue_only
        )

    def toggle_assignee(self, assignee: Optional[str]) -> "TaskFilter":
        if assignee is None:
            return replace(self, assignees=frozenset())
        return replace(self, assignees=self.assignees ^ {assignee})

    def toggle_priority(self, priority: Optional[TaskPriority]) -> "TaskFilter":
        if priority is None:
            return replace(self, priorities=frozenset())
        return replace(self, priorities=self.priorities ^ {priority})

    def toggle_status(self, status: Optional[TaskStatus]) -> "TaskFilter":
        if status is None:
            return replace(self, statuses=frozenset())
        return replace(self, statuses=self.statuses ^ {status})


def matches(task: Task, f: TaskFilter, now: datetime) -> bool:
    if f.assignees and (task.assignee is None or task.assignee not in f.assignees):
        return False
    if f.tags and not any(tag.label in f.tags for tag in task.tags):
        return False
    if f.priorities and task.priority not in f.priorities:
        return False
    if f.statuses and task.status not in f.statuses:
        return False
    query = f.search_query.casefold()
    if query.strip() and query not in task.title.casefold() and query not in task.description.casefold():
        return False
    if f.show_overdue_only and not task.is_overdue(now):
        return False
    return True


def filter_tasks(tasks: Sequence[Task], f: TaskFilter, now: datetime) -> List[Task]:
    return [t for t in tasks if matches(t, f, now)]


def _due_key(task: Task) -> Tuple[int, float]:
    if task.due_date is None:
        return (1, 0.0)
    return (0, task.due_date.timestamp())


_SORT_KEYS: Dict[TaskSortOption, Tuple[Callable[[Task], object], bool]] = {
    TaskSortOption.PRIORITY: (lambda t: t.priority.rank, False),
    TaskSortOption.DUE_DATE: (_due_key, False),
    TaskSortOption.CREATED_DATE: (lambda t: t.created_at, True),
    TaskSortOption.UPDATED_DATE: (lambda t: t.updated_at, True),
    TaskSortOption.TITLE: (lambda t: t.title.casefold(), False),
    TaskSortOption.MANUAL: (lambda t: t.order, False),
}


def sort_tasks(tasks: Sequence[Task], sort: TaskSortOption) -> List[Task]:
    # sorted() is stable, also with reverse=True
    key, newest_first = _SORT_KEYS[sort]
    return sorted(tasks, key=key, reverse=newest_first)


def apply(
    tasks: Sequence[Task],
    f: TaskFilter,
    sort: TaskSortOption,
    now: datetime,
) -> List[Task]:
    return sort_tasks(filter_tasks(tasks, f, now), sort)
