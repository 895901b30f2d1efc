"""
Closed vocabulary of the board engine.

Events come in (from the presentation layer, or fed back by the driver after
a store call), commands go out to the task store, effects go out to the
presentation layer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple, Union

from taskboard.domain.board.models import WipWarning
from taskboard.domain.tasks.filters import TaskFilter, TaskSortOption
from taskboard.domain.tasks.models import Task, TaskPriority, TaskStatus
from taskboard.engine.state import TaskViewMode

# ----- user events -----


@dataclass(frozen=True)
class TaskClicked:
    task_id: str


@dataclass(frozen=True)
class TaskCreated:
    status: TaskStatus
    title: str = "New Task"


@dataclass(frozen=True)
class TaskMoved:
    task_id: str
    to_status: TaskStatus
    index: int


@dataclass(frozen=True)
class TaskToggleComplete:
    task_id: str


@dataclass(frozen=True)
class TaskUpdated:
    task: Task


@dataclass(frozen=True)
class TaskDeleted:
    task_id: str


@dataclass(frozen=True)
class TimerStarted:
    task_id: str


@dataclass(frozen=True)
class TimerPaused:
    task_id: str


@dataclass(frozen=True)
class TimerResumed:
    task_id: str


@dataclass(frozen=True)
class TimerStopped:
    task_id: str


@dataclass(frozen=True)
class FilterChanged:
    filter: TaskFilter


@dataclass(frozen=True)
class AssigneeFilterToggled:
    # None clears the facet
    assignee: Optional[str]


@dataclass(frozen=True)
class TagFilterChanged:
    tags: FrozenSet[str]


@dataclass(frozen=True)
class PriorityFilterToggled:
    priority: Optional[TaskPriority]


@dataclass(frozen=True)
class StatusFilterToggled:
    status: Optional[TaskStatus]


@dataclass(frozen=True)
class SearchQueryChanged:
    query: str


@dataclass(frozen=True)
class OverdueOnlyChanged:
    enabled: bool


@dataclass(frozen=True)
class SortChanged:
    sort: TaskSortOption


@dataclass(frozen=True)
class ColumnCollapsed:
    status: TaskStatus
    collapsed: bool


@dataclass(frozen=True)
class ViewModeChanged:
    mode: TaskViewMode


@dataclass(frozen=True)
class ModalClosed:
    pass


@dataclass(frozen=True)
class RefreshRequested:
    pass


# ----- store feedback -----


@dataclass(frozen=True)
class TasksLoaded:
    tasks: Tuple[Task, ...]


@dataclass(frozen=True)
class TasksSaved:
    action: str
    tasks: Tuple[Task, ...]


@dataclass(frozen=True)
class TaskRemoved:
    task_id: str


@dataclass(frozen=True)
class PersistenceFailed:
    action: str
    message: str


UserEvent = Union[
    TaskClicked,
    TaskCreated,
    TaskMoved,
    TaskToggleComplete,
    TaskUpdated,
    TaskDeleted,
    TimerStarted,
    TimerPaused,
    TimerResumed,
    TimerStopped,
    FilterChanged,
    AssigneeFilterToggled,
    TagFilterChanged,
    PriorityFilterToggled,
    StatusFilterToggled,
    SearchQueryChanged,
    OverdueOnlyChanged,
    SortChanged,
    ColumnCollapsed,
    ViewModeChanged,
    ModalClosed,
    RefreshRequested,
]

FeedbackEvent = Union[TasksLoaded, TasksSaved, TaskRemoved, PersistenceFailed]

BoardEvent = Union[UserEvent, FeedbackEvent]


# ----- commands (to the store) -----


@dataclass(frozen=True)
class CreateTask:
    task: Task
    action: str = "create task"


@dataclass(frozen=True)
class UpdateTasks:
    """All tasks are committed as one atomic update."""
    tasks: Tuple[Task, ...]
    action: str = "update task"


@dataclass(frozen=True)
class DeleteTask:
    task_id: str
    action: str = "delete task"


@dataclass(frozen=True)
class ReloadTasks:
    action: str = "load tasks"


Command = Union[CreateTask, UpdateTasks, DeleteTask, ReloadTasks]


# ----- effects (to the presentation layer) -----


@dataclass(frozen=True)
class ShowError:
    message: str


@dataclass(frozen=True)
class ShowSnackbar:
    message: str


@dataclass(frozen=True)
class WipLimitExceeded:
    warning: WipWarning


Effect = Union[ShowError, ShowSnackbar, WipLimitExceeded]
