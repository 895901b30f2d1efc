from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from taskboard.domain.board import rules as board_rules
from taskboard.domain.board.models import Board, BoardColumn, Column, WipWarning
from taskboard.domain.tasks import filters
from taskboard.domain.tasks.filters import TaskFilter, TaskSortOption
from taskboard.domain.tasks.models import Task


class TaskViewMode(Enum):
    KANBAN = "KANBAN"
    LIST = "LIST"
    CALENDAR = "CALENDAR"
    TIMELINE = "TIMELINE"


@dataclass(frozen=True)
class BoardUiState:
    """Everything the reducer works on. Replaced, never mutated."""
    columns: Tuple[Column, ...]
    tasks: Tuple[Task, ...] = ()
    filter: TaskFilter = TaskFilter()
    sort: TaskSortOption = TaskSortOption.PRIORITY
    view_mode: TaskViewMode = TaskViewMode.KANBAN
    selected_task_id: Optional[str] = None
    is_modal_open: bool = False
    is_loading: bool = True

    @classmethod
    def initial(cls, columns: Optional[Tuple[Column, ...]] = None) -> "BoardUiState":
        return cls(columns=columns if columns is not None else board_rules.default_columns())

    @property
    def selected_task(self) -> Optional[Task]:
        if self.selected_task_id is None:
            return None
        return next((t for t in self.tasks if t.id == self.selected_task_id), None)

    def to_board(self) -> Board:
        return Board(columns=self.columns, tasks=self.tasks)


@dataclass(frozen=True)
class BoardSnapshot:
    """Immutable render model for the presentation layer."""
    columns: Tuple[BoardColumn, ...]
    visible_tasks: Tuple[Task, ...]
    filter: TaskFilter
    sort: TaskSortOption
    view_mode: TaskViewMode
    selected_task: Optional[Task]
    is_modal_open: bool
    is_loading: bool
    wip_warnings: Tuple[WipWarning, ...]


def snapshot(state: BoardUiState, now: datetime) -> BoardSnapshot:
    """
    Derive the render model. Columns come from the flat task list (grouped
    by status, ascending order) and then go through the active filter and
    sort; visible_tasks is the same view flattened for list-like modes.
    """
    views = []
    for view in board_rules.columns_from_tasks(state.tasks, state.columns):
        shown = filters.apply(view.tasks, state.filter, state.sort, now)
        views.append(BoardColumn(column=view.column, tasks=tuple(shown)))

    ordered = [t for view in board_rules.columns_from_tasks(state.tasks, state.columns) for t in view.tasks]
    visible = filters.apply(ordered, state.filter, state.sort, now)

    warnings = []
    for col in state.columns:
        warning = board_rules.wip_warning(state.tasks, state.columns, col.status)
        if warning is not None:
            warnings.append(warning)

    return BoardSnapshot(
        columns=tuple(views),
        visible_tasks=tuple(visible),
        filter=state.filter,
        sort=state.sort,
        view_mode=state.view_mode,
        selected_task=state.selected_task,
        is_modal_open=state.is_modal_open,
        is_loading=state.is_loading,
        wip_warnings=tuple(warnings),
    )
