from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple


class TaskStatus(Enum):
    """Board statuses, in column order."""
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def from_name(cls, value: str) -> "TaskStatus":
        try:
            return cls[value]
        except KeyError:
            return cls.TODO


STATUS_LABELS = {
    TaskStatus.BACKLOG: "Backlog",
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.IN_REVIEW: "In Review",
    TaskStatus.DONE: "Done",
}


class TaskPriority(Enum):
    """
    Priority levels. Each level is bound to one display color; the binding
    is fixed at definition time and is a bijection.
    """
    NONE = ("gray", 0xFF9E9E9E, 3)
    LOW = ("blue", 0xFF3B82F6, 2)
    MEDIUM = ("yellow", 0xFFFACC15, 1)
    HIGH = ("red", 0xFFEF4444, 0)

    def __init__(self, color_name: str, color: int, rank: int) -> None:
        self.color_name = color_name
        self.color = color
        # 0 sorts first
        self.rank = rank

    @classmethod
    def from_name(cls, value: str) -> "TaskPriority":
        try:
            return cls[value]
        except KeyError:
            return cls.MEDIUM


class TagColor(Enum):
    BLUE = "BLUE"
    GREEN = "GREEN"
    ORANGE = "ORANGE"
    PURPLE = "PURPLE"
    RED = "RED"
    YELLOW = "YELLOW"
    GRAY = "GRAY"

    @classmethod
    def from_name(cls, value: str) -> "TagColor":
        try:
            return cls[value]
        except KeyError:
            return cls.GRAY


@dataclass(frozen=True)
class TaskTag:
    label: str
    color: TagColor = TagColor.GRAY


@dataclass(frozen=True)
class Subtask:
    id: str
    title: str
    is_completed: bool = False
    order: int = 0


@dataclass(frozen=True)
class TaskTimer:
    started_at: datetime
    paused_duration: timedelta = timedelta(0)
    is_paused: bool = False
    # elapsed value captured by pause(); None while running
    frozen_elapsed: Optional[timedelta] = None


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: Tuple[TaskTag, ...] = ()
    points: Optional[int] = None
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    subtasks: Tuple[Subtask, ...] = ()
    linked_note_ids: Tuple[str, ...] = ()
    timer: Optional[TaskTimer] = None
    is_active: bool = False
    completed: bool = False
    completed_at: Optional[datetime] = None
    order: int = 0

    @property
    def has_active_timer(self) -> bool:
        return self.timer is not None

    @property
    def tag_labels(self) -> Tuple[str, ...]:
        return tuple(t.label for t in self.tags)

    @property
    def subtask_progress(self) -> Tuple[int, int]:
        done = sum(1 for s in self.subtasks if s.is_completed)
        return done, len(self.subtasks)

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date is not None and self.due_date < now and not self.completed


@dataclass(frozen=True)
class NewTask:
    """Fields a user supplies when creating a task; the rest get defaults."""
    title: str = "New Task"
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: Tuple[TaskTag, ...] = ()
    points: Optional[int] = None
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    subtasks: Tuple[Subtask, ...] = ()
    linked_note_ids: Tuple[str, ...] = ()
