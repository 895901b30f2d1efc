from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from taskboard.domain.common.errors import ValidationError
from taskboard.domain.tasks.models import Task


class FocusPhase(Enum):
    WORK = "WORK"
    SHORT_BREAK = "SHORT_BREAK"
    LONG_BREAK = "LONG_BREAK"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class FocusTimerSettings:
    work_duration: timedelta = timedelta(minutes=25)
    break_duration: timedelta = timedelta(minutes=5)
    long_break_duration: timedelta = timedelta(minutes=15)
    sessions_until_long_break: int = 4
    auto_start_break: bool = True
    auto_start_work: bool = False

    def __post_init__(self) -> None:
        for name in ("work_duration", "break_duration", "long_break_duration"):
            if getattr(self, name) < timedelta(0):
                raise ValidationError(f"{name} cannot be negative.")
        if self.sessions_until_long_break < 1:
            raise ValidationError("sessions_until_long_break must be at least 1.")


@dataclass(frozen=True)
class FocusModeState:
    """
    One focus session on one task.

    time_remaining is the countdown value as of running_since; while the
    countdown runs, the remaining time at instant t is
    time_remaining - (t - running_since). running_since is None whenever the
    countdown is frozen (paused, waiting for a transition acknowledgement,
    or completed).
    """
    task: Task
    phase: FocusPhase
    time_remaining: timedelta
    sessions_completed: int
    started_at: datetime
    settings: FocusTimerSettings = FocusTimerSettings()
    is_paused: bool = False
    show_transition: bool = False
    running_since: Optional[datetime] = None


@dataclass(frozen=True)
class FocusSessionRecord:
    """Statistics entry; the only focus state that is ever persisted."""
    task_id: str
    start_time: datetime
    duration: timedelta
    completed: bool
    sessions_completed: int = 0
