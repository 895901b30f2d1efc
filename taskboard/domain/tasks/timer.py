"""
Per-task focus timer.

Elapsed time is computed from the stored fields and a query instant; nothing
ticks. Pausing freezes the current elapsed value, resuming re-baselines
started_at so that elapsed continues exactly where it stopped.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from taskboard.domain.common.time import truncate_ms
from taskboard.domain.tasks.models import Task, TaskTimer

MAX_DISPLAY_HOURS = 99
_ZERO = timedelta(0)


def start(now: datetime) -> TaskTimer:
    return TaskTimer(started_at=truncate_ms(now), paused_duration=_ZERO, is_paused=False)


def _running_elapsed(timer: TaskTimer, now: datetime) -> timedelta:
    since_start = now - timer.started_at
    if since_start <= _ZERO:
        return _ZERO
    value = since_start - timer.paused_duration
    return max(_ZERO, min(value, since_start))


def elapsed(timer: TaskTimer, now: datetime) -> timedelta:
    if timer.is_paused:
        frozen = timer.frozen_elapsed if timer.frozen_elapsed is not None else _ZERO
        return max(_ZERO, frozen)
    return _running_elapsed(timer, now)


def pause(timer: TaskTimer, now: datetime) -> TaskTimer:
    if timer.is_paused:
        return timer
    now = truncate_ms(now)
    return replace(timer, is_paused=True, frozen_elapsed=_running_elapsed(timer, now))


def resume(timer: TaskTimer, now: datetime) -> TaskTimer:
    if not timer.is_paused:
        return timer
    now = truncate_ms(now)
    frozen = elapsed(timer, now)
    return TaskTimer(started_at=now - frozen, paused_duration=_ZERO, is_paused=False, frozen_elapsed=None)


def formatted_time(timer: TaskTimer, now: datetime) -> str:
    """Elapsed as HH:MM:SS; the display saturates at 99:59:59."""
    total = int(elapsed(timer, now).total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > MAX_DISPLAY_HOURS:
        hours, minutes, seconds = MAX_DISPLAY_HOURS, 59, 59
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


# ----- task-level helpers -----


def start_task_timer(task: Task, now: datetime) -> Task:
    return replace(task, timer=start(now), updated_at=truncate_ms(now))


def pause_task_timer(task: Task, now: datetime) -> Task:
    if task.timer is None:
        return task
    return replace(task, timer=pause(task.timer, now), updated_at=truncate_ms(now))


def resume_task_timer(task: Task, now: datetime) -> Task:
    if task.timer is None:
        return task
    return replace(task, timer=resume(task.timer, now), updated_at=truncate_ms(now))


def stop_task_timer(task: Task, now: datetime) -> Task:
    return replace(task, timer=None, updated_at=truncate_ms(now))


def task_elapsed(task: Task, now: datetime) -> Optional[timedelta]:
    return elapsed(task.timer, now) if task.timer is not None else None
