"""
Pomodoro-style phase machine.

WORK runs out -> SHORT_BREAK or LONG_BREAK (long when the completed-session
count is a positive multiple of sessions_until_long_break); a break runs out
-> WORK. completeTask ends the session in COMPLETED from any phase.
Nothing ticks in here: `tick` is called by whoever owns the clock.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from taskboard.domain.common.errors import NotFoundError
from taskboard.domain.common.time import truncate_ms
from taskboard.domain.focus.models import (
    FocusModeState,
    FocusPhase,
    FocusSessionRecord,
    FocusTimerSettings,
)
from taskboard.domain.tasks.models import Task

TIME_STEP = timedelta(minutes=5)
_ZERO = timedelta(0)


def phase_duration(settings: FocusTimerSettings, phase: FocusPhase) -> timedelta:
    if phase is FocusPhase.WORK:
        return settings.work_duration
    if phase is FocusPhase.SHORT_BREAK:
        return settings.break_duration
    if phase is FocusPhase.LONG_BREAK:
        return settings.long_break_duration
    return _ZERO


def is_long_break_time(sessions_completed: int, settings: FocusTimerSettings) -> bool:
    return sessions_completed > 0 and sessions_completed % settings.sessions_until_long_break == 0


def start_session(task: Task, settings: FocusTimerSettings, now: datetime) -> FocusModeState:
    now = truncate_ms(now)
    return FocusModeState(
        task=task,
        phase=FocusPhase.WORK,
        time_remaining=settings.work_duration,
        sessions_completed=0,
        started_at=now,
        settings=settings,
        running_since=now,
    )


def is_running(state: FocusModeState) -> bool:
    return state.running_since is not None


def remaining(state: FocusModeState, now: datetime) -> timedelta:
    if state.running_since is None:
        return max(_ZERO, state.time_remaining)
    spent = max(_ZERO, now - state.running_since)
    return max(_ZERO, state.time_remaining - spent)


def _freeze(state: FocusModeState, now: datetime) -> FocusModeState:
    """Fold the time spent since running_since into time_remaining."""
    if state.running_since is None:
        return state
    return replace(state, time_remaining=remaining(state, now), running_since=now)


def _enter_phase(state: FocusModeState, phase: FocusPhase, at: datetime, auto_start: bool) -> FocusModeState:
    start_now = auto_start and not state.is_paused
    return replace(
        state,
        phase=phase,
        time_remaining=phase_duration(state.settings, phase),
        show_transition=not auto_start,
        running_since=at if start_now else None,
    )


def tick(state: FocusModeState, now: datetime) -> FocusModeState:
    """
    Advance the countdown to `now`. At most one phase transition happens per
    call; an auto-started phase begins at the instant the previous one hit
    zero.
    """
    if state.phase is FocusPhase.COMPLETED or state.running_since is None:
        return state
    now = truncate_ms(now)
    if remaining(state, now) > _ZERO:
        return _freeze(state, now)

    boundary = state.running_since + max(_ZERO, state.time_remaining)
    if state.phase is FocusPhase.WORK:
        sessions = state.sessions_completed + 1
        state = replace(state, sessions_completed=sessions)
        next_phase = FocusPhase.LONG_BREAK if is_long_break_time(sessions, state.settings) else FocusPhase.SHORT_BREAK
        return _enter_phase(state, next_phase, boundary, state.settings.auto_start_break)
    return _enter_phase(state, FocusPhase.WORK, boundary, state.settings.auto_start_work)


def pause(state: FocusModeState, now: datetime) -> FocusModeState:
    if state.is_paused or state.phase is FocusPhase.COMPLETED:
        return state
    state = _freeze(state, truncate_ms(now))
    return replace(state, is_paused=True, running_since=None)


def resume(state: FocusModeState, now: datetime) -> FocusModeState:
    if not state.is_paused:
        return state
    waiting = state.show_transition or state.phase is FocusPhase.COMPLETED
    return replace(state, is_paused=False, running_since=None if waiting else truncate_ms(now))


def dismiss_transition(state: FocusModeState, now: datetime) -> FocusModeState:
    """Acknowledge a pending phase change and start its countdown."""
    if not state.show_transition:
        return state
    return replace(
        state,
        show_transition=False,
        running_since=None if state.is_paused else truncate_ms(now),
    )


def add_time(state: FocusModeState, now: datetime, delta: timedelta = TIME_STEP) -> FocusModeState:
    if state.phase is FocusPhase.COMPLETED:
        return state
    state = _freeze(state, truncate_ms(now))
    return replace(state, time_remaining=max(_ZERO, state.time_remaining + delta))


def subtract_time(state: FocusModeState, now: datetime, delta: timedelta = TIME_STEP) -> FocusModeState:
    return add_time(state, now, -delta)


def reset_timer(state: FocusModeState, now: datetime) -> FocusModeState:
    if state.phase is FocusPhase.COMPLETED:
        return state
    state = _freeze(state, truncate_ms(now))
    return replace(state, time_remaining=phase_duration(state.settings, state.phase))


def start_break_manually(state: FocusModeState, now: datetime) -> FocusModeState:
    """
    Leave WORK for a break right away. The completed-session count is not
    touched; the break is long iff the current count already calls for one.
    """
    if state.phase is not FocusPhase.WORK:
        return state
    now = truncate_ms(now)
    long_break = is_long_break_time(state.sessions_completed, state.settings)
    next_phase = FocusPhase.LONG_BREAK if long_break else FocusPhase.SHORT_BREAK
    state = replace(state, is_paused=False, show_transition=False)
    return _enter_phase(state, next_phase, now, auto_start=True)


def update_settings(state: FocusModeState, settings: FocusTimerSettings, now: datetime) -> FocusModeState:
    """Swap settings; an untouched countdown picks up the new phase length."""
    state = _freeze(state, truncate_ms(now))
    untouched = state.time_remaining == phase_duration(state.settings, state.phase)
    state = replace(state, settings=settings)
    if untouched or state.show_transition:
        state = replace(state, time_remaining=phase_duration(settings, state.phase))
    return state


def toggle_subtask(state: FocusModeState, subtask_id: str, now: datetime) -> FocusModeState:
    task = state.task
    if not any(s.id == subtask_id for s in task.subtasks):
        raise NotFoundError(f"Subtask {subtask_id} not found.")
    subtasks = tuple(
        replace(s, is_completed=not s.is_completed) if s.id == subtask_id else s
        for s in task.subtasks
    )
    return replace(state, task=replace(task, subtasks=subtasks, updated_at=truncate_ms(now)))


def complete_task(state: FocusModeState, now: datetime) -> FocusModeState:
    now = truncate_ms(now)
    state = _freeze(state, now)
    task = state.task
    if task.completed:
        task = replace(task, timer=None, updated_at=now)
    else:
        task = replace(task, completed=True, completed_at=now, timer=None, updated_at=now)
    return replace(
        state,
        task=task,
        phase=FocusPhase.COMPLETED,
        is_paused=False,
        show_transition=False,
        running_since=None,
    )


def progress(state: FocusModeState, now: Optional[datetime] = None) -> float:
    total = phase_duration(state.settings, state.phase)
    if total <= _ZERO:
        return 1.0
    left = remaining(state, now) if now is not None else state.time_remaining
    value = (total - left) / total
    return min(1.0, max(0.0, value))


def formatted_time(state: FocusModeState, now: datetime) -> str:
    """Remaining time as MM:SS (minutes keep growing past 59)."""
    total = int(remaining(state, now).total_seconds())
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


def to_record(state: FocusModeState, now: datetime, completed: bool) -> FocusSessionRecord:
    return FocusSessionRecord(
        task_id=state.task.id,
        start_time=state.started_at,
        duration=max(_ZERO, truncate_ms(now) - state.started_at),
        completed=completed,
        sessions_completed=state.sessions_completed,
    )
