"""
Pure reducer: (state, event, context) -> transition.

No I/O happens here. Store writes leave as commands; the driver runs them
and feeds the outcome back as TasksSaved / TaskRemoved / PersistenceFailed.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Tuple

from taskboard.domain.board import rules as board_rules
from taskboard.domain.common.errors import DomainError
from taskboard.domain.tasks import rules as task_rules
from taskboard.domain.tasks import timer
from taskboard.domain.tasks.models import NewTask, Task
from taskboard.engine import events as ev
from taskboard.engine.state import BoardUiState


@dataclass(frozen=True)
class ReduceContext:
    now: datetime
    new_id: Callable[[], str]


@dataclass(frozen=True)
class Transition:
    state: BoardUiState
    commands: Tuple[ev.Command, ...] = ()
    effects: Tuple[ev.Effect, ...] = ()


def _failed(state: BoardUiState, action: str, error: DomainError) -> Transition:
    return Transition(state, effects=(ev.ShowError(f"Failed to {action}: {error}"),))


def _save(state: BoardUiState, action: str, *tasks: Task) -> Transition:
    return Transition(state, commands=(ev.UpdateTasks(tasks=tuple(tasks), action=action),))


def _timer_event(state: BoardUiState, task_id: str, action: str, fn) -> Transition:
    try:
        task = task_rules.find_task(state.tasks, task_id)
    except DomainError as e:
        return _failed(state, action, e)
    updated = fn(task)
    if updated is task:
        return Transition(state)
    return _save(state, action, updated)


def reduce(state: BoardUiState, event: ev.BoardEvent, ctx: ReduceContext) -> Transition:
    now = ctx.now

    # ----- task interaction -----
    if isinstance(event, ev.TaskClicked):
        return Transition(replace(state, selected_task_id=event.task_id, is_modal_open=True))

    if isinstance(event, ev.TaskCreated):
        try:
            task = task_rules.create_task(state.tasks, NewTask(title=event.title, status=event.status), ctx.new_id(), now)
        except DomainError as e:
            return _failed(state, "create task", e)
        return Transition(state, commands=(ev.CreateTask(task),))

    if isinstance(event, ev.TaskMoved):
        try:
            _, changed = task_rules.move_task(state.tasks, event.task_id, event.to_status, event.index, now)
        except DomainError as e:
            return _failed(state, "move task", e)
        effects: List[ev.Effect] = []
        after = task_rules.apply_changes(state.tasks, changed)
        warning = board_rules.wip_warning(after, state.columns, event.to_status)
        if warning is not None:
            effects.append(ev.WipLimitExceeded(warning))
        commands = (ev.UpdateTasks(tasks=tuple(changed), action="move task"),) if changed else ()
        return Transition(state, commands=commands, effects=tuple(effects))

    if isinstance(event, ev.TaskToggleComplete):
        try:
            toggled = task_rules.toggle_completion(state.tasks, event.task_id, now)
        except DomainError as e:
            return _failed(state, "update task", e)
        return _save(state, "update task", toggled)

    if isinstance(event, ev.TaskUpdated):
        try:
            updated = task_rules.update_task(state.tasks, event.task, now)
        except DomainError as e:
            return _failed(state, "update task", e)
        return _save(state, "update task", updated)

    if isinstance(event, ev.TaskDeleted):
        try:
            task_rules.find_task(state.tasks, event.task_id)
        except DomainError as e:
            return _failed(state, "delete task", e)
        return Transition(state, commands=(ev.DeleteTask(event.task_id),))

    # ----- timers -----
    if isinstance(event, ev.TimerStarted):
        return _timer_event(state, event.task_id, "start timer", lambda t: timer.start_task_timer(t, now))

    if isinstance(event, ev.TimerPaused):
        return _timer_event(state, event.task_id, "pause timer", lambda t: timer.pause_task_timer(t, now))

    if isinstance(event, ev.TimerResumed):
        return _timer_event(state, event.task_id, "resume timer", lambda t: timer.resume_task_timer(t, now))

    if isinstance(event, ev.TimerStopped):
        return _timer_event(state, event.task_id, "stop timer", lambda t: timer.stop_task_timer(t, now))

    # ----- filter / sort / view -----
    if isinstance(event, ev.FilterChanged):
        return Transition(replace(state, filter=event.filter))

    if isinstance(event, ev.AssigneeFilterToggled):
        return Transition(replace(state, filter=state.filter.toggle_assignee(event.assignee)))

    if isinstance(event, ev.TagFilterChanged):
        return Transition(replace(state, filter=replace(state.filter, tags=frozenset(event.tags))))

    if isinstance(event, ev.PriorityFilterToggled):
        return Transition(replace(state, filter=state.filter.toggle_priority(event.priority)))

    if isinstance(event, ev.StatusFilterToggled):
        return Transition(replace(state, filter=state.filter.toggle_status(event.status)))

    if isinstance(event, ev.SearchQueryChanged):
        return Transition(replace(state, filter=replace(state.filter, search_query=event.query)))

    if isinstance(event, ev.OverdueOnlyChanged):
        return Transition(replace(state, filter=replace(state.filter, show_overdue_only=event.enabled)))

    if isinstance(event, ev.SortChanged):
        return Transition(replace(state, sort=event.sort))

    if isinstance(event, ev.ViewModeChanged):
        return Transition(replace(state, view_mode=event.mode))

    if isinstance(event, ev.ColumnCollapsed):
        try:
            columns = board_rules.set_collapsed(state.columns, event.status, event.collapsed)
        except DomainError as e:
            return _failed(state, "collapse column", e)
        return Transition(replace(state, columns=columns))

    if isinstance(event, ev.ModalClosed):
        return Transition(replace(state, selected_task_id=None, is_modal_open=False))

    if isinstance(event, ev.RefreshRequested):
        return Transition(replace(state, is_loading=True), commands=(ev.ReloadTasks(),))

    # ----- store feedback -----
    if isinstance(event, ev.TasksLoaded):
        return Transition(replace(state, tasks=tuple(event.tasks), is_loading=False))

    if isinstance(event, ev.TasksSaved):
        state = replace(state, tasks=tuple(task_rules.apply_changes(state.tasks, event.tasks)))
        if event.action == "create task" and event.tasks:
            state = replace(state, selected_task_id=event.tasks[0].id, is_modal_open=True)
            return Transition(state, effects=(ev.ShowSnackbar("Task created"),))
        return Transition(state)

    if isinstance(event, ev.TaskRemoved):
        tasks = tuple(t for t in state.tasks if t.id != event.task_id)
        state = replace(state, tasks=tasks)
        if state.selected_task_id == event.task_id:
            state = replace(state, selected_task_id=None, is_modal_open=False)
        return Transition(state, effects=(ev.ShowSnackbar("Task deleted"),))

    if isinstance(event, ev.PersistenceFailed):
        if event.action == "load tasks":
            state = replace(state, is_loading=False)
        return Transition(state, effects=(ev.ShowError(f"Failed to {event.action}: {event.message}"),))

    raise TypeError(f"Unhandled event type: {type(event).__name__}")
