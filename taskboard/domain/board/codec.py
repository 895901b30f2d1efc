"""
Board State Codec: versioned snapshot of columns + tasks.

Instants and durations are integer milliseconds. `decode` is fail-soft: any
snapshot it cannot read yields an empty board instead of an exception, so a
corrupted file never keeps the workspace from opening.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from taskboard.domain.board.models import Board, Column
from taskboard.domain.common.errors import DecodeError
from taskboard.domain.common.time import (
    duration_from_millis,
    duration_to_millis,
    from_millis,
    to_millis,
)
from taskboard.domain.tasks.models import (
    Subtask,
    TagColor,
    Task,
    TaskPriority,
    TaskStatus,
    TaskTag,
    TaskTimer,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

T = TypeVar("T")


# ----- encode -----


def column_to_entry(column: Column) -> Dict[str, Any]:
    return {
        "id": column.id,
        "title": column.title,
        "status": column.status.name,
        "order": column.order,
        "isCollapsed": column.is_collapsed,
        "wipLimit": column.wip_limit,
    }


def _ms(value) -> Optional[int]:
    return to_millis(value) if value is not None else None


def task_to_entry(task: Task) -> Dict[str, Any]:
    timer = task.timer
    entry: Dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.name,
        "priority": task.priority.name,
        "tags": [{"label": t.label, "color": t.color.name} for t in task.tags],
        "points": task.points,
        "assignee": task.assignee,
        "dueDate": _ms(task.due_date),
        "startDate": _ms(task.start_date),
        "estimatedHours": task.estimated_hours,
        "actualHours": task.actual_hours,
        "subtasks": [
            {"id": s.id, "title": s.title, "isCompleted": s.is_completed, "order": s.order}
            for s in task.subtasks
        ],
        "linkedNoteIds": list(task.linked_note_ids),
        "timerStartedAt": _ms(timer.started_at) if timer else None,
        "timerPausedDuration": duration_to_millis(timer.paused_duration) if timer else None,
        "timerIsPaused": timer.is_paused if timer else False,
        "isActive": task.is_active,
        "completed": task.completed,
        "createdAt": to_millis(task.created_at),
        "updatedAt": to_millis(task.updated_at),
        "completedAt": _ms(task.completed_at),
        "order": task.order,
    }
    if timer is not None and timer.frozen_elapsed is not None:
        entry["timerFrozenElapsed"] = duration_to_millis(timer.frozen_elapsed)
    return entry


def encode(board: Board) -> Dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "columns": [column_to_entry(c) for c in board.columns],
        "tasks": [task_to_entry(t) for t in board.tasks],
    }


def encode_json(board: Board) -> str:
    return json.dumps(encode(board), ensure_ascii=False)


# ----- decode -----


def _is_type(value: Any, kind: Type) -> bool:
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, kind)


def _required(entry: Mapping[str, Any], key: str, kind: Type[T]) -> T:
    if key not in entry or entry[key] is None:
        raise DecodeError(f"missing field '{key}'")
    value = entry[key]
    if not _is_type(value, kind):
        raise DecodeError(f"field '{key}' has wrong type {type(value).__name__}")
    return float(value) if kind is float else value


def _optional(entry: Mapping[str, Any], key: str, kind: Type[T], default: Any = None) -> Any:
    value = entry.get(key)
    if value is None:
        return default
    if not _is_type(value, kind):
        raise DecodeError(f"field '{key}' has wrong type {type(value).__name__}")
    return float(value) if kind is float else value


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DecodeError(f"{what} must be an object")
    return value


def _list(entry: Mapping[str, Any], key: str) -> List[Any]:
    return list(_optional(entry, key, list, []))


def entry_to_column(raw: Any) -> Column:
    entry = _mapping(raw, "column")
    wip_limit = _optional(entry, "wipLimit", int)
    return Column(
        id=_required(entry, "id", str),
        title=_required(entry, "title", str),
        status=TaskStatus.from_name(_required(entry, "status", str)),
        order=_required(entry, "order", int),
        is_collapsed=_optional(entry, "isCollapsed", bool, False),
        wip_limit=wip_limit,
    )


def _instant(entry: Mapping[str, Any], key: str):
    ms = _optional(entry, key, int)
    return from_millis(ms) if ms is not None else None


def _timer(entry: Mapping[str, Any], updated_at) -> Optional[TaskTimer]:
    started_ms = _optional(entry, "timerStartedAt", int)
    if started_ms is None:
        return None
    started_at = from_millis(started_ms)
    paused = duration_from_millis(_optional(entry, "timerPausedDuration", int, 0))
    is_paused = _optional(entry, "timerIsPaused", bool, False)
    frozen_ms = _optional(entry, "timerFrozenElapsed", int)
    frozen = duration_from_millis(frozen_ms) if frozen_ms is not None else None
    if is_paused and frozen is None:
        # snapshots without the frozen value freeze at the last update
        frozen = max(duration_from_millis(0), updated_at - started_at - paused)
    return TaskTimer(started_at=started_at, paused_duration=paused, is_paused=is_paused, frozen_elapsed=frozen)


def entry_to_task(raw: Any) -> Task:
    entry = _mapping(raw, "task")
    tags = []
    for t in _list(entry, "tags"):
        tag = _mapping(t, "tag")
        tags.append(TaskTag(label=_required(tag, "label", str), color=TagColor.from_name(_optional(tag, "color", str, ""))))
    subtasks = []
    for s in _list(entry, "subtasks"):
        sub = _mapping(s, "subtask")
        subtasks.append(
            Subtask(
                id=_required(sub, "id", str),
                title=_required(sub, "title", str),
                is_completed=_optional(sub, "isCompleted", bool, False),
                order=_optional(sub, "order", int, 0),
            )
        )
    note_ids = _list(entry, "linkedNoteIds")
    if not all(isinstance(n, str) for n in note_ids):
        raise DecodeError("linkedNoteIds must be strings")

    updated_at = from_millis(_required(entry, "updatedAt", int))
    return Task(
        id=_required(entry, "id", str),
        title=_required(entry, "title", str),
        description=_optional(entry, "description", str, ""),
        status=TaskStatus.from_name(_required(entry, "status", str)),
        priority=TaskPriority.from_name(_required(entry, "priority", str)),
        tags=tuple(tags),
        points=_optional(entry, "points", int),
        assignee=_optional(entry, "assignee", str),
        due_date=_instant(entry, "dueDate"),
        start_date=_instant(entry, "startDate"),
        estimated_hours=_optional(entry, "estimatedHours", float),
        actual_hours=_optional(entry, "actualHours", float),
        subtasks=tuple(subtasks),
        linked_note_ids=tuple(note_ids),
        timer=_timer(entry, updated_at),
        is_active=_optional(entry, "isActive", bool, False),
        completed=_optional(entry, "completed", bool, False),
        created_at=from_millis(_required(entry, "createdAt", int)),
        updated_at=updated_at,
        completed_at=_instant(entry, "completedAt"),
        order=_optional(entry, "order", int, 0),
    )


def decode_strict(snapshot: Union[str, bytes, Mapping[str, Any]]) -> Board:
    """Like decode() but raises DecodeError instead of returning an empty board."""
    if isinstance(snapshot, (str, bytes, bytearray)):
        try:
            snapshot = json.loads(snapshot)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"not valid JSON: {e}") from e
    doc = _mapping(snapshot, "snapshot")
    columns = tuple(entry_to_column(c) for c in _list(doc, "columns"))
    tasks = tuple(entry_to_task(t) for t in _list(doc, "tasks"))
    return Board(columns=columns, tasks=tasks)


def decode(snapshot: Any) -> Board:
    try:
        return decode_strict(snapshot)
    except (DecodeError, TypeError, ValueError, OverflowError, RecursionError) as e:
        logger.warning("Board snapshot could not be decoded, starting empty: %s", e)
        return Board()
