from __future__ import annotations

import logging
from typing import Optional, Sequence

from taskboard.domain.common.errors import ConflictError, NotFoundError
from taskboard.domain.focus import rules
from taskboard.domain.focus.models import (
    FocusModeState,
    FocusPhase,
    FocusSessionRecord,
    FocusTimerSettings,
)
from taskboard.domain.focus.ports import FocusSessionRepository
from taskboard.domain.tasks.models import Task
from taskboard.domain.tasks.ports import Clock, TaskStore

logger = logging.getLogger(__name__)


class FocusService:
    """
    Focus mode for one task at a time. No sqlite, no UI.

    The session itself lives only in memory; the task store sees subtask
    toggles and task completion, the session repository sees a record only
    when one is explicitly kept.
    """

    def __init__(
        self,
        store: TaskStore,
        sessions: FocusSessionRepository,
        clock: Clock,
        default_settings: Optional[FocusTimerSettings] = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._clock = clock
        self._default_settings = default_settings or FocusTimerSettings()
        self._state: Optional[FocusModeState] = None

    @property
    def state(self) -> Optional[FocusModeState]:
        return self._state

    def _require_state(self) -> FocusModeState:
        if self._state is None:
            raise NotFoundError("No focus session is running.")
        return self._state

    def start(self, task: Task, settings: Optional[FocusTimerSettings] = None) -> FocusModeState:
        if self._state is not None and self._state.phase is not FocusPhase.COMPLETED:
            raise ConflictError("A focus session is already running.")
        self._state = rules.start_session(task, settings or self._default_settings, self._clock.now())
        logger.info("Focus session started for task %s", task.id)
        return self._state

    def tick(self) -> FocusModeState:
        before = self._require_state()
        self._state = rules.tick(before, self._clock.now())
        if self._state.phase is not before.phase:
            logger.info(
                "Focus phase %s -> %s (sessions completed: %d)",
                before.phase.name,
                self._state.phase.name,
                self._state.sessions_completed,
            )
        return self._state

    def pause(self) -> FocusModeState:
        self._state = rules.pause(self._require_state(), self._clock.now())
        return self._state

    def resume(self) -> FocusModeState:
        self._state = rules.resume(self._require_state(), self._clock.now())
        return self._state

    def add_time(self) -> FocusModeState:
        self._state = rules.add_time(self._require_state(), self._clock.now())
        return self._state

    def subtract_time(self) -> FocusModeState:
        self._state = rules.subtract_time(self._require_state(), self._clock.now())
        return self._state

    def reset_timer(self) -> FocusModeState:
        self._state = rules.reset_timer(self._require_state(), self._clock.now())
        return self._state

    def start_break_manually(self) -> FocusModeState:
        self._state = rules.start_break_manually(self._require_state(), self._clock.now())
        return self._state

    def dismiss_transition(self) -> FocusModeState:
        self._state = rules.dismiss_transition(self._require_state(), self._clock.now())
        return self._state

    def update_settings(self, settings: FocusTimerSettings) -> FocusModeState:
        self._state = rules.update_settings(self._require_state(), settings, self._clock.now())
        return self._state

    async def toggle_subtask(self, subtask_id: str) -> FocusModeState:
        state = rules.toggle_subtask(self._require_state(), subtask_id, self._clock.now())
        await self._store.update(state.task)
        self._state = state
        return state

    async def complete_task(self) -> FocusModeState:
        current = self._require_state()
        if current.phase is FocusPhase.COMPLETED:
            return current
        now = self._clock.now()
        state = rules.complete_task(current, now)
        await self._store.update(state.task)
        await self._sessions.record(rules.to_record(state, now, completed=True))
        self._state = state
        logger.info("Focus session completed for task %s", state.task.id)
        return state

    async def exit(self, record: bool = False) -> Optional[FocusSessionRecord]:
        """
        Leave focus mode. The session is dropped unless `record` asks for a
        statistics entry; dropping writes nothing.
        """
        state = self._require_state()
        self._state = None
        if state.phase is FocusPhase.COMPLETED or not record:
            return None
        entry = rules.to_record(state, self._clock.now(), completed=False)
        await self._sessions.record(entry)
        return entry

    async def history(self, task_id: Optional[str] = None, limit: int = 20) -> Sequence[FocusSessionRecord]:
        if task_id is not None:
            return await self._sessions.list_for_task(task_id)
        return await self._sessions.list_recent(limit)
