from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from taskboard.domain.board import codec
from taskboard.domain.board.models import Board, Column
from taskboard.domain.common.errors import DomainError
from taskboard.domain.tasks import rules as task_rules
from taskboard.domain.tasks.models import Task
from taskboard.domain.tasks.ports import Clock, IdGenerator, TaskStore
from taskboard.engine import events as ev
from taskboard.engine.reducer import ReduceContext, reduce
from taskboard.engine.state import BoardSnapshot, BoardUiState, snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    state: BoardUiState
    effects: Tuple[ev.Effect, ...]

    @property
    def ok(self) -> bool:
        return not any(isinstance(e, ev.ShowError) for e in self.effects)

    @property
    def error(self) -> Optional[str]:
        for e in self.effects:
            if isinstance(e, ev.ShowError):
                return e.message
        return None


class BoardEngine:
    """
    Drives the pure reducer: one event at a time, in arrival order.

    Store calls happen here and only here. Their outcome is fed back into the
    reducer as an event, so a failed write ends up as a ShowError effect in
    the DispatchResult instead of an exception.
    """

    def __init__(
        self,
        store: TaskStore,
        clock: Clock,
        ids: IdGenerator,
        columns: Optional[Sequence[Column]] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ids = ids
        self._state = BoardUiState.initial(tuple(columns) if columns is not None else None)
        self._lock = asyncio.Lock()
        self._observer: Optional[asyncio.Task] = None

    @property
    def state(self) -> BoardUiState:
        return self._state

    def snapshot(self) -> BoardSnapshot:
        return snapshot(self._state, self._clock.now())

    def _context(self) -> ReduceContext:
        return ReduceContext(now=self._clock.now(), new_id=self._ids.new_id)

    # ----- lifecycle -----

    async def load(self) -> DispatchResult:
        return await self.dispatch(ev.RefreshRequested())

    async def start(self) -> None:
        """Load once, then follow the store's push stream in the background."""
        await self.load()
        if self._observer is None:
            self._observer = asyncio.create_task(self._observe())

    async def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.cancel()
        try:
            await self._observer
        except asyncio.CancelledError:
            pass
        self._observer = None

    async def _observe(self) -> None:
        try:
            async for tasks in self._store.observe_all():
                await self.dispatch(ev.TasksLoaded(tuple(tasks)))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error("Task store observation stopped", exc_info=True)

    # ----- dispatch -----

    async def dispatch(self, event: ev.BoardEvent) -> DispatchResult:
        async with self._lock:
            logger.debug("Dispatching %s", type(event).__name__)
            transition = reduce(self._state, event, self._context())
            self._state = transition.state
            effects: List[ev.Effect] = list(transition.effects)
            for command in transition.commands:
                feedback = await self._execute(command)
                follow_up = reduce(self._state, feedback, self._context())
                self._state = follow_up.state
                effects.extend(follow_up.effects)
            for effect in effects:
                if isinstance(effect, ev.WipLimitExceeded):
                    w = effect.warning
                    logger.info("WIP limit exceeded in %s: %d/%d", w.status.name, w.count, w.limit)
            return DispatchResult(state=self._state, effects=tuple(effects))

    async def _execute(self, command: ev.Command) -> ev.BoardEvent:
        try:
            if isinstance(command, ev.CreateTask):
                created = await self._store.create(command.task)
                return ev.TasksSaved(action=command.action, tasks=(created,))
            if isinstance(command, ev.UpdateTasks):
                if len(command.tasks) == 1:
                    saved = [await self._store.update(command.tasks[0])]
                else:
                    saved = await self._store.update_all(command.tasks)
                return ev.TasksSaved(action=command.action, tasks=tuple(saved))
            if isinstance(command, ev.DeleteTask):
                await self._store.delete(command.task_id)
                return ev.TaskRemoved(command.task_id)
            if isinstance(command, ev.ReloadTasks):
                return ev.TasksLoaded(tuple(await self._first_emission()))
        except DomainError as e:
            logger.warning("Store rejected '%s': %s", command.action, e)
            return ev.PersistenceFailed(action=command.action, message=str(e))
        raise TypeError(f"Unhandled command type: {type(command).__name__}")

    async def _first_emission(self) -> List[Task]:
        stream = self._store.observe_all()
        try:
            async for tasks in stream:
                return list(tasks)
        finally:
            await stream.aclose()
        return []

    # ----- seeding / snapshots -----

    async def seed_if_empty(self, tasks: Sequence[Task]) -> int:
        """Create `tasks` only when the store holds nothing yet."""
        if await self._first_emission():
            return 0
        created = 0
        for task in tasks:
            try:
                await self._store.create(task)
                created += 1
            except DomainError as e:
                logger.warning("Sample task %s not created: %s", task.id, e)
        logger.info("Seeded %d sample tasks", created)
        await self.load()
        return created

    def export_board(self) -> Board:
        return self._state.to_board()

    def export_snapshot(self) -> str:
        return codec.encode_json(self.export_board())

    async def import_snapshot(self, data) -> DispatchResult:
        """
        Restore columns and tasks from a snapshot in one atomic store write.
        Unreadable input decodes to an empty board, which leaves the current
        board untouched.
        """
        board = codec.decode(data)
        if board.is_empty:
            return DispatchResult(state=self._state, effects=(ev.ShowError("Snapshot is empty or unreadable"),))
        async with self._lock:
            try:
                current = await self._first_emission()
                merged = task_rules.merge_imported(current, board.tasks)
                await self._store.upsert_all(merged)
            except DomainError as e:
                logger.warning("Snapshot import failed: %s", e)
                return DispatchResult(state=self._state, effects=(ev.ShowError(f"Failed to import snapshot: {e}"),))
            if board.columns:
                self._state = replace(self._state, columns=board.columns)
        return await self.load()
