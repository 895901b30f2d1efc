from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, List, Sequence

from taskboard.domain.tasks.models import Task


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...


class IdGenerator(ABC):
    @abstractmethod
    def new_id(self) -> str: ...


class TaskStore(ABC):
    """
    Persistence contract the engine depends on. No storage format leaks
    through it; failures are raised as DomainError subclasses.
    """

    @abstractmethod
    def observe_all(self) -> AsyncIterator[List[Task]]:
        """Yield the full task list now and again after every committed write."""

    @abstractmethod
    async def create(self, task: Task) -> Task: ...

    @abstractmethod
    async def update(self, task: Task) -> Task: ...

    @abstractmethod
    async def update_all(self, tasks: Sequence[Task]) -> List[Task]:
        """Write every task or none of them, then notify observers once."""

    @abstractmethod
    async def delete(self, task_id: str) -> None: ...

    @abstractmethod
    async def upsert_all(self, tasks: Sequence[Task]) -> List[Task]:
        """Insert or replace every task in one atomic write, then notify observers once."""
