from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from taskboard.domain.focus.models import FocusSessionRecord


class FocusSessionRepository(ABC):
    @abstractmethod
    async def record(self, record: FocusSessionRecord) -> None: ...

    @abstractmethod
    async def list_recent(self, limit: int) -> Sequence[FocusSessionRecord]: ...

    @abstractmethod
    async def list_for_task(self, task_id: str) -> Sequence[FocusSessionRecord]: ...
