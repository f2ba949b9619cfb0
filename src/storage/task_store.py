from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional, Protocol

from schedule_ai.models import PendingTask

logger = logging.getLogger(__name__)

TaskListener = Callable[[str, str, PendingTask], None]


class TaskStore(Protocol):
    async def list_pending(self, user_id: str) -> List[PendingTask]:
        ...

    async def mark_scheduled(self, user_id: str, task_id: str, event_id: Optional[str]) -> Optional[PendingTask]:
        ...


class InMemoryTaskStore:
    """Process-local task store.

    Stands in for the real database: keeps per-user pending tasks, remembers
    which calendar event a task ended up in, and notifies listeners with
    ``(action, user_id, task)`` on every change.
    """

    def __init__(self):
        self._pending: Dict[str, Dict[str, PendingTask]] = {}
        self._scheduled: Dict[str, Dict[str, str]] = {}
        self._listeners: List[TaskListener] = []
        self._lock = asyncio.Lock()

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, action: str, user_id: str, task: PendingTask) -> None:
        for listener in list(self._listeners):
            listener(action, user_id, task)

    async def add(self, user_id: str, task: PendingTask) -> PendingTask:
        async with self._lock:
            self._pending.setdefault(user_id, {})[task.id] = task
        self._notify("created", user_id, task)
        return task

    async def create(self, user_id: str, title: str, **fields) -> PendingTask:
        task = PendingTask(id=fields.pop("id", None) or uuid.uuid4().hex[:12], title=title, **fields)
        return await self.add(user_id, task)

    async def get(self, user_id: str, task_id: str) -> Optional[PendingTask]:
        async with self._lock:
            return self._pending.get(user_id, {}).get(task_id)

    async def list_pending(self, user_id: str) -> List[PendingTask]:
        async with self._lock:
            return list(self._pending.get(user_id, {}).values())

    async def mark_scheduled(self, user_id: str, task_id: str, event_id: Optional[str]) -> Optional[PendingTask]:
        async with self._lock:
            task = self._pending.get(user_id, {}).pop(task_id, None)
            if task is None:
                return None
            self._scheduled.setdefault(user_id, {})[task_id] = event_id or ""
        logger.info(f"Task {task_id} for user {user_id} scheduled as event {event_id}")
        self._notify("scheduled", user_id, task)
        return task

    async def scheduled_event_id(self, user_id: str, task_id: str) -> Optional[str]:
        async with self._lock:
            return self._scheduled.get(user_id, {}).get(task_id)
