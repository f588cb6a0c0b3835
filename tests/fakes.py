"""Test doubles for the provider and the event-loop clock."""

from __future__ import annotations

import asyncio

from translator.translation.models import (
    ProviderStatus,
    SubmissionOptions,
    SubmissionResult,
    TaskStatus,
    TranslationTask,
)
from translator.translation.schemas import StatusResponse


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class ScriptedProvider:
    """Provider double. Status items are returned in order; the last one repeats."""

    def __init__(self, responses=(), task_id: str = "abc-123", create_error: Exception | None = None):
        self.responses = list(responses)
        self.task_id = task_id
        self.create_error = create_error
        self.created: list[tuple] = []
        self.queries: list[str] = []

    async def create_task(self, path, filename, options):
        self.created.append((path, filename, options, path.exists()))
        if self.create_error is not None:
            raise self.create_error
        return SubmissionResult(task_id=self.task_id, message="Translation started successfully")

    async def query_task(self, task_id):
        self.queries.append(task_id)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        pass


def status(value: ProviderStatus, **fields) -> StatusResponse:
    return StatusResponse(status=value, **fields)


def translating_task(task_id: str = "abc-123") -> TranslationTask:
    task = TranslationTask(task_id=task_id, filename="doc.pdf", options=SubmissionOptions())
    task.status = TaskStatus.TRANSLATING
    return task


class GatedProvider(ScriptedProvider):
    """Status query blocks until release(); create the instance inside the running loop."""

    def __init__(self, response: StatusResponse, **kwargs):
        super().__init__([response], **kwargs)
        self.started = asyncio.Event()
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def query_task(self, task_id):
        self.queries.append(task_id)
        self.started.set()
        await self._gate.wait()
        return self.responses[0]
