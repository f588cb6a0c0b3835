"""Status poller: drives one translating task to completed or error on the event loop."""
import asyncio
import logging
import time
from typing import Callable, Optional

from translator.config import POLL_MAX_FAILED_CHECKS
from translator.errors import TransientProviderError, TranslationTimeoutError, TranslatorError
from translator.translation.models import TaskStatus, TranslationTask, to_local_status
from translator.translation.provider import TranslationProvider
from translator.translation.resolver import coerce_str, resolve_completion
from translator.translation.retry import RetryPolicy, Sleep
from translator.translation.schedule import PollSchedule, estimate_progress
from translator.translation.schemas import StatusResponse

logger = logging.getLogger("translator.poller")

TIMEOUT_MESSAGE = TranslationTimeoutError.default_message
STATUS_CHECK_FAILED_MESSAGE = "Status check failed"

FinishCallback = Callable[[TranslationTask], None]


class StatusPoller:
    """
    Polls the provider for one task until it reaches a terminal state.

    The next check is scheduled only after the previous one resolved, so a task
    never has two queries in flight. After cancel() no result is applied,
    including one from a query that was already running.
    """

    def __init__(
        self,
        provider: TranslationProvider,
        task: TranslationTask,
        retry_policy: Optional[RetryPolicy] = None,
        schedule: Optional[PollSchedule] = None,
        max_failed_checks: int = POLL_MAX_FAILED_CHECKS,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_finish: Optional[FinishCallback] = None,
    ):
        self.provider = provider
        self.task = task
        self.retry_policy = retry_policy or RetryPolicy()
        self.schedule = schedule or PollSchedule()
        self.max_failed_checks = max_failed_checks
        self._sleep = sleep
        self._clock = clock
        self._on_finish = on_finish
        self._cancelled = False
        self._runner: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> asyncio.Task:
        """Schedule run() on the current event loop. Idempotent while running."""
        if self._runner is None or self._runner.done():
            self._runner = asyncio.get_running_loop().create_task(self.run())
        return self._runner

    def cancel(self) -> None:
        """Stop polling. Safe to call repeatedly and from any state."""
        self._cancelled = True
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
        logger.info("Polling cancelled for task %s", self.task.task_id)

    async def run(self) -> TranslationTask:
        task = self.task
        self._started_at = self._clock()
        logger.info("Polling started for task %s", task.task_id)
        while not self._cancelled and task.status == TaskStatus.TRANSLATING:
            now = self._clock()
            wake_at = self.schedule.next_wake(task.check_count, self._started_at, now)
            if wake_at is None:
                self._time_out()
                break
            await self._sleep(max(0.0, wake_at - now))
            if self._cancelled:
                break
            if self.schedule.is_exhausted(task.check_count, self._clock() - self._started_at):
                self._time_out()
                break
            try:
                await self.check_once()
            except Exception:
                logger.exception("Unexpected error while checking task %s", task.task_id)
                if not self._cancelled:
                    self._finish(TaskStatus.ERROR, error=STATUS_CHECK_FAILED_MESSAGE)
                break
        return task

    async def check_once(self) -> None:
        """Issue one status check through the retry policy and apply its outcome."""
        task = self.task
        task.check_count += 1
        check_number = task.check_count
        logger.info("Checking translation status for task %s (check #%s)", task.task_id, check_number)
        try:
            response = await self.retry_policy.run(lambda: self.provider.query_task(task.task_id), sleep=self._sleep)
        except TransientProviderError as e:
            if self._stale(check_number):
                return
            self._record_failure(e)
            return
        except TranslatorError as e:
            if self._stale(check_number):
                return
            logger.error("Status check for task %s failed permanently: %s", task.task_id, e.message)
            self._finish(TaskStatus.ERROR, error=e.message)
            return
        if self._stale(check_number):
            return
        self.apply(response)

    def apply(self, response: StatusResponse) -> None:
        task = self.task
        task.failed_checks = 0
        message = coerce_str(response.message)
        if message:
            task.message = message
        local = to_local_status(response.status)
        if local == TaskStatus.COMPLETED:
            task.result = resolve_completion(task.task_id, response)
            task.progress = 100
            self._finish(TaskStatus.COMPLETED)
        elif local == TaskStatus.ERROR:
            error = message or "Translation was terminated by the provider"
            logger.error("Translation %s terminated: %s", task.task_id, error)
            self._finish(TaskStatus.ERROR, error=error)
        else:
            if response.progress is not None:
                reported = int(max(0.0, min(100.0, response.progress)))
            else:
                reported = estimate_progress(task.check_count)
            task.progress = max(task.progress, reported)
            logger.info(
                "Translation %s %s: %s%%",
                task.task_id, response.status.value.lower(), task.progress,
            )

    def _stale(self, check_number: int) -> bool:
        if self._cancelled or check_number != self.task.check_count:
            logger.debug("Dropping stale status response for task %s", self.task.task_id)
            return True
        return False

    def _record_failure(self, error: TranslatorError) -> None:
        task = self.task
        task.failed_checks += 1
        logger.warning(
            "Error checking translation status for task %s (%s consecutive): %s",
            task.task_id, task.failed_checks, error.message,
        )
        if task.failed_checks > self.max_failed_checks:
            self._finish(TaskStatus.ERROR, error=STATUS_CHECK_FAILED_MESSAGE)

    def _time_out(self) -> None:
        logger.error(
            "Translation %s timed out after %s checks", self.task.task_id, self.task.check_count,
        )
        self._finish(TaskStatus.ERROR, error=TIMEOUT_MESSAGE)

    def _finish(self, status: TaskStatus, error: Optional[str] = None) -> None:
        if status == TaskStatus.ERROR:
            self.task.fail(error or STATUS_CHECK_FAILED_MESSAGE)
        else:
            self.task.status = status
        logger.info("Polling finished for task %s: %s", self.task.task_id, status.value)
        if self._on_finish is not None:
            try:
                self._on_finish(self.task)
            except Exception:
                logger.exception("Finish callback failed for task %s", self.task.task_id)
