"""Session-scoped task store: one tracked translation per user session."""
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from translator.config import SESSION_TTL_SECONDS
from translator.errors import TranslatorError
from translator.translation.models import SubmissionOptions, TaskStatus, TranslationTask
from translator.translation.poller import FinishCallback, StatusPoller
from translator.translation.provider import TranslationProvider
from translator.translation.retry import RetryPolicy
from translator.translation.schedule import PollSchedule
from translator.translation.submission import submit_translation

logger = logging.getLogger("translator.session")

PollerFactory = Callable[[TranslationTask], StatusPoller]


class TranslationSession:
    """Owns at most one task and its poller. reset() drops both."""

    def __init__(
        self,
        session_id: str,
        provider: TranslationProvider,
        retry_policy: Optional[RetryPolicy] = None,
        schedule: Optional[PollSchedule] = None,
        on_finish: Optional[FinishCallback] = None,
        poller_factory: Optional[PollerFactory] = None,
    ):
        self.session_id = session_id
        self.provider = provider
        self.retry_policy = retry_policy or RetryPolicy()
        self.schedule = schedule or PollSchedule()
        self._on_finish = on_finish
        self._poller_factory = poller_factory or self._default_poller
        self.task: Optional[TranslationTask] = None
        self.poller: Optional[StatusPoller] = None

    def _default_poller(self, task: TranslationTask) -> StatusPoller:
        return StatusPoller(
            self.provider,
            task,
            retry_policy=self.retry_policy,
            schedule=self.schedule,
            on_finish=self._on_finish,
        )

    @property
    def status(self) -> TaskStatus:
        return self.task.status if self.task else TaskStatus.IDLE

    async def submit(
        self,
        path: Path,
        filename: str,
        options: SubmissionOptions,
        content_type: Optional[str] = "application/pdf",
    ) -> TranslationTask:
        """Upload and start polling. Submission errors leave the task in error and are re-raised."""
        self.reset()
        task = TranslationTask(task_id=f"local-{uuid.uuid4().hex}", filename=filename, options=options)
        self.task = task
        try:
            result = await submit_translation(self.provider, path, filename, options, content_type=content_type)
        except TranslatorError as e:
            logger.error("Failed to start translation for session %s: %s", self.session_id, e.message)
            if self.task is task:
                task.fail(e.message)
            raise
        if self.task is not task:
            # reset() ran while the upload was in flight
            logger.info("Discarding submission result %s for a reset session", result.task_id)
            return task
        task.task_id = result.task_id
        task.message = result.message
        task.status = TaskStatus.TRANSLATING
        task.progress = 0
        logger.info("Translation started with task ID: %s", task.task_id)
        self.poller = self._poller_factory(task)
        self.poller.start()
        return task

    def reject(self, filename: str, options: SubmissionOptions, error: TranslatorError) -> TranslationTask:
        """Record an upload refused before submission as a task in error."""
        self.reset()
        task = TranslationTask(task_id=f"local-{uuid.uuid4().hex}", filename=filename, options=options)
        task.fail(error.message)
        self.task = task
        return task

    def reset(self) -> None:
        if self.poller is not None:
            self.poller.cancel()
        if self.task is not None:
            logger.info("Translation state reset for session %s (task %s)", self.session_id, self.task.task_id)
        self.poller = None
        self.task = None


class SessionStore:
    """
    Maps session id to its TranslationSession. Owned by the application, not module state.

    Sessions that are idle or hold a finished task are evicted once they have not
    been looked up for ttl_seconds. Sessions with a task in flight are kept.
    """

    def __init__(
        self,
        session_factory: Callable[[str], TranslationSession],
        ttl_seconds: float = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, TranslationSession] = {}
        self._last_seen: dict[str, float] = {}

    def get(self, session_id: str) -> Optional[TranslationSession]:
        self.evict_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            self._last_seen[session_id] = self._clock()
        return session

    def get_or_create(self, session_id: str) -> TranslationSession:
        session = self.get(session_id)
        if session is None:
            session = self._session_factory(session_id)
            self._sessions[session_id] = session
            self._last_seen[session_id] = self._clock()
        return session

    def drop(self, session_id: str) -> None:
        self._last_seen.pop(session_id, None)
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.reset()

    def evict_expired(self) -> int:
        """Drop idle or finished sessions not seen within ttl_seconds. Returns how many were dropped."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if self._last_seen.get(session_id, 0.0) < cutoff and (session.task is None or session.task.is_terminal)
        ]
        for session_id in expired:
            self.drop(session_id)
        if expired:
            logger.info("Evicted %s expired sessions", len(expired))
        return len(expired)

    def reset_all(self) -> None:
        for session_id in list(self._sessions):
            self.drop(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
