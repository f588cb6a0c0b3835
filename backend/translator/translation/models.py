"""Translation task state and provider status vocabulary."""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from translator.config import DEFAULT_FROM_LANG, DEFAULT_MODEL, DEFAULT_TO_LANG


class TaskStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    TRANSLATING = "translating"
    COMPLETED = "completed"
    ERROR = "error"


class ProviderStatus(str, Enum):
    WAITING = "Waiting"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    TERMINATED = "Terminated"


_PROVIDER_TO_LOCAL = {
    ProviderStatus.WAITING: TaskStatus.TRANSLATING,
    ProviderStatus.PROCESSING: TaskStatus.TRANSLATING,
    ProviderStatus.COMPLETED: TaskStatus.COMPLETED,
    ProviderStatus.TERMINATED: TaskStatus.ERROR,
}


def to_local_status(status: ProviderStatus) -> TaskStatus:
    return _PROVIDER_TO_LOCAL[ProviderStatus(status)]


TERMINAL_STATUSES = (TaskStatus.COMPLETED, TaskStatus.ERROR)


@dataclass
class SubmissionOptions:
    """Parameters chosen at submission; immutable once the task is created."""

    from_lang: str = DEFAULT_FROM_LANG
    to_lang: str = DEFAULT_TO_LANG
    model: str = DEFAULT_MODEL
    glossary: Optional[str] = None
    translate_images: Optional[bool] = None
    preview: Optional[bool] = None


@dataclass
class SubmissionResult:
    task_id: str
    message: str


@dataclass
class TranslationResult:
    translated_file_url: Optional[str] = None
    bilingual_file_url: Optional[str] = None
    used_credits: Optional[str] = None
    token_count: Optional[str] = None


class TranslationTask:
    """In-memory state of one translation job, mutated only by the session, poller and resolver."""

    def __init__(self, task_id: str, filename: str, options: SubmissionOptions):
        self.task_id = task_id
        self.filename = filename
        self.source_language = options.from_lang
        self.target_language = options.to_lang
        self.model = options.model
        self.status = TaskStatus.UPLOADING
        self.progress: int = 0
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.result: Optional[TranslationResult] = None
        self.check_count: int = 0
        self.failed_checks: int = 0
        self.created_at = time.time()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def fail(self, message: str) -> None:
        self.status = TaskStatus.ERROR
        self.error = message
