from .models import SubmissionOptions, TaskStatus, TranslationTask
from .poller import StatusPoller
from .session import SessionStore, TranslationSession

__all__ = ["SubmissionOptions", "TaskStatus", "TranslationTask", "StatusPoller", "SessionStore", "TranslationSession"]
