"""Synthetic provider for offline demos. Only used when SANDBOX_MODE is enabled explicitly."""
import logging
import uuid
from pathlib import Path

from translator.config import SANDBOX_COMPLETE_AFTER
from translator.errors import NotFoundError
from translator.translation.models import ProviderStatus, SubmissionOptions, SubmissionResult
from translator.translation.schemas import StatusResponse

logger = logging.getLogger("translator.sandbox")

SANDBOX_PREFIX = "sandbox-"


class SandboxProvider:
    def __init__(self, complete_after: int = SANDBOX_COMPLETE_AFTER):
        self.complete_after = complete_after
        self._queries: dict[str, int] = {}

    async def create_task(self, path: Path, filename: str, options: SubmissionOptions) -> SubmissionResult:
        task_id = f"{SANDBOX_PREFIX}{uuid.uuid4().hex[:12]}"
        self._queries[task_id] = 0
        logger.warning("SANDBOX_MODE: created synthetic task %s for %s (%s -> %s)",
                       task_id, filename, options.from_lang, options.to_lang)
        return SubmissionResult(task_id=task_id, message="Translation started (sandbox)")

    async def query_task(self, task_id: str) -> StatusResponse:
        if task_id not in self._queries:
            raise NotFoundError()
        self._queries[task_id] += 1
        if self._queries[task_id] <= self.complete_after:
            return StatusResponse(status=ProviderStatus.PROCESSING, message="Translation in progress (sandbox)")
        del self._queries[task_id]
        return StatusResponse(
            status=ProviderStatus.COMPLETED,
            progress=100,
            translated_file_url=f"https://example.com/{task_id}/translated.pdf",
            translated_bilingual_file_url=f"https://example.com/{task_id}/bilingual.pdf",
            used_credits=10,
            token_count=5000,
            message="Translation completed successfully (sandbox)",
        )

    async def aclose(self) -> None:
        self._queries.clear()
