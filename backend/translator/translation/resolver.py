"""Extract result artifacts from a completed status response."""
import logging
from typing import Any, Optional

from translator.translation.models import TranslationResult
from translator.translation.schemas import StatusResponse

logger = logging.getLogger("translator.resolver")


def coerce_str(value: Any) -> Optional[str]:
    """Provider fields may arrive as numbers, bools or nested values; never raise, coerce."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    try:
        return str(value)
    except Exception:
        logger.warning("Could not coerce provider value of type %s", type(value).__name__)
        return None


def resolve_completion(task_id: str, response: StatusResponse) -> TranslationResult:
    translated = coerce_str(response.translated_file_url) or coerce_str(response.file_url)
    bilingual = coerce_str(response.translated_bilingual_file_url) or coerce_str(response.bilingual_file_url)
    if translated:
        logger.info("Translation %s completed. File URL: %s", task_id, translated)
    else:
        logger.warning("No translated file URL in completed response for task %s", task_id)
    if not bilingual:
        logger.debug("No bilingual file URL for task %s", task_id)
    return TranslationResult(
        translated_file_url=translated,
        bilingual_file_url=bilingual,
        used_credits=coerce_str(response.used_credits),
        token_count=coerce_str(response.token_count),
    )
