"""oTranslator API client: task creation and status queries over httpx."""
import logging
from pathlib import Path
from typing import Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from translator.config import (
    CREATE_TIMEOUT_SECONDS,
    OTRANSLATOR_API_KEY,
    OTRANSLATOR_BASE_URL,
    QUERY_TIMEOUT_SECONDS,
    is_api_key_configured,
)
from translator.errors import (
    AuthError,
    ConfigurationError,
    NotFoundError,
    PayloadTooLargeError,
    ProviderError,
    TransientProviderError,
)
from translator.translation.models import SubmissionOptions, SubmissionResult
from translator.translation.schemas import CreateTaskResponse, StatusResponse

logger = logging.getLogger("translator.provider")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class TranslationProvider(Protocol):
    async def create_task(self, path: Path, filename: str, options: SubmissionOptions) -> SubmissionResult:
        ...

    async def query_task(self, task_id: str) -> StatusResponse:
        ...


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_form_fields(options: SubmissionOptions) -> dict[str, str]:
    """Multipart text fields for the create endpoint. Optional flags are sent only when set."""
    fields = {
        "fromLang": options.from_lang,
        "toLang": options.to_lang,
        "model": options.model,
    }
    if options.glossary:
        fields["glossary"] = options.glossary
    if options.translate_images is not None:
        fields["shouldTranslateImage"] = _flag(options.translate_images)
    if options.preview is not None:
        fields["preview"] = _flag(options.preview)
    return fields


def classify_response(response: httpx.Response) -> None:
    """Raise the matching error for a non-2xx provider response."""
    if response.is_success:
        return
    code = response.status_code
    logger.error("Provider error response: %s - %s", code, response.text[:500])
    if code == 401:
        raise AuthError()
    if code == 404:
        raise NotFoundError()
    if code == 413:
        raise PayloadTooLargeError()
    if code >= 500:
        raise TransientProviderError(f"Server error occurred (HTTP {code}). Please try again later.")
    raise ProviderError(f"HTTP error! status: {code}")


def parse_response(response: httpx.Response, schema: Type[SchemaT]) -> SchemaT:
    try:
        return schema.model_validate(response.json())
    except (ValueError, SchemaError) as e:
        logger.warning("Unparseable provider response (%s): %s", schema.__name__, e)
        raise TransientProviderError("Unexpected response from translation provider") from e


class OTranslatorClient:
    """Async client for the oTranslator REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = OTRANSLATOR_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        create_timeout: float = CREATE_TIMEOUT_SECONDS,
        query_timeout: float = QUERY_TIMEOUT_SECONDS,
    ):
        self._api_key = OTRANSLATOR_API_KEY if api_key is None else api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient()
        self._create_timeout = httpx.Timeout(create_timeout, connect=10.0)
        self._query_timeout = httpx.Timeout(query_timeout, connect=10.0)

    def _headers(self) -> dict[str, str]:
        if not is_api_key_configured(self._api_key):
            logger.error("Missing API key")
            raise ConfigurationError()
        return {"Authorization": self._api_key}

    async def _post(self, url: str, timeout: httpx.Timeout, **kwargs) -> httpx.Response:
        try:
            return await self._client.post(url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Timeout calling %s", url)
            raise TransientProviderError("Request timed out. The server took too long to respond.") from e
        except httpx.HTTPError as e:
            logger.warning("HTTP error calling %s: %s", url, e)
            raise TransientProviderError() from e

    async def create_task(self, path: Path, filename: str, options: SubmissionOptions) -> SubmissionResult:
        """Upload the PDF as multipart and return the provider's task id."""
        headers = self._headers()
        logger.info(
            "Starting translation of %s from %s to %s using model %s",
            filename, options.from_lang, options.to_lang, options.model,
        )
        with open(path, "rb") as fh:
            response = await self._post(
                f"{self._base_url}/translation/create",
                self._create_timeout,
                headers=headers,
                data=build_form_fields(options),
                files={"file": (filename, fh, "application/pdf")},
            )
        classify_response(response)
        data = parse_response(response, CreateTaskResponse)
        logger.info("Translation created with task id %s", data.task_id)
        return SubmissionResult(task_id=data.task_id, message=data.message or "Translation started successfully")

    async def query_task(self, task_id: str) -> StatusResponse:
        headers = self._headers()
        logger.debug("Querying translation status for task %s", task_id)
        response = await self._post(
            f"{self._base_url}/translation/query",
            self._query_timeout,
            headers=headers,
            json={"taskId": task_id},
        )
        classify_response(response)
        return parse_response(response, StatusResponse)

    async def aclose(self) -> None:
        await self._client.aclose()
