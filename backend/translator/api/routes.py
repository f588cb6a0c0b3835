"""API routes for PDF upload, translation status and credit balance."""
import logging
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import RedirectResponse

from translator.config import (
    ALLOWED_CONTENT_TYPES,
    DEFAULT_FROM_LANG,
    DEFAULT_MODEL,
    DEFAULT_TO_LANG,
    LANGUAGES,
    MAX_PDF_SIZE_BYTES,
    MODELS,
    UPLOAD_DIR,
)
from translator.credits import CreditBalanceService
from translator.errors import PayloadTooLargeError, TranslatorError, ValidationError
from translator.translation.models import SubmissionOptions, TranslationTask
from translator.translation.session import SessionStore, TranslationSession
from translator.translation.submission import cleanup_upload, validate_content_type

logger = logging.getLogger("translator.api")
router = APIRouter(prefix="/api", tags=["translator"])

CHUNK_SIZE = 1024 * 1024


def get_or_create_session_id(request: Request) -> str:
    """Use X-Session-ID header or generate and attach to request for response header."""
    sid = (request.headers.get("X-Session-ID") or "").strip()
    if sid:
        return sid
    sid = str(uuid.uuid4())
    request.state.session_id = sid
    return sid


async def get_session(request: Request, session_id: str = Depends(get_or_create_session_id)) -> TranslationSession:
    store: SessionStore = request.app.state.sessions
    return store.get_or_create(session_id)


def get_session_id(request: Request) -> Optional[str]:
    return (request.headers.get("X-Session-ID") or "").strip() or None


async def find_session(
    request: Request, session_id: Optional[str] = Depends(get_session_id)
) -> Optional[TranslationSession]:
    """Look up an existing session without creating one; read-only endpoints use this."""
    if session_id is None:
        return None
    store: SessionStore = request.app.state.sessions
    return store.get(session_id)


def get_credit_service(request: Request) -> CreditBalanceService:
    return request.app.state.credits


def _parse_flag(value: Optional[str]) -> Optional[bool]:
    if value is None or not value.strip():
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _task_to_dict(t: TranslationTask) -> dict:
    result = t.result
    return {
        "taskId": t.task_id,
        "filename": t.filename,
        "status": t.status.value,
        "progress": t.progress,
        "error": t.error,
        "message": t.message,
        "checkCount": t.check_count,
        "sourceLanguage": t.source_language,
        "targetLanguage": t.target_language,
        "model": t.model,
        "translatedFileUrl": result.translated_file_url if result else None,
        "bilingualFileUrl": result.bilingual_file_url if result else None,
        "usedCredits": result.used_credits if result else None,
        "tokenCount": result.token_count if result else None,
    }


async def _stream_to_upload_dir(file: UploadFile, max_bytes: int) -> Path:
    """Write the upload to UPLOAD_DIR in chunks, aborting as soon as it exceeds max_bytes."""
    dest = UPLOAD_DIR / f"{uuid.uuid4().hex}_{Path(file.filename or 'document.pdf').name}"
    try:
        total = 0
        with open(dest, "wb") as f:
            while chunk := await file.read(CHUNK_SIZE):
                total += len(chunk)
                if total > max_bytes:
                    raise PayloadTooLargeError(f"File size exceeds the {max_bytes // (1024 * 1024)} MB limit")
                f.write(chunk)
    except TranslatorError:
        cleanup_upload(dest)
        raise
    except Exception as e:
        logger.exception("Upload failed: %s", e)
        cleanup_upload(dest)
        raise HTTPException(500, "Upload failed")
    return dest


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return upload limits for the client."""
    return {
        "max_file_size_mb": MAX_PDF_SIZE_BYTES // (1024 * 1024),
        "max_file_size_bytes": MAX_PDF_SIZE_BYTES,
        "allowed_content_types": sorted(ALLOWED_CONTENT_TYPES),
    }


@router.get("/options")
def get_options():
    """Languages and models the client can pick from, with defaults."""
    return {
        "languages": [{"code": code, "name": name} for code, name in LANGUAGES.items()],
        "models": [{"id": mid, "name": name} for mid, name in MODELS.items()],
        "defaults": {"fromLang": DEFAULT_FROM_LANG, "toLang": DEFAULT_TO_LANG, "model": DEFAULT_MODEL},
    }


@router.post("/translation/start")
async def start_translation(
    file: Optional[UploadFile] = File(None),
    fromLang: Optional[str] = Form(None),
    toLang: Optional[str] = Form(None),
    sourceLanguage: Optional[str] = Form(None),
    targetLanguage: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    glossary: Optional[str] = Form(None),
    shouldTranslateImage: Optional[str] = Form(None),
    preview: Optional[str] = Form(None),
    session: TranslationSession = Depends(get_session),
):
    """Upload a PDF and start translation. Poll /api/translation/status for progress."""
    options = SubmissionOptions(
        from_lang=fromLang or sourceLanguage or DEFAULT_FROM_LANG,
        to_lang=toLang or targetLanguage or DEFAULT_TO_LANG,
        model=model or DEFAULT_MODEL,
        glossary=glossary or None,
        translate_images=_parse_flag(shouldTranslateImage),
        preview=_parse_flag(preview),
    )
    filename = (file.filename if file else None) or "document.pdf"
    try:
        if file is None:
            raise ValidationError("No PDF file provided")
        validate_content_type(file.content_type)
        dest = await _stream_to_upload_dir(file, MAX_PDF_SIZE_BYTES)
    except TranslatorError as e:
        logger.warning("Rejected upload %s: %s", filename, e.message)
        session.reject(filename, options, e)
        raise

    logger.info("Processing translation request: %s (%s -> %s, model %s)",
                filename, options.from_lang, options.to_lang, options.model)
    task = await session.submit(dest, filename, options, content_type=file.content_type)
    return {
        "success": True,
        "taskId": task.task_id,
        "message": task.message,
        "status": task.status.value,
    }


@router.get("/translation/status")
async def translation_status(session: Optional[TranslationSession] = Depends(find_session)):
    """Current task state for this session, or idle when nothing is tracked."""
    if session is None or session.task is None:
        return {"status": "idle", "progress": 0}
    return _task_to_dict(session.task)


@router.get("/translation/file")
async def translation_file(
    kind: str = Query("translated", description="translated | bilingual"),
    session: Optional[TranslationSession] = Depends(find_session),
):
    """Redirect to the translated (or bilingual) file once the task completed."""
    task = session.task if session else None
    if task is None or task.result is None:
        raise HTTPException(404, "Translated file not found or translation not completed")
    url = task.result.bilingual_file_url if kind == "bilingual" else task.result.translated_file_url
    if not url:
        raise HTTPException(404, "Translated file unavailable")
    return RedirectResponse(url)


@router.post("/translation/reset")
async def reset_translation(request: Request, session_id: Optional[str] = Depends(get_session_id)):
    if session_id is not None:
        request.app.state.sessions.drop(session_id)
    return {"ok": True, "status": "idle"}


@router.get("/credits")
async def credit_balance(
    refresh: bool = Query(True, description="Fetch a fresh balance instead of answering from cache"),
    credits: CreditBalanceService = Depends(get_credit_service),
):
    if not refresh:
        cached = credits.cached()
        if cached is not None:
            return asdict(cached)
    balance = await credits.fetch()
    return asdict(balance)
