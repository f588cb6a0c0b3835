"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from translator.api.routes import router
from translator.config import CORS_ORIGINS, SANDBOX_MODE, is_api_key_configured, logger as config_logger
from translator.credits import CreditBalanceCache, CreditBalanceService
from translator.db import init_db
from translator.errors import TranslatorError
from translator.translation.models import TaskStatus
from translator.translation.provider import OTranslatorClient
from translator.translation.sandbox import SandboxProvider
from translator.translation.session import SessionStore, TranslationSession

logging.getLogger("uvicorn").setLevel(logging.INFO)


def build_provider():
    if SANDBOX_MODE:
        config_logger.warning("SANDBOX_MODE enabled: translations are synthetic")
        return SandboxProvider()
    if not is_api_key_configured():
        config_logger.warning("OTRANSLATOR_API_KEY is not configured; translation requests will fail")
    return OTranslatorClient()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    cache = CreditBalanceCache()
    cache.load()
    credits = CreditBalanceService(cache=cache)
    provider = build_provider()

    def on_finish(task):
        if task.status == TaskStatus.COMPLETED and credits.url:
            credits.schedule_refresh()

    app.state.credits = credits
    app.state.provider = provider
    app.state.sessions = SessionStore(
        lambda session_id: TranslationSession(session_id, provider, on_finish=on_finish)
    )
    config_logger.info("Translator API started")
    yield
    config_logger.info("Translator API shutting down")
    app.state.sessions.reset_all()
    await provider.aclose()
    await credits.aclose()


app = FastAPI(
    title="PDF Translator API",
    description="Upload a PDF, forward it to the translation provider and track progress until a download link is ready.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def session_header_middleware(request, call_next):
    """Set X-Session-ID on response when the session was created by the dependency."""
    response = await call_next(request)
    if hasattr(request.state, "session_id"):
        response.headers["X-Session-ID"] = request.state.session_id
    return response


async def translator_error_handler(request: Request, exc: TranslatorError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


app.middleware("http")(session_header_middleware)
app.add_exception_handler(TranslatorError, translator_error_handler)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from translator.config import HOST, PORT
    uvicorn.run("translator.main:app", host=HOST, port=PORT, reload=True)
