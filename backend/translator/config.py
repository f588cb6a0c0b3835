"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Translation provider (oTranslator)
OTRANSLATOR_API_KEY = os.getenv("OTRANSLATOR_API_KEY", "").strip()
OTRANSLATOR_BASE_URL = os.getenv("OTRANSLATOR_BASE_URL", "https://otranslator.com/api/v1").rstrip("/")
API_KEY_PLACEHOLDER = "your_actual_api_key_here"
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "grok-3-mini")
DEFAULT_FROM_LANG = os.getenv("DEFAULT_FROM_LANG", "auto")
DEFAULT_TO_LANG = os.getenv("DEFAULT_TO_LANG", "lt")
CREATE_TIMEOUT_SECONDS = float(os.getenv("CREATE_TIMEOUT_SECONDS", "30"))
QUERY_TIMEOUT_SECONDS = float(os.getenv("QUERY_TIMEOUT_SECONDS", "15"))

# Uploads: PDF only, streamed through a temp dir and removed after handoff
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads")))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
MAX_PDF_SIZE_MB = int(os.getenv("MAX_PDF_SIZE_MB", "100"))
MAX_PDF_SIZE_BYTES = MAX_PDF_SIZE_MB * 1024 * 1024
ALLOWED_CONTENT_TYPES = {"application/pdf"}

# Status polling schedule (seconds)
POLL_INITIAL_INTERVAL = float(os.getenv("POLL_INITIAL_INTERVAL", "3"))
POLL_STANDARD_INTERVAL = float(os.getenv("POLL_STANDARD_INTERVAL", "10"))
POLL_SLOW_INTERVAL = float(os.getenv("POLL_SLOW_INTERVAL", "20"))
POLL_STANDARD_AFTER = int(os.getenv("POLL_STANDARD_AFTER", "3"))
POLL_SLOW_AFTER = int(os.getenv("POLL_SLOW_AFTER", "12"))
POLL_MAX_WAIT_SECONDS = float(os.getenv("POLL_MAX_WAIT_SECONDS", str(20 * 60)))
POLL_MAX_FAILED_CHECKS = int(os.getenv("POLL_MAX_FAILED_CHECKS", "5"))

# Retry policy for a single status query
STATUS_MAX_RETRIES = int(os.getenv("STATUS_MAX_RETRIES", "3"))
STATUS_RETRY_DELAY = float(os.getenv("STATUS_RETRY_DELAY", "2.0"))
STATUS_RETRY_BACKOFF = os.getenv("STATUS_RETRY_BACKOFF", "linear").strip().lower()
STATUS_RETRY_MAX_DELAY = float(os.getenv("STATUS_RETRY_MAX_DELAY", "10"))

# Credit balance webhook; empty disables remote refresh
CREDIT_BALANCE_URL = os.getenv("CREDIT_BALANCE_URL", "").strip()
CREDIT_CACHE_TTL_SECONDS = int(os.getenv("CREDIT_CACHE_TTL_SECONDS", "300"))
CREDIT_MAX_RETRIES = int(os.getenv("CREDIT_MAX_RETRIES", "3"))
CREDIT_RETRY_DELAY = float(os.getenv("CREDIT_RETRY_DELAY", "1.0"))

# Sandbox: synthetic provider for offline demos. Never enabled implicitly.
SANDBOX_MODE = _env_bool("SANDBOX_MODE")
SANDBOX_COMPLETE_AFTER = int(os.getenv("SANDBOX_COMPLETE_AFTER", "3"))

# Sessions: idle or finished sessions are dropped after this many seconds without a request
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "3600"))

# Catalogs offered to the client (code -> display name)
LANGUAGES = {
    "auto": "Auto detect",
    "lt": "Lithuanian",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
}
MODELS = {
    "grok-3-mini": "Grok 3 Mini",
    "gpt-4.1-mini": "GPT-4.1 Mini",
    "gpt-4.1": "GPT-4.1",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
}

# Database: only the cached credit balance is persisted. SQLite by default.
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    db_path = BASE_DIR / "data" / "translator.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    DATABASE_URL = f"sqlite:///{db_path}"

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("translator")


def is_api_key_configured(api_key: Optional[str] = None) -> bool:
    key = OTRANSLATOR_API_KEY if api_key is None else api_key
    return bool(key) and key != API_KEY_PLACEHOLDER
