"""Database layer. Holds only the cached credit balance, the one value that survives restarts.
SQLite by default; set DATABASE_URL for another SQLAlchemy backend. On connection failure logs and falls back to in-memory SQLite so the app can start."""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from translator import config as app_config

logger = logging.getLogger("translator.db")

_engine: Optional[Engine] = None

REQUIRED_TABLES = ("credit_balance",)
_BALANCE_ROW_ID = 1


def _is_sqlite() -> bool:
    return "sqlite" in app_config.DATABASE_URL


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        kwargs = {}
        if _is_sqlite():
            kwargs["connect_args"] = {"check_same_thread": False}
        _engine = create_engine(app_config.DATABASE_URL, **kwargs)
        logger.info("Database engine created (%s)", "SQLite" if _is_sqlite() else _engine.dialect.name)
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def _ensure_tables(engine: Engine) -> None:
    """Create required tables if they do not exist."""
    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS credit_balance (
                id INTEGER PRIMARY KEY,
                credits INTEGER NOT NULL,
                expires_at DOUBLE PRECISION NOT NULL,
                updated_at VARCHAR(50) NOT NULL
            )
        """))
        conn.commit()
    logger.info("Required tables ensured: %s", ", ".join(REQUIRED_TABLES))


def init_db() -> None:
    """Prepare database at startup. On failure fall back to in-memory SQLite (the cached balance will not persist)."""
    global _engine
    try:
        engine = get_engine()
        _ensure_tables(engine)
        logger.info("Database ready")
        return
    except SQLAlchemyError as e:
        logger.warning("Database init failed: %s. Trying in-memory SQLite.", e, exc_info=True)

    in_memory_url = "sqlite:///:memory:"
    app_config.DATABASE_URL = in_memory_url
    dispose_engine()
    _ensure_tables(get_engine())
    logger.warning("Database unavailable. Using in-memory SQLite. Credit balance will not persist across restarts.")


@contextmanager
def session():
    with get_engine().connect() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_credit_balance(credits: int, expires_at: float) -> None:
    params = {"id": _BALANCE_ROW_ID, "credits": int(credits), "expires_at": float(expires_at), "now": _now_iso()}
    with session() as conn:
        conn.execute(text("DELETE FROM credit_balance WHERE id = :id"), params)
        conn.execute(
            text("""
                INSERT INTO credit_balance (id, credits, expires_at, updated_at)
                VALUES (:id, :credits, :expires_at, :now)
            """),
            params,
        )


def load_credit_balance() -> Optional[tuple[int, float]]:
    """Return (credits, expires_at epoch seconds) or None when nothing is cached."""
    with get_engine().connect() as conn:
        row = conn.execute(
            text("SELECT credits, expires_at FROM credit_balance WHERE id = :id"),
            {"id": _BALANCE_ROW_ID},
        ).fetchone()
    if not row:
        return None
    return int(row[0]), float(row[1])
