"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="translator-tests-")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP, "uploads"))
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(_TMP, "translator.db"))
os.environ["SANDBOX_MODE"] = "false"
os.environ["CREDIT_BALANCE_URL"] = ""

import pytest  # noqa: E402
from fakes import FakeClock  # noqa: E402

from translator import config, db  # noqa: E402


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def pdf_file(tmp_path):
    path = tmp_path / "upload.pdf"
    path.write_bytes(b"%PDF-1.4\n" + b"0" * (2 * 1024 * 1024))
    return path


@pytest.fixture()
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    db.dispose_engine()
    db.init_db()
    yield db
    db.dispose_engine()
