from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from receipt_split.api.deps import get_image_storage, get_ocr_provider, get_receipt_structurer
from receipt_split.core.config import Settings
from receipt_split.core.db import create_tables, make_engine, make_session_factory
from receipt_split.main import create_app

from fakes import FakeOcr, FakeStorage, FakeStructurer


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def app(engine, tmp_path, storage):
    settings = Settings(DATABASE_URL="sqlite://", UPLOAD_DIR=str(tmp_path), MAX_UPLOAD_BYTES=1024)
    app = create_app(settings, engine)
    app.dependency_overrides[get_image_storage] = lambda: storage
    app.dependency_overrides[get_ocr_provider] = lambda: FakeOcr(error=RuntimeError("no OCR in tests"))
    app.dependency_overrides[get_receipt_structurer] = lambda: FakeStructurer(error=RuntimeError("no LLM in tests"))
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
