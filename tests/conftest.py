from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fileupload.core.config import Settings
from main import create_app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir):
    return Settings(upload_dir=upload_dir, max_size_mb=1)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
