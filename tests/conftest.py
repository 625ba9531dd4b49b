from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from convertatxt.api.main import app, get_batch_service  # noqa: E402
from convertatxt.config import Settings  # noqa: E402
from convertatxt.ingest.service import BatchService  # noqa: E402


@pytest.fixture()
def temp_settings(tmp_path: Path) -> Settings:
    return Settings(
        log_dir=tmp_path / "logs",
        batch_size=5,
        timeout_ms=5_000,
    )


@pytest.fixture()
def batch_service(temp_settings: Settings) -> Iterator[BatchService]:
    with BatchService(config=temp_settings) as service:
        yield service


@pytest.fixture()
def client(batch_service: BatchService) -> Iterator[TestClient]:
    app.dependency_overrides[get_batch_service] = lambda: batch_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
