from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.shelf.dependencies import (
    build_catalog_service,
    get_catalog_service,
    get_settings,
    get_shelf_service,
    reset_cached_dependencies,
)
from backend.shelf.main import create_app
from backend.shelf.services.notion_client import NotionClient
from backend.shelf.services.shelf_service import ShelfService
from tests.fakes import FIXED_TODAY, NOTION_DATABASE_ID, FakeTransport


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_transport: FakeTransport,
) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("NOTION_SHELF_DATA_DIR", str(data_dir))
    monkeypatch.setenv("NOTION_SHELF_STATIC_DIR", str(tmp_path / "public"))
    monkeypatch.setenv("NOTION_SHELF_TELEMETRY_SINK", "none")
    monkeypatch.setenv("ALADIN_TTB_KEY", "test-ttb-key")
    monkeypatch.setenv("KAKAO_REST_API_KEY", "test-kakao-key")
    monkeypatch.setenv("TMDB_API_KEY", "test-tmdb-key")
    monkeypatch.setenv("NOTION_TOKEN", "test-notion-token")
    monkeypatch.setenv("NOTION_DATABASE_ID", NOTION_DATABASE_ID)
    reset_cached_dependencies()

    settings = get_settings()
    catalog = build_catalog_service(settings, fake_transport)
    shelf = ShelfService(
        notion=NotionClient(
            transport=fake_transport,
            token=settings.notion_token,
            database_id=settings.notion_database_id,
        ),
        schema_mode="fixed",
        timezone=settings.default_timezone,
        today_provider=lambda: FIXED_TODAY,
    )

    app = create_app()
    app.dependency_overrides[get_catalog_service] = lambda: catalog
    app.dependency_overrides[get_shelf_service] = lambda: shelf
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_cached_dependencies()
