from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from backend.shelf.config import load_settings
from backend.shelf.logging_config import (
    PROVIDER_LOGGER_NAMES,
    ROOT_LOGGER_NAME,
    configure_application_logging,
    mask_credentials,
)


@pytest.fixture
def _detach_handlers() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    yield
    for name in (ROOT_LOGGER_NAME, f"{ROOT_LOGGER_NAME}.telemetry", *PROVIDER_LOGGER_NAMES):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_mask_credentials_hides_keys_and_tokens() -> None:
    masked = mask_credentials(
        "GET http://www.aladin.co.kr/ttb/api/ItemSearch.aspx?ttbkey=abc123&Query=x "
        "Authorization: Bearer secret_token KakaoAK kakao-key"
    )

    assert "abc123" not in masked
    assert "secret_token" not in masked
    assert "kakao-key" not in masked
    assert "ttbkey=[redacted]&Query=x" in masked


@pytest.mark.usefixtures("_detach_handlers")
def test_configure_application_logging_writes_json_files(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("NOTION_SHELF_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("NOTION_SHELF_LOG_LEVEL", "warning")

    paths = configure_application_logging(load_settings())
    logging.getLogger(f"{ROOT_LOGGER_NAME}.http").info(
        "provider request url=%s", "https://api.themoviedb.org/3/search/movie?api_key=k-1&query=기생충"
    )
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()
    for handler in logging.getLogger(f"{ROOT_LOGGER_NAME}.http").handlers:
        handler.flush()

    assert paths.main.parent == tmp_path / "data" / "logs"
    provider_lines = paths.providers.read_text(encoding="utf-8").splitlines()
    record = json.loads(provider_lines[-1])
    assert "k-1" not in record["event"]
    assert "기생충" in record["event"]
    assert record["logger"] == f"{ROOT_LOGGER_NAME}.http"
    assert "k-1" not in paths.main.read_text(encoding="utf-8")
