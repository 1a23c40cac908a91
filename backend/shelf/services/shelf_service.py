from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal
from zoneinfo import ZoneInfo

from backend.shelf.models.catalog_contracts import AddToNotionRequest, Annotations, CatalogItem
from backend.shelf.services.duplicate_checker import DuplicateCheckResult, check_duplicate
from backend.shelf.services.notion_client import NotionApiError, NotionClient
from backend.shelf.services.notion_entry_builder import (
    TENSE_PROPERTY,
    build_entry,
    build_entry_from_schema,
)
from backend.shelf.services.payloads import as_dict, as_str, dict_entries

LOGGER = logging.getLogger("notion_shelf.shelf")

SchemaMode = Literal["fixed", "discover"]

# Workflow defaults Notion puts on status properties; not tenses.
PLACEHOLDER_TENSES = frozenset(
    {"Not started", "In progress", "Done", "시작 전", "진행 중", "완료"}
)
_OPTION_PROPERTY_TYPES = ("select", "multi_select", "status")


@dataclass(frozen=True)
class CreatedPage:
    page_id: str | None
    url: str | None


class ShelfService:
    def __init__(
        self,
        *,
        notion: NotionClient,
        schema_mode: SchemaMode = "fixed",
        timezone: str = "Asia/Seoul",
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._notion = notion
        self._schema_mode = schema_mode
        self._timezone = ZoneInfo(timezone)
        self._today_provider = today_provider

    def check_duplicate(self, title: str, published_date: str | None = None) -> DuplicateCheckResult:
        return check_duplicate(self._notion, title, published_date)

    def add_entry(self, request: AddToNotionRequest) -> CreatedPage:
        if request.title is None:
            raise ValueError("title is required")
        item = CatalogItem.model_validate(request.model_dump(exclude={"rating", "tense"}))
        annotations = Annotations(rating=request.rating, tense=request.tense)

        if self._schema_mode == "discover":
            database = self._notion.retrieve_database()
            page = build_entry_from_schema(
                item,
                annotations,
                database_id=self._notion.database_id,
                schema=as_dict(database.get("properties")),
            )
        else:
            page = build_entry(
                item,
                annotations,
                database_id=self._notion.database_id,
                today=self._today(),
            )

        created = self._notion.create_page(page)
        result = CreatedPage(page_id=as_str(created.get("id")), url=as_str(created.get("url")))
        LOGGER.info(
            "notion entry created type=%s page_id=%s mode=%s",
            item.type,
            result.page_id,
            self._schema_mode,
        )
        return result

    def list_tense_options(self) -> list[str]:
        if not self._notion.configured:
            return []
        try:
            database = self._notion.retrieve_database()
        except NotionApiError as exc:
            LOGGER.warning("tense options unavailable status=%s error=%s", exc.status_code, exc)
            return []

        definition = as_dict(as_dict(database.get("properties")).get(TENSE_PROPERTY))
        property_type = as_str(definition.get("type"))
        if property_type not in _OPTION_PROPERTY_TYPES:
            return []
        options: list[str] = []
        for option in dict_entries(as_dict(definition.get(property_type)).get("options")):
            name = as_str(option.get("name"))
            if name is None or name in PLACEHOLDER_TENSES or name in options:
                continue
            options.append(name)
        return options

    def _today(self) -> date:
        if self._today_provider is not None:
            return self._today_provider()
        return datetime.now(self._timezone).date()
