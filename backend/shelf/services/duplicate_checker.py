from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.shelf.services.notion_client import NotionApiError, NotionClient
from backend.shelf.services.notion_entry_builder import DATE_PROPERTY, TITLE_PROPERTY
from backend.shelf.services.payloads import as_dict, as_str, dict_entries

LOGGER = logging.getLogger("notion_shelf.duplicates")


@dataclass(frozen=True)
class DuplicateCheckResult:
    exists: bool
    date: str | None = None
    existing_title: str | None = None
    page_url: str | None = None


NOT_FOUND = DuplicateCheckResult(exists=False)


def check_duplicate(
    notion: NotionClient,
    title: str,
    published_date: str | None = None,
) -> DuplicateCheckResult:
    """Look for a stored entry whose title contains ``title``.

    Stored titles carry a ``" (YYYY)"`` suffix, so matching is containment
    rather than equality and ``published_date`` does not narrow the search.
    Any failure answers "not found" so the caller can still save.
    """
    del published_date
    if not notion.configured:
        LOGGER.debug("duplicate check skipped reason=notion_not_configured")
        return NOT_FOUND

    query = {
        "filter": {
            "property": TITLE_PROPERTY,
            "title": {"contains": title},
        },
        "page_size": 1,
    }
    try:
        payload = notion.query_database(query)
    except NotionApiError as exc:
        LOGGER.warning(
            "duplicate check failed status=%s error=%s",
            exc.status_code,
            exc,
        )
        return NOT_FOUND

    results = dict_entries(payload.get("results"))
    if not results:
        return NOT_FOUND

    existing = results[0]
    properties = as_dict(existing.get("properties"))
    date_value = as_dict(as_dict(properties.get(DATE_PROPERTY)).get("date"))
    title_runs = dict_entries(as_dict(properties.get(TITLE_PROPERTY)).get("title"))
    return DuplicateCheckResult(
        exists=True,
        date=as_str(date_value.get("start")),
        existing_title=as_str(title_runs[0].get("plain_text")) if title_runs else "",
        page_url=as_str(existing.get("url")),
    )
