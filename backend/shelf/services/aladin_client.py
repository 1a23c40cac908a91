from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlencode

from backend.shelf.models.catalog_contracts import CatalogItem, Suggestion
from backend.shelf.services.http_transport import HttpTransport, HttpTransportError
from backend.shelf.services.payloads import as_dict, as_int, as_str, dict_entries
from backend.shelf.services.taxonomy import classify_category_path, parse_authors

LOGGER = logging.getLogger("notion_shelf.aladin")

AladinTarget = Literal["Book", "eBook"]


@dataclass(frozen=True)
class _ItemDetail:
    item_page: int
    category_name: str | None


class AladinClient:
    def __init__(
        self,
        *,
        transport: HttpTransport,
        ttb_key: str,
        base_url: str = "http://www.aladin.co.kr/ttb/api",
        max_results: int = 10,
        max_workers: int = 8,
    ) -> None:
        self._transport = transport
        self._ttb_key = ttb_key
        self._base_url = base_url.rstrip("/")
        self._max_results = max(1, max_results)
        self._max_workers = max(1, max_workers)

    def search(self, query: str, *, target: AladinTarget = "Book") -> list[CatalogItem]:
        hits = [
            hit
            for hit in self._search_hits(query, target=target, max_results=self._max_results)
            if as_str(hit.get("title")) is not None
        ]
        if not hits:
            return []

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(hits))) as executor:
            details = list(executor.map(self._lookup_detail, hits))

        return [_item_from_hit(hit, detail) for hit, detail in zip(hits, details, strict=True)]

    def suggest(self, query: str, *, limit: int, target: AladinTarget = "Book") -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for hit in self._search_hits(query, target=target, max_results=limit):
            title = as_str(hit.get("title"))
            if title is None:
                continue
            authors = parse_authors(as_str(hit.get("author")))
            pub_date = as_str(hit.get("pubDate"))
            suggestions.append(
                Suggestion(
                    title=title,
                    year=pub_date[:4] if pub_date else None,
                    author=authors[0] if authors else None,
                )
            )
        return suggestions

    def _search_hits(
        self,
        query: str,
        *,
        target: AladinTarget,
        max_results: int,
    ) -> list[dict[str, Any]]:
        params = {
            "ttbkey": self._ttb_key,
            "Query": query,
            "QueryType": "Keyword",
            "MaxResults": str(max_results),
            "start": "1",
            "SearchTarget": target,
            "output": "js",
            "Version": "20131101",
            "Cover": "Big",
        }
        payload = self._transport.get_json(f"{self._base_url}/ItemSearch.aspx?{urlencode(params)}")
        _raise_for_api_error(payload)
        return dict_entries(payload.get("item"))

    def _lookup_detail(self, hit: dict[str, Any]) -> _ItemDetail:
        fallback = _ItemDetail(item_page=0, category_name=as_str(hit.get("categoryName")))
        item_id = as_str(hit.get("isbn13")) or as_str(hit.get("isbn"))
        if item_id is None:
            return fallback

        params = {
            "ttbkey": self._ttb_key,
            "itemIdType": "ISBN13" if len(item_id) == 13 else "ISBN",
            "ItemId": item_id,
            "output": "js",
            "Version": "20131101",
            "OptResult": "packing",
        }
        try:
            payload = self._transport.get_json(
                f"{self._base_url}/ItemLookUp.aspx?{urlencode(params)}"
            )
            _raise_for_api_error(payload)
        except HttpTransportError as exc:
            LOGGER.debug("aladin lookup degraded isbn=%s error=%s", item_id, exc)
            return fallback

        entries = dict_entries(payload.get("item"))
        if not entries:
            return fallback
        detail = entries[0]
        return _ItemDetail(
            item_page=as_int(as_dict(detail.get("subInfo")).get("itemPage")) or 0,
            category_name=as_str(detail.get("categoryName")) or fallback.category_name,
        )


def _item_from_hit(hit: dict[str, Any], detail: _ItemDetail) -> CatalogItem:
    classification = classify_category_path(detail.category_name)
    return CatalogItem(
        title=as_str(hit.get("title")) or "",
        authors=parse_authors(as_str(hit.get("author"))),
        publisher=as_str(hit.get("publisher")),
        thumbnail=as_str(hit.get("cover")),
        isbn=as_str(hit.get("isbn13")) or as_str(hit.get("isbn")),
        published_date=as_str(hit.get("pubDate")),
        url=as_str(hit.get("link")),
        genres=classification.genres,
        country=classification.country,
        type="book",
        item_page=detail.item_page,
    )


def _raise_for_api_error(payload: dict[str, Any]) -> None:
    # Aladin reports bad keys and quota errors inside a 200 body.
    if "errorCode" in payload:
        raise HttpTransportError(
            f"aladin error {payload.get('errorCode')}: {payload.get('errorMessage')}",
            status_code=None,
            body=str(payload.get("errorMessage") or ""),
        )
