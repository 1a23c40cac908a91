from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from backend.shelf.models.catalog_contracts import CatalogItem, Suggestion
from backend.shelf.services.http_transport import HttpTransport
from backend.shelf.services.payloads import as_str, dict_entries, str_entries


class KakaoBookClient:
    def __init__(
        self,
        *,
        transport: HttpTransport,
        api_key: str,
        base_url: str = "https://dapi.kakao.com",
        max_results: int = 10,
    ) -> None:
        self._transport = transport
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_results = max(1, min(max_results, 50))

    def search(self, query: str) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        for document in self._documents(query, size=self._max_results):
            item = _item_from_document(document)
            if item is not None:
                items.append(item)
        return items

    def suggest(self, query: str, *, limit: int) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for document in self._documents(query, size=limit):
            item = _item_from_document(document)
            if item is None:
                continue
            suggestions.append(
                Suggestion(
                    title=item.title,
                    year=item.published_date[:4] if item.published_date else None,
                    author=item.authors[0] if item.authors else None,
                )
            )
        return suggestions

    def _documents(self, query: str, *, size: int) -> list[dict[str, Any]]:
        params = {"query": query, "size": str(max(1, min(size, 50)))}
        payload = self._transport.get_json(
            f"{self._base_url}/v3/search/book?{urlencode(params)}",
            headers={"Authorization": f"KakaoAK {self._api_key}"},
        )
        return dict_entries(payload.get("documents"))


def _item_from_document(document: dict[str, Any]) -> CatalogItem | None:
    title = as_str(document.get("title"))
    if title is None:
        return None
    published = as_str(document.get("datetime"))
    return CatalogItem(
        title=title,
        authors=str_entries(document.get("authors")),
        publisher=as_str(document.get("publisher")),
        thumbnail=as_str(document.get("thumbnail")),
        isbn=pick_isbn13(as_str(document.get("isbn"))),
        published_date=published[:10] if published else None,
        url=as_str(document.get("url")),
        type="book",
    )


def pick_isbn13(raw_isbn: str | None) -> str | None:
    """Kakao sends ``"<isbn10> <isbn13>"``; either half may be blank."""
    if raw_isbn is None:
        return None
    candidates = raw_isbn.split()
    for candidate in candidates:
        if len(candidate) == 13:
            return candidate
    return candidates[0] if candidates else None
