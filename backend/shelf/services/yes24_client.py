from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from urllib.parse import urlencode

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from backend.shelf.models.catalog_contracts import CatalogItem, Suggestion
from backend.shelf.services.http_transport import HttpTransport, HttpTransportError
from backend.shelf.services.taxonomy import PATH_DELIMITER, classify_category_path

LOGGER = logging.getLogger("notion_shelf.yes24")

_KOREAN_DATE = re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월(?:\s*(\d{1,2})\s*일)?")
_GOODS_ID = re.compile(r"/Product/Goods/(\d+)")
_ROLE_TOKEN = re.compile(r"/|[^\s,/]+")
# Credit words that follow translators, illustrators and editors in the author block.
_EXCLUDED_ROLES = frozenset({"역", "옮김", "번역", "그림", "일러스트", "편", "편집", "엮음", "감수", "사진"})


@dataclass(frozen=True)
class _ListEntry:
    title: str
    url: str
    thumbnail: str | None
    authors: list[str] = field(default_factory=list)
    publisher: str | None = None


@dataclass(frozen=True)
class _ProductDetail:
    authors: list[str]
    publisher: str | None
    published_date: str | None
    category_path: str | None


class Yes24Client:
    """Scrapes Yes24 search and product pages; used when no book API is reachable."""

    def __init__(
        self,
        *,
        transport: HttpTransport,
        base_url: str = "https://www.yes24.com",
        max_results: int = 10,
        max_workers: int = 8,
    ) -> None:
        self._transport = transport
        self._base_url = base_url.rstrip("/")
        self._max_results = max(1, max_results)
        self._max_workers = max(1, max_workers)

    def search(self, query: str) -> list[CatalogItem]:
        entries = self._list_entries(query)[: self._max_results]
        if not entries:
            return []

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(entries))) as executor:
            details = list(executor.map(self._fetch_detail, entries))

        return [_item_from_entry(entry, detail) for entry, detail in zip(entries, details, strict=True)]

    def suggest(self, query: str, *, limit: int) -> list[Suggestion]:
        return [
            Suggestion(title=entry.title, author=entry.authors[0] if entry.authors else None)
            for entry in self._list_entries(query)[: max(1, limit)]
        ]

    def _list_entries(self, query: str) -> list[_ListEntry]:
        params = {"domain": "BOOK", "query": query}
        html = self._transport.get_text(f"{self._base_url}/Product/Search?{urlencode(params)}")
        return parse_search_page(html, base_url=self._base_url)

    def _fetch_detail(self, entry: _ListEntry) -> _ProductDetail | None:
        try:
            html = self._transport.get_text(entry.url)
        except HttpTransportError as exc:
            LOGGER.debug("yes24 detail degraded url=%s error=%s", entry.url, exc)
            return None
        return parse_product_page(html)


def parse_search_page(html: str, *, base_url: str) -> list[_ListEntry]:
    soup = BeautifulSoup(html, "html.parser")
    entries: list[_ListEntry] = []
    for node in soup.select("#yesSchList > li"):
        name_tag = node.select_one(".gd_name")
        if name_tag is None:
            continue
        title = name_tag.get_text(" ", strip=True)
        href = _attr(name_tag, "href")
        if not title or href is None:
            continue
        goods_match = _GOODS_ID.search(href)
        url = f"{base_url}/Product/Goods/{goods_match.group(1)}" if goods_match else _absolute(href, base_url)

        image_tag = node.select_one("img")
        thumbnail = None
        if image_tag is not None:
            thumbnail = _attr(image_tag, "data-original") or _attr(image_tag, "src")

        publisher_tag = node.select_one(".info_pub a")
        entries.append(
            _ListEntry(
                title=title,
                url=url,
                thumbnail=thumbnail,
                authors=_credited_authors(node, ".info_auth"),
                publisher=publisher_tag.get_text(strip=True) or None if publisher_tag else None,
            )
        )
    return entries


def parse_product_page(html: str) -> _ProductDetail:
    soup = BeautifulSoup(html, "html.parser")
    publisher_tag = soup.select_one(".gd_pub a") or soup.select_one(".gd_pub")
    date_tag = soup.select_one(".gd_date")

    category_path: str | None = None
    for crumb in soup.select("#infoset_goodsCate li"):
        segments = [link.get_text(strip=True) for link in crumb.select("a")]
        segments = [segment for segment in segments if segment]
        if segments:
            category_path = PATH_DELIMITER.join(segments)
            break

    return _ProductDetail(
        authors=_credited_authors(soup, ".gd_auth"),
        publisher=publisher_tag.get_text(strip=True) or None if publisher_tag else None,
        published_date=korean_date_to_iso(date_tag.get_text(strip=True) if date_tag else None),
        category_path=category_path,
    )


def korean_date_to_iso(raw_date: str | None) -> str | None:
    """``"2024년 03월 05일"`` -> ``"2024-03-05"``; a missing day yields ``"2024-03"``."""
    if not raw_date:
        return None
    match = _KOREAN_DATE.search(raw_date)
    if match is None:
        return None
    year, month, day = match.groups()
    if day is None:
        return f"{year}-{int(month):02d}"
    return f"{year}-{int(month):02d}-{int(day):02d}"


def _item_from_entry(entry: _ListEntry, detail: _ProductDetail | None) -> CatalogItem:
    if detail is None:
        return CatalogItem(
            title=entry.title,
            authors=entry.authors,
            publisher=entry.publisher,
            thumbnail=entry.thumbnail,
            url=entry.url,
            type="book",
        )
    classification = classify_category_path(detail.category_path)
    return CatalogItem(
        title=entry.title,
        authors=detail.authors or entry.authors,
        publisher=detail.publisher or entry.publisher,
        thumbnail=entry.thumbnail,
        published_date=detail.published_date,
        url=entry.url,
        genres=classification.genres,
        country=classification.country,
        type="book",
    )


def _credited_authors(root: Tag, selector: str) -> list[str]:
    """Linked names in the author block, minus translators, illustrators and editors.

    Yes24 writes the credit word after the names it applies to, e.g.
    ``<a>한강</a> 저 / <a>데보라 스미스</a> 역``; ``/`` separates credit groups.
    """
    container = root.select_one(selector)
    if container is None:
        return []

    authors: list[str] = []
    pending: list[str] = []

    def close_group(role: str | None) -> None:
        if role not in _EXCLUDED_ROLES:
            authors.extend(name for name in pending if name not in authors)
        pending.clear()

    for node in container.descendants:
        if isinstance(node, Tag):
            if node.name == "a":
                name = node.get_text(strip=True)
                if name:
                    pending.append(name)
            continue
        if not isinstance(node, NavigableString) or isinstance(node, Comment):
            continue
        if node.find_parent("a") is not None:
            continue
        for token in _ROLE_TOKEN.findall(str(node)):
            if pending:
                close_group(None if token == "/" else token)
    close_group(None)
    return authors


def _attr(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if not value:
        return None
    return value.strip() or None


def _absolute(href: str, base_url: str) -> str:
    if href.startswith("http://") or href.startswith("https://"):
        return href
    return f"{base_url}/{href.lstrip('/')}"
