from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from backend.shelf.models.catalog_contracts import CatalogItem, Suggestion, SuggestType
from backend.shelf.services.aladin_client import AladinClient
from backend.shelf.services.fallback import FallbackAttempt, first_available
from backend.shelf.services.http_transport import HttpTransportError
from backend.shelf.services.kakao_client import KakaoBookClient
from backend.shelf.services.tmdb_client import TmdbClient, TmdbMediaType
from backend.shelf.services.yes24_client import Yes24Client

LOGGER = logging.getLogger("notion_shelf.catalog")

T = TypeVar("T")


class CatalogUnavailableError(RuntimeError):
    pass


class CatalogService:
    """Routes searches to the configured catalog providers."""

    def __init__(
        self,
        *,
        aladin: AladinClient | None,
        kakao: KakaoBookClient | None,
        yes24: Yes24Client | None,
        tmdb: TmdbClient | None,
        suggest_limit: int = 5,
    ) -> None:
        self._aladin = aladin
        self._kakao = kakao
        self._yes24 = yes24
        self._tmdb = tmdb
        self._suggest_limit = max(1, suggest_limit)

    def search_books(self, query: str) -> list[CatalogItem]:
        attempts: list[FallbackAttempt[list[CatalogItem]]] = []
        if self._aladin is not None:
            aladin = self._aladin
            attempts.append(FallbackAttempt("aladin", lambda: aladin.search(query)))
        if self._kakao is not None:
            kakao = self._kakao
            attempts.append(FallbackAttempt("kakao", lambda: kakao.search(query)))
        if self._yes24 is not None:
            yes24 = self._yes24
            attempts.append(FallbackAttempt("yes24", lambda: yes24.search(query)))
        if not attempts:
            raise CatalogUnavailableError("No book search provider is configured.")

        outcome = first_available(attempts, chain="book_search")
        if outcome is None:
            raise CatalogUnavailableError("Book search failed on every provider.")
        LOGGER.info("book search source=%s results=%s", outcome.source, len(outcome.value))
        return outcome.value

    def search_ebooks(self, query: str) -> list[CatalogItem]:
        if self._aladin is None:
            raise CatalogUnavailableError("E-book search requires an Aladin TTB key.")
        aladin = self._aladin
        return _single_provider(lambda: aladin.search(query, target="eBook"), provider="aladin")

    def search_movies(self, query: str) -> list[CatalogItem]:
        return self._search_tmdb(query, media_type="movie")

    def search_dramas(self, query: str) -> list[CatalogItem]:
        return self._search_tmdb(query, media_type="tv")

    def suggest(self, query: str, suggest_type: SuggestType = "book") -> list[Suggestion]:
        """Autocomplete entries; failures only ever produce an empty list."""
        try:
            return self._suggest(query, suggest_type)
        except (CatalogUnavailableError, HttpTransportError) as exc:
            LOGGER.debug("suggest degraded type=%s error=%s", suggest_type, exc)
            return []

    def _suggest(self, query: str, suggest_type: SuggestType) -> list[Suggestion]:
        limit = self._suggest_limit
        if suggest_type in ("movie", "drama"):
            if self._tmdb is None:
                return []
            media_type: TmdbMediaType = "movie" if suggest_type == "movie" else "tv"
            return self._tmdb.suggest(query, media_type=media_type, limit=limit)
        if suggest_type == "ebook":
            if self._aladin is None:
                return []
            return self._aladin.suggest(query, limit=limit, target="eBook")

        attempts: list[FallbackAttempt[list[Suggestion]]] = []
        if self._aladin is not None:
            aladin = self._aladin
            attempts.append(FallbackAttempt("aladin", lambda: aladin.suggest(query, limit=limit)))
        if self._kakao is not None:
            kakao = self._kakao
            attempts.append(FallbackAttempt("kakao", lambda: kakao.suggest(query, limit=limit)))
        if self._yes24 is not None:
            yes24 = self._yes24
            attempts.append(FallbackAttempt("yes24", lambda: yes24.suggest(query, limit=limit)))
        outcome = first_available(attempts, chain="book_suggest")
        return outcome.value if outcome is not None else []

    def _search_tmdb(self, query: str, *, media_type: TmdbMediaType) -> list[CatalogItem]:
        if self._tmdb is None:
            raise CatalogUnavailableError("Movie and drama search requires a TMDB API key.")
        tmdb = self._tmdb
        return _single_provider(lambda: tmdb.search(query, media_type=media_type), provider="tmdb")


def _single_provider(run: Callable[[], T], *, provider: str) -> T:
    try:
        return run()
    except HttpTransportError as exc:
        LOGGER.warning(
            "catalog provider failed provider=%s status=%s error=%s",
            provider,
            exc.status_code,
            exc,
        )
        raise CatalogUnavailableError(f"{provider} search failed.") from exc
