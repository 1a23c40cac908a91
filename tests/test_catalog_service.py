from __future__ import annotations

import pytest

from backend.shelf.services.aladin_client import AladinClient
from backend.shelf.services.catalog_service import CatalogService, CatalogUnavailableError
from backend.shelf.services.fallback import FallbackAttempt, first_available
from backend.shelf.services.http_transport import HttpTransportError
from backend.shelf.services.kakao_client import KakaoBookClient
from backend.shelf.services.tmdb_client import TmdbClient
from backend.shelf.services.yes24_client import Yes24Client
from tests.fakes import FakeTransport

ALADIN_SEARCH = "http://www.aladin.co.kr/ttb/api/ItemSearch.aspx"
KAKAO_SEARCH = "https://dapi.kakao.com/v3/search/book"
YES24_SEARCH = "https://www.yes24.com/Product/Search"


def _service(
    transport: FakeTransport,
    *,
    aladin: bool = True,
    kakao: bool = True,
    yes24: bool = True,
    tmdb: bool = True,
) -> CatalogService:
    return CatalogService(
        aladin=AladinClient(transport=transport, ttb_key="k") if aladin else None,
        kakao=KakaoBookClient(transport=transport, api_key="k") if kakao else None,
        yes24=Yes24Client(transport=transport) if yes24 else None,
        tmdb=TmdbClient(transport=transport, api_key="k") if tmdb else None,
        suggest_limit=3,
    )


def _raise_transport_error() -> str | None:
    raise HttpTransportError("down", status_code=500)


def test_first_available_skips_empty_and_failed_attempts() -> None:
    outcome = first_available(
        [
            FallbackAttempt("broken", _raise_transport_error),
            FallbackAttempt("empty", lambda: None),
            FallbackAttempt("answer", lambda: "found"),
            FallbackAttempt("never", lambda: "unused"),
        ],
        chain="test",
    )

    assert outcome is not None
    assert outcome.source == "answer"
    assert outcome.value == "found"


def test_first_available_returns_none_when_nothing_answers() -> None:
    assert first_available([FallbackAttempt("empty", lambda: None)], chain="test") is None


def test_first_available_does_not_swallow_other_errors() -> None:
    def _explode() -> str | None:
        raise KeyError("bug")

    with pytest.raises(KeyError):
        first_available([FallbackAttempt("buggy", _explode)], chain="test")


def test_book_search_falls_back_to_kakao_when_aladin_fails(fake_transport: FakeTransport) -> None:
    fake_transport.add(ALADIN_SEARCH, HttpTransportError("down", status_code=503))
    fake_transport.add(KAKAO_SEARCH, {"documents": [{"title": "채식주의자", "authors": ["한강"]}]})

    books = _service(fake_transport).search_books("채식주의자")

    assert [book.title for book in books] == ["채식주의자"]
    assert fake_transport.calls_to(YES24_SEARCH) == []


def test_empty_primary_answer_still_wins(fake_transport: FakeTransport) -> None:
    fake_transport.add(ALADIN_SEARCH, {"item": []})

    assert _service(fake_transport).search_books("없는 책") == []
    assert fake_transport.calls_to(KAKAO_SEARCH) == []


def test_unconfigured_providers_are_skipped(fake_transport: FakeTransport) -> None:
    fake_transport.add(YES24_SEARCH, '<ul id="yesSchList"></ul>')

    books = _service(fake_transport, aladin=False, kakao=False).search_books("책")

    assert books == []
    assert fake_transport.calls_to(ALADIN_SEARCH) == []


def test_book_search_raises_when_every_provider_fails(fake_transport: FakeTransport) -> None:
    with pytest.raises(CatalogUnavailableError):
        _service(fake_transport).search_books("책")


def test_book_search_without_providers_raises(fake_transport: FakeTransport) -> None:
    service = _service(fake_transport, aladin=False, kakao=False, yes24=False)

    with pytest.raises(CatalogUnavailableError):
        service.search_books("책")


def test_movie_search_requires_tmdb_key(fake_transport: FakeTransport) -> None:
    with pytest.raises(CatalogUnavailableError):
        _service(fake_transport, tmdb=False).search_movies("기생충")


def test_movie_search_failure_is_catalog_error(fake_transport: FakeTransport) -> None:
    fake_transport.add(
        "https://api.themoviedb.org/3/search/movie",
        HttpTransportError("unauthorized", status_code=401),
    )

    with pytest.raises(CatalogUnavailableError):
        _service(fake_transport).search_movies("기생충")


def test_suggest_never_raises(fake_transport: FakeTransport) -> None:
    service = _service(fake_transport)

    assert service.suggest("기생충", "movie") == []
    assert service.suggest("한강", "book") == []
    assert service.suggest("한강", "ebook") == []


def test_book_suggest_uses_limit_and_falls_back(fake_transport: FakeTransport) -> None:
    fake_transport.add(ALADIN_SEARCH, HttpTransportError("down", status_code=503))
    fake_transport.add(
        KAKAO_SEARCH,
        {"documents": [{"title": "소년이 온다", "authors": ["한강"], "datetime": "2014-05-19T00:00:00"}]},
    )

    suggestions = _service(fake_transport).suggest("소년", "book")

    assert [(item.title, item.year, item.author) for item in suggestions] == [
        ("소년이 온다", "2014", "한강")
    ]
    assert fake_transport.calls_to(KAKAO_SEARCH)[0].params["size"] == "3"
