from __future__ import annotations

from typing import Any

from backend.shelf.services.http_transport import HttpTransportError
from backend.shelf.services.tmdb_client import Person, TmdbClient
from tests.fakes import FakeTransport

TMDB = "https://api.themoviedb.org/3"


def _client(transport: FakeTransport) -> TmdbClient:
    return TmdbClient(transport=transport, api_key="test-tmdb-key")


def _movie_hit(**overrides: Any) -> dict[str, Any]:
    hit: dict[str, Any] = {
        "id": 496243,
        "title": "기생충",
        "release_date": "2019-05-30",
        "poster_path": "/poster.jpg",
        "genre_ids": [35, 53, 18],
    }
    hit.update(overrides)
    return hit


def test_movie_search_reads_detail_and_keeps_hangul_director(fake_transport: FakeTransport) -> None:
    fake_transport.add(f"{TMDB}/search/movie", {"results": [_movie_hit()]})
    fake_transport.add(
        f"{TMDB}/movie/496243",
        {
            "runtime": 132,
            "origin_country": ["KR"],
            "credits": {
                "crew": [
                    {"id": 21684, "name": "봉준호", "job": "Director"},
                    {"id": 1, "name": "Hong Kyung-pyo", "job": "Director of Photography"},
                ]
            },
        },
    )

    items = _client(fake_transport).search("기생충", media_type="movie")

    assert len(items) == 1
    movie = items[0]
    assert movie.type == "movie"
    assert movie.authors == ["봉준호"]
    assert movie.runtime == 132
    assert movie.total_episodes == 0
    assert movie.country == "한국"
    assert movie.genres == ["코미디", "스릴러", "드라마"]
    assert movie.thumbnail == "https://image.tmdb.org/t/p/w500/poster.jpg"
    assert movie.url == "https://www.themoviedb.org/movie/496243"
    assert movie.published_date == "2019-05-30"
    assert fake_transport.calls_to(f"{TMDB}/person/21684") == []

    search_call = fake_transport.calls_to(f"{TMDB}/search/movie")[0]
    assert search_call.params["language"] == "ko-KR"
    detail_call = fake_transport.calls_to(f"{TMDB}/movie/496243")[0]
    assert detail_call.params["append_to_response"] == "credits"


def test_person_name_uses_also_known_as_before_translations(fake_transport: FakeTransport) -> None:
    fake_transport.add(
        f"{TMDB}/person/138",
        {"also_known_as": ["Quentin Jerome Tarantino", "쿠엔틴 타란티노"]},
    )

    name = _client(fake_transport).localize_name(Person(person_id=138, name="Quentin Tarantino"))

    assert name == "쿠엔틴 타란티노"
    assert fake_transport.calls_to(f"{TMDB}/person/138/translations") == []


def test_person_name_falls_back_to_translations(fake_transport: FakeTransport) -> None:
    fake_transport.add(f"{TMDB}/person/525", {"also_known_as": ["Chris Nolan"]})
    fake_transport.add(
        f"{TMDB}/person/525/translations",
        {
            "translations": [
                {"iso_639_1": "ja", "data": {"name": "クリストファー・ノーラン"}},
                {"iso_639_1": "ko", "data": {"name": "크리스토퍼 놀란"}},
            ]
        },
    )

    name = _client(fake_transport).localize_name(Person(person_id=525, name="Christopher Nolan"))

    assert name == "크리스토퍼 놀란"


def test_person_name_keeps_original_when_every_lookup_fails(fake_transport: FakeTransport) -> None:
    fake_transport.add(f"{TMDB}/person/7", HttpTransportError("down", status_code=502))
    fake_transport.add(f"{TMDB}/person/7/translations", {"translations": []})

    name = _client(fake_transport).localize_name(Person(person_id=7, name="Some Director"))

    assert name == "Some Director"


def test_drama_search_prefers_creators_and_counts_episodes(fake_transport: FakeTransport) -> None:
    fake_transport.add(
        f"{TMDB}/search/tv",
        {
            "results": [
                {
                    "id": 93405,
                    "name": "오징어 게임",
                    "first_air_date": "2021-09-17",
                    "genre_ids": [10759, 9648, 18],
                    "origin_country": ["KR"],
                }
            ]
        },
    )
    fake_transport.add(
        f"{TMDB}/tv/93405",
        {
            "number_of_episodes": 9,
            "origin_country": ["KR"],
            "created_by": [{"id": 1, "name": "황동혁"}],
            "credits": {"crew": [{"id": 2, "name": "Someone Else", "job": "Director"}]},
        },
    )

    items = _client(fake_transport).search("오징어 게임", media_type="tv")

    drama = items[0]
    assert drama.type == "drama"
    assert drama.authors == ["황동혁"]
    assert drama.total_episodes == 9
    assert drama.runtime == 0
    assert drama.genres == ["액션", "미스터리", "드라마"]
    assert drama.url == "https://www.themoviedb.org/tv/93405"
    assert drama.thumbnail is None


def test_failed_detail_degrades_to_search_hit(fake_transport: FakeTransport) -> None:
    fake_transport.add(
        f"{TMDB}/search/tv",
        {"results": [{"id": 5, "name": "Dark", "genre_ids": [80], "origin_country": ["DE"]}]},
    )
    fake_transport.add(f"{TMDB}/tv/5", HttpTransportError("timeout", status_code=None))

    items = _client(fake_transport).search("Dark", media_type="tv")

    assert items[0].authors == []
    assert items[0].total_episodes == 0
    assert items[0].country == "독일"
    assert items[0].genres == ["범죄"]


def test_search_caps_hits_and_skips_untitled(fake_transport: FakeTransport) -> None:
    hits = [_movie_hit(id=index, title=f"영화 {index}") for index in range(1, 15)]
    hits.insert(0, _movie_hit(id=99, title=""))
    fake_transport.add(f"{TMDB}/search/movie", {"results": hits})

    items = _client(fake_transport).search("영화", media_type="movie")

    assert len(items) == 9
    assert all(item.title.startswith("영화") for item in items)


def test_suggest_returns_titles_and_years(fake_transport: FakeTransport) -> None:
    fake_transport.add(f"{TMDB}/search/movie", {"results": [_movie_hit(), _movie_hit(id=2, title="마더")]})

    suggestions = _client(fake_transport).suggest("봉", media_type="movie", limit=1)

    assert [(suggestion.title, suggestion.year) for suggestion in suggestions] == [("기생충", "2019")]
    assert fake_transport.calls_to(f"{TMDB}/movie/496243") == []
