from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlencode

from backend.shelf.models.catalog_contracts import CatalogItem, Suggestion
from backend.shelf.services.fallback import FallbackAttempt, first_available
from backend.shelf.services.http_transport import HttpTransport, HttpTransportError
from backend.shelf.services.payloads import (
    as_dict,
    as_int,
    as_str,
    dict_entries,
    has_hangul,
    str_entries,
)
from backend.shelf.services.taxonomy import classify_tmdb

LOGGER = logging.getLogger("notion_shelf.tmdb")

TmdbMediaType = Literal["movie", "tv"]

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
WEB_BASE_URL = "https://www.themoviedb.org"
SEARCH_LANGUAGE = "ko-KR"
TRANSLATION_LANGUAGE = "ko"


@dataclass(frozen=True)
class Person:
    person_id: int | None
    name: str


@dataclass(frozen=True)
class _Detail:
    runtime: int
    total_episodes: int
    country_codes: list[str]
    people: list[Person]


class TmdbClient:
    def __init__(
        self,
        *,
        transport: HttpTransport,
        api_key: str,
        base_url: str = "https://api.themoviedb.org/3",
        max_results: int = 10,
        max_workers: int = 8,
    ) -> None:
        self._transport = transport
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_results = max(1, max_results)
        self._max_workers = max(1, max_workers)

    def search(self, query: str, *, media_type: TmdbMediaType) -> list[CatalogItem]:
        hits = [
            hit
            for hit in self._search_hits(query, media_type=media_type)[: self._max_results]
            if as_int(hit.get("id")) is not None and _hit_title(hit, media_type) is not None
        ]
        if not hits:
            return []

        workers = min(self._max_workers, len(hits))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            details = list(executor.map(lambda hit: self._fetch_detail(hit, media_type), hits))

        localized = self._localize_people(
            person for detail in details if detail is not None for person in detail.people
        )
        return [
            _item_from_hit(hit, detail, media_type=media_type, localized_names=localized)
            for hit, detail in zip(hits, details, strict=True)
        ]

    def suggest(self, query: str, *, media_type: TmdbMediaType, limit: int) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for hit in self._search_hits(query, media_type=media_type)[: max(1, limit)]:
            title = _hit_title(hit, media_type)
            if title is None:
                continue
            released = _hit_date(hit, media_type)
            suggestions.append(Suggestion(title=title, year=released[:4] if released else None))
        return suggestions

    def localize_name(self, person: Person) -> str:
        """Best Korean rendering of a person's name, or the name TMDB gave us."""
        attempts: list[FallbackAttempt[str]] = [
            FallbackAttempt("original", lambda: person.name if has_hangul(person.name) else None),
        ]
        if person.person_id is not None:
            person_id = person.person_id
            attempts.append(FallbackAttempt("also_known_as", lambda: self._name_from_aliases(person_id)))
            attempts.append(
                FallbackAttempt("translations", lambda: self._name_from_translations(person_id))
            )
        outcome = first_available(attempts, chain="tmdb.person_name")
        if outcome is None:
            return person.name
        return outcome.value

    def _search_hits(self, query: str, *, media_type: TmdbMediaType) -> list[dict[str, Any]]:
        params = {
            "api_key": self._api_key,
            "query": query,
            "language": SEARCH_LANGUAGE,
            "include_adult": "false",
            "page": "1",
        }
        payload = self._transport.get_json(
            f"{self._base_url}/search/{media_type}?{urlencode(params)}"
        )
        return dict_entries(payload.get("results"))

    def _fetch_detail(self, hit: dict[str, Any], media_type: TmdbMediaType) -> _Detail | None:
        tmdb_id = as_int(hit.get("id"))
        params = {
            "api_key": self._api_key,
            "language": SEARCH_LANGUAGE,
            "append_to_response": "credits",
        }
        try:
            payload = self._transport.get_json(
                f"{self._base_url}/{media_type}/{tmdb_id}?{urlencode(params)}"
            )
        except HttpTransportError as exc:
            LOGGER.debug("tmdb detail degraded media_type=%s id=%s error=%s", media_type, tmdb_id, exc)
            return None
        return _detail_from_payload(payload, media_type=media_type)

    def _localize_people(self, people: Iterable[Person]) -> dict[Person, str]:
        unique: list[Person] = []
        for person in people:
            if person not in unique:
                unique.append(person)
        if not unique:
            return {}
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(unique))) as executor:
            names = list(executor.map(self.localize_name, unique))
        return dict(zip(unique, names, strict=True))

    def _name_from_aliases(self, person_id: int) -> str | None:
        params = {"api_key": self._api_key, "language": SEARCH_LANGUAGE}
        payload = self._transport.get_json(
            f"{self._base_url}/person/{person_id}?{urlencode(params)}"
        )
        for alias in str_entries(payload.get("also_known_as")):
            if has_hangul(alias):
                return alias
        return None

    def _name_from_translations(self, person_id: int) -> str | None:
        params = {"api_key": self._api_key}
        payload = self._transport.get_json(
            f"{self._base_url}/person/{person_id}/translations?{urlencode(params)}"
        )
        for translation in dict_entries(payload.get("translations")):
            if as_str(translation.get("iso_639_1")) != TRANSLATION_LANGUAGE:
                continue
            name = as_str(as_dict(translation.get("data")).get("name"))
            if name is not None:
                return name
        return None


def _detail_from_payload(payload: dict[str, Any], *, media_type: TmdbMediaType) -> _Detail:
    credits = as_dict(payload.get("credits"))
    directors = [
        person
        for crew in dict_entries(credits.get("crew"))
        if as_str(crew.get("job")) == "Director"
        for person in [_person_from_entry(crew)]
        if person is not None
    ]
    if media_type == "movie":
        people = directors
    else:
        creators = [
            person
            for entry in dict_entries(payload.get("created_by"))
            for person in [_person_from_entry(entry)]
            if person is not None
        ]
        people = creators or directors

    return _Detail(
        runtime=as_int(payload.get("runtime")) or 0,
        total_episodes=as_int(payload.get("number_of_episodes")) or 0,
        country_codes=_country_codes(payload),
        people=people,
    )


def _person_from_entry(entry: dict[str, Any]) -> Person | None:
    name = as_str(entry.get("name"))
    if name is None:
        return None
    return Person(person_id=as_int(entry.get("id")), name=name)


def _country_codes(payload: dict[str, Any]) -> list[str]:
    codes = str_entries(payload.get("origin_country"))
    if codes:
        return codes
    return [
        code
        for entry in dict_entries(payload.get("production_countries"))
        for code in [as_str(entry.get("iso_3166_1"))]
        if code is not None
    ]


def _item_from_hit(
    hit: dict[str, Any],
    detail: _Detail | None,
    *,
    media_type: TmdbMediaType,
    localized_names: dict[Person, str],
) -> CatalogItem:
    tmdb_id = as_int(hit.get("id"))
    poster_path = as_str(hit.get("poster_path"))
    country_codes = detail.country_codes if detail is not None else str_entries(hit.get("origin_country"))
    classification = classify_tmdb(_genre_ids(hit), country_codes)

    authors: list[str] = []
    if detail is not None:
        for person in detail.people:
            name = localized_names.get(person, person.name)
            if name not in authors:
                authors.append(name)

    return CatalogItem(
        title=_hit_title(hit, media_type) or "",
        authors=authors,
        thumbnail=f"{POSTER_BASE_URL}{poster_path}" if poster_path else None,
        published_date=_hit_date(hit, media_type),
        url=f"{WEB_BASE_URL}/{media_type}/{tmdb_id}",
        genres=classification.genres,
        country=classification.country,
        type="movie" if media_type == "movie" else "drama",
        runtime=detail.runtime if detail is not None and media_type == "movie" else 0,
        total_episodes=detail.total_episodes if detail is not None and media_type == "tv" else 0,
    )


def _genre_ids(hit: dict[str, Any]) -> list[int]:
    raw_ids = hit.get("genre_ids")
    if not isinstance(raw_ids, list):
        return []
    return [genre_id for genre_id in (as_int(value) for value in raw_ids) if genre_id is not None]


def _hit_title(hit: dict[str, Any], media_type: TmdbMediaType) -> str | None:
    return as_str(hit.get("title" if media_type == "movie" else "name"))


def _hit_date(hit: dict[str, Any], media_type: TmdbMediaType) -> str | None:
    return as_str(hit.get("release_date" if media_type == "movie" else "first_air_date"))
