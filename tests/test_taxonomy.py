from __future__ import annotations

from backend.shelf.services.taxonomy import (
    GENRE_TABLE,
    TagMatch,
    TagState,
    classify_category_path,
    classify_tmdb,
    infer_country,
    lookup_tag,
    parse_authors,
    strip_country_prefix,
)


def test_lookup_tag_distinguishes_mapped_ignored_and_unknown() -> None:
    assert lookup_tag(GENRE_TABLE, "추리") == TagMatch(TagState.MAPPED, "미스터리")
    assert lookup_tag(GENRE_TABLE, "어린이") == TagMatch(TagState.IGNORED)
    assert lookup_tag(GENRE_TABLE, "우주여행") == TagMatch(TagState.UNKNOWN)


def test_classify_japanese_mystery_path() -> None:
    result = classify_category_path("국내도서>소설/시/희곡>일본소설>추리/미스터리소설")

    assert result.country == "일본"
    assert result.genres == ["미스터리", "소설"]


def test_classify_domestic_essay_defaults_to_home_country() -> None:
    result = classify_category_path("국내도서>에세이>한국에세이")

    assert result.country == "한국"
    assert result.genres == ["에세이"]


def test_foreign_keyword_in_domestic_path_wins_over_home_country() -> None:
    result = classify_category_path("국내도서>소설/시/희곡>독일소설")

    assert result.country == "독일"
    assert result.genres == ["소설"]


def test_country_precedence_follows_keyword_order() -> None:
    # 독일 precedes 일본 in precedence even when 일본 appears first in the path.
    assert infer_country(["외국도서", "일본문학", "독문학"]) == "독일"
    assert infer_country(["외국도서", "불문학"]) == "프랑스"


def test_unmapped_foreign_path_has_no_country() -> None:
    assert infer_country(["외국도서", "Fiction"]) is None
    assert infer_country([]) is None


def test_group_category_maps_as_a_whole() -> None:
    result = classify_category_path("국내도서>경제/경영>재테크/투자")

    assert result.genres == ["경제/경영"]


def test_ignored_segments_contribute_nothing() -> None:
    result = classify_category_path("국내도서>어린이>동화책")

    assert result.genres == []
    assert result.country == "한국"


def test_three_subgenres_drop_the_fiction_tag() -> None:
    result = classify_category_path("국내도서>소설/시/희곡>추리/스릴러/SF")

    assert len(result.genres) == 3
    assert "소설" not in result.genres
    assert set(result.genres) == {"미스터리", "스릴러", "SF"}


def test_genres_are_unique() -> None:
    result = classify_category_path("국내도서>소설/시/희곡>장편소설>단편소설")

    assert result.genres == ["소설"]


def test_empty_category_path() -> None:
    result = classify_category_path(None)

    assert result.genres == []
    assert result.country is None


def test_strip_country_prefix() -> None:
    assert strip_country_prefix("영미소설") == "소설"
    assert strip_country_prefix("세계의역사") == "역사"
    assert strip_country_prefix("철학") == "철학"


def test_classify_tmdb_maps_ids_and_country() -> None:
    result = classify_tmdb([18, 80, 99, 9648, 53], ["KR"])

    assert result.genres == ["드라마", "범죄", "미스터리"]
    assert result.country == "한국"


def test_classify_tmdb_deduplicates_thriller_ids() -> None:
    result = classify_tmdb([27, 53, 123456], ["ZZ", "US"])

    assert result.genres == ["스릴러"]
    assert result.country == "미국"


def test_parse_authors_drops_translators_and_illustrators() -> None:
    raw = "한강 (지은이), 데보라 스미스 (옮긴이), 홍길동 (그림)"

    assert parse_authors(raw) == ["한강"]


def test_parse_authors_strips_role_markers() -> None:
    assert parse_authors("무라카미 하루키 (지은이),  김난주(옮긴이)") == ["무라카미 하루키"]
    assert parse_authors("") == []
    assert parse_authors(None) == []
