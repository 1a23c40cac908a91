from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

LOGGER = logging.getLogger("notion_shelf.taxonomy")

GENRE_LIMIT = 3
HOME_COUNTRY = "한국"
DOMESTIC_TOP_SEGMENT = "국내도서"
PATH_DELIMITER = ">"
SUBPART_DELIMITER = "/"
FICTION = "소설"


class TagState(Enum):
    MAPPED = "mapped"
    IGNORED = "ignored"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TagMatch:
    state: TagState
    tag: str | None = None


@dataclass(frozen=True)
class Classification:
    genres: list[str]
    country: str | None


# Precedence order matters: the first country whose keyword appears wins.
COUNTRY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("한국", ("한국",)),
    ("독일", ("독일", "독문")),
    ("영국", ("영국",)),
    ("미국", ("미국",)),
    ("프랑스", ("프랑스", "불문")),
    ("일본", ("일본", "일문")),
    ("중국", ("중국", "중문")),
    ("스페인", ("스페인",)),
    ("러시아", ("러시아",)),
    ("이탈리아", ("이탈리아",)),
)

COUNTRY_PREFIXES: tuple[str, ...] = (
    *(keyword for _, keywords in COUNTRY_KEYWORDS for keyword in keywords),
    "영미",
    "세계의",
)

# None means "known category, do not tag".
GENRE_TABLE: dict[str, str | None] = {
    # 문학
    "소설": "소설", "장편소설": "소설", "단편소설": "소설", "연작소설": "소설",
    "시": "시", "시집": "시", "에세이": "에세이", "산문": "에세이",
    "희곡": "드라마", "수필": "에세이",
    # 장르 소설
    "장르소설": None,
    "추리": "미스터리", "미스터리": "미스터리", "추리소설": "미스터리",
    "스릴러": "스릴러", "공포": "스릴러", "호러": "스릴러",
    "SF": "SF", "SF소설": "SF", "과학소설": "SF",
    "판타지": "판타지", "판타지소설": "판타지",
    "로맨스": "로맨스", "로맨스소설": "로맨스",
    "역사소설": "역사", "대체역사소설": "역사",
    "모험소설": "모험", "모험": "모험",
    "무협": "액션", "무협소설": "액션", "액션": "액션",
    "코미디": "코미디", "유머": "코미디",
    "가족": "가족", "범죄": "범죄", "전쟁": "전쟁",
    "BL": "로맨스", "BL소설": "로맨스",
    # 비문학
    "경제경영": "경제/경영", "경제": "경제/경영", "경영": "경제/경영",
    "재테크": "경제/경영", "투자": "경제/경영", "마케팅": "경제/경영",
    "창업": "경제/경영", "부동산": "경제/경영",
    "인문학": "인문학", "인문": "인문학", "철학": "인문학",
    "문학비평": "인문학", "언어학": "인문학", "교양": "인문학",
    "자기계발": "자기계발", "처세술": "자기계발", "성공학": "자기계발",
    "리더십": "자기계발", "시간관리": "자기계발",
    "사회과학": "사회과학", "사회": "사회과학", "정치": "사회과학",
    "법": "사회과학", "외교": "사회과학", "행정": "사회과학",
    "르포": "사회과학", "논픽션": "사회과학", "다큐멘터리": "사회과학",
    "심리학": "심리학", "심리": "심리학", "정신분석": "심리학",
    "상담": "심리학", "정신건강": "심리학",
    "역사": "역사", "세계사": "역사", "동양사": "역사", "서양사": "역사",
    "한국사": "역사", "문화사": "역사",
    "과학": "과학", "수학": "과학", "물리학": "과학",
    "생물학": "과학", "천문학": "과학", "공학": "과학",
    "기술공학": "과학", "자연": "과학", "환경": "과학",
    "IT": "IT", "컴퓨터": "IT", "모바일": "IT", "프로그래밍": "IT",
    # 기타
    "만화": "애니메이션", "코믹스": "애니메이션", "그래픽노블": "애니메이션",
    "라이트노벨": "소설", "웹소설": "소설",
    "예술": "예술", "대중문화": "예술",
    "음악": "예술", "영화": "예술", "사진": "예술",
    "건축": "예술", "디자인": "예술", "미술": "예술",
    "종교": "종교", "역학": "종교", "신화": "종교",
    "명상": "종교", "점술": "종교",
    "여행": "여행", "여행에세이": "여행",
    "건강": "건강", "스포츠": "건강", "취미": "건강",
    "레저": "건강", "원예": "건강",
    "요리": "요리", "살림": "요리",
    "문화": "인문학", "문학": "소설",
    # 태그로 쓰지 않는 카테고리
    "뷰티": None, "가정": None, "인테리어": None,
    "육아": None, "어린이": None, "유아": None, "청소년": None,
    "수험서": None, "자격증": None, "외국어": None, "국어": None,
    "사전": None, "대학교재": None, "잡지": None, "교육": None,
    "좋은부모": None, "공무원": None, "기타": None,
    "달력": None, "전집": None, "중고전집": None,
    "초등학교참고서": None, "중학교참고서": None, "고등학교참고서": None,
    "ELT": None, "어학": None, "영어학습": None,
    "동화책": None, "그림책": None, "챕터북": None, "코스북": None, "리더스": None,
    "공예": None, "수집": None, "해외잡지": None,
}

# Aladin categories whose "/" joins alternatives of one concept, never a list of tags.
GROUP_CATEGORY_TABLE: dict[str, str | None] = {
    "소설/시/희곡": None,
    "건강/취미": "건강", "건강/스포츠": "건강",
    "요리/살림": "요리", "경제/경영": "경제/경영",
    "종교/역학": "종교", "종교/명상/점술": "종교",
    "예술/대중문화": "예술", "인문/사회": "인문학",
    "수험서/자격증": None, "만화/라이트노벨": "애니메이션",
    "판타지/무협": "판타지", "컴퓨터/모바일": "IT",
    "공예/취미/수집": None, "가정/원예/인테리어": None,
    "ELT/어학/사전": None,
}

FICTION_SUBGENRES: frozenset[str] = frozenset(
    {"미스터리", "스릴러", "SF", "판타지", "로맨스", "액션", "모험", "범죄"}
)

# TMDB genre ids, movie and tv lists merged.
TMDB_GENRE_TABLE: dict[int, str | None] = {
    28: "액션",
    12: "모험",
    16: "애니메이션",
    35: "코미디",
    80: "범죄",
    99: None,
    18: "드라마",
    10751: "가족",
    14: "판타지",
    36: "역사",
    27: "스릴러",
    10402: "예술",
    9648: "미스터리",
    10749: "로맨스",
    878: "SF",
    10770: None,
    53: "스릴러",
    10752: "전쟁",
    37: None,
    10759: "액션",
    10762: None,
    10763: None,
    10764: None,
    10765: "SF",
    10766: "드라마",
    10767: None,
    10768: "전쟁",
}

COUNTRY_CODE_TABLE: dict[str, str] = {
    "KR": "한국",
    "DE": "독일",
    "GB": "영국",
    "US": "미국",
    "FR": "프랑스",
    "JP": "일본",
    "CN": "중국",
    "ES": "스페인",
    "RU": "러시아",
    "IT": "이탈리아",
    "TW": "대만",
    "HK": "홍콩",
    "IN": "인도",
    "CA": "캐나다",
    "AU": "호주",
}

_EXCLUDED_AUTHOR_ROLE = re.compile(r"\((옮긴이|역자|번역|그림|일러스트|편집|감수|엮은이|사진)\)")
_PARENTHETICAL = re.compile(r"\s*\(.*?\)\s*")


def lookup_tag(table: Mapping[Any, str | None], key: object) -> TagMatch:
    if key not in table:
        return TagMatch(TagState.UNKNOWN)
    tag = table[key]
    if tag is None:
        return TagMatch(TagState.IGNORED)
    return TagMatch(TagState.MAPPED, tag)


def classify_category_path(category_path: str | None) -> Classification:
    if not category_path:
        return Classification(genres=[], country=None)
    parts = [part.strip() for part in category_path.split(PATH_DELIMITER)]
    return Classification(
        genres=infer_genres(parts)[:GENRE_LIMIT],
        country=infer_country(parts),
    )


def infer_country(parts: list[str]) -> str | None:
    if not parts:
        return None
    sub_segments = " ".join(parts[1:])
    for country, keywords in COUNTRY_KEYWORDS:
        if country == HOME_COUNTRY:
            continue
        if any(keyword in sub_segments for keyword in keywords):
            return country
    if parts[0] == DOMESTIC_TOP_SEGMENT:
        return HOME_COUNTRY
    return None


def infer_genres(parts: list[str]) -> list[str]:
    genres: list[str] = []

    def _accept(match: TagMatch) -> None:
        if match.state is TagState.MAPPED and match.tag not in genres:
            assert match.tag is not None
            genres.append(match.tag)

    # Most specific segment first, so the broader parents only fill gaps.
    for segment in reversed(parts[1:]):
        if not segment:
            continue
        group_match = lookup_tag(GROUP_CATEGORY_TABLE, segment)
        if group_match.state is not TagState.UNKNOWN:
            _accept(group_match)
            continue
        for sub_part in segment.split(SUBPART_DELIMITER):
            token = strip_country_prefix(sub_part.strip())
            if not token:
                continue
            match = lookup_tag(GENRE_TABLE, token)
            if match.state is TagState.UNKNOWN:
                LOGGER.debug("unmapped category token token=%s", token)
            _accept(match)

    if FICTION not in genres and any(genre in FICTION_SUBGENRES for genre in genres):
        genres.append(FICTION)
    return genres


def strip_country_prefix(token: str) -> str:
    for prefix in COUNTRY_PREFIXES:
        if token.startswith(prefix):
            return token[len(prefix):].strip()
    return token


def classify_tmdb(genre_ids: Iterable[object], country_codes: Iterable[object]) -> Classification:
    genres: list[str] = []
    for raw_id in genre_ids:
        if not isinstance(raw_id, int) or isinstance(raw_id, bool):
            continue
        match = lookup_tag(TMDB_GENRE_TABLE, raw_id)
        if match.state is TagState.MAPPED and match.tag not in genres:
            assert match.tag is not None
            genres.append(match.tag)
        elif match.state is TagState.UNKNOWN:
            LOGGER.debug("unmapped tmdb genre id=%s", raw_id)
    return Classification(genres=genres[:GENRE_LIMIT], country=country_from_codes(country_codes))


def country_from_codes(country_codes: Iterable[object]) -> str | None:
    for code in country_codes:
        if not isinstance(code, str):
            continue
        country = COUNTRY_CODE_TABLE.get(code.strip().upper())
        if country is not None:
            return country
    return None


def parse_authors(raw_authors: str | None) -> list[str]:
    """Split an Aladin author string, keeping only the people credited as authors.

    ``"한강 (지은이), 데보라 스미스 (옮긴이)"`` becomes ``["한강"]``.
    """
    if not raw_authors:
        return []
    authors: list[str] = []
    for part in raw_authors.split(","):
        trimmed = part.strip()
        if _EXCLUDED_AUTHOR_ROLE.search(trimmed):
            continue
        name = _PARENTHETICAL.sub("", trimmed).strip()
        if name:
            authors.append(name)
    return authors
