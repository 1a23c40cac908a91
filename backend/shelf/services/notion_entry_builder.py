from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from backend.shelf.models.catalog_contracts import Annotations, CatalogItem, ItemType
from backend.shelf.services.payloads import as_dict, as_str
from backend.shelf.services.taxonomy import GENRE_LIMIT

TITLE_PROPERTY = "이름"
CATEGORY_PROPERTY = "분류"
DATE_PROPERTY = "날짜"
PEOPLE_PROPERTY = "작가/감독"
COUNTRY_PROPERTY = "국가"
GENRE_PROPERTY = "장르"
LENGTH_PROPERTY = "러닝타임"
RATING_PROPERTY = "평점"
TENSE_PROPERTY = "시제"
FILES_PROPERTY = "Files & media"
COVER_FILE_NAME = "표지"

CATEGORY_LABELS: dict[ItemType, str] = {
    "book": "책",
    "movie": "영화",
    "drama": "드라마",
}

AUTHOR_ALIASES = ("저자", "작가", "Author", "author")
PUBLISHER_ALIASES = ("출판사", "Publisher", "publisher")
ISBN_ALIASES = ("ISBN", "isbn")
URL_ALIASES = ("URL", "url", "링크", "Link")
DATE_ALIASES = ("출간일", "출판일", "Date", "date", "날짜")
TYPE_ALIASES = ("유형", "타입", "Type", "type", "카테고리", "Category")


def display_title(item: CatalogItem) -> str:
    year = item.published_date[:4] if item.published_date else ""
    if not year:
        return item.title
    return f"{item.title} ({year})"


def build_entry(
    item: CatalogItem,
    annotations: Annotations,
    *,
    database_id: str,
    today: date,
) -> dict[str, Any]:
    """Page payload for the fixed shelf database layout.

    Optional properties are only written when there is a value, so Notion
    never receives empty selects or zero page counts.
    """
    properties: dict[str, Any] = {
        TITLE_PROPERTY: {"title": [_text(display_title(item))]},
        CATEGORY_PROPERTY: {"select": {"name": CATEGORY_LABELS[item.type]}},
        DATE_PROPERTY: {"date": {"start": today.isoformat()}},
    }
    if item.authors:
        properties[PEOPLE_PROPERTY] = _multi_select(item.authors)
    if item.country:
        properties[COUNTRY_PROPERTY] = _multi_select([item.country])
    if item.genres:
        properties[GENRE_PROPERTY] = _multi_select(item.genres[:GENRE_LIMIT])
    if item.numeric_fact > 0:
        properties[LENGTH_PROPERTY] = {"number": item.numeric_fact}
    if annotations.rating:
        properties[RATING_PROPERTY] = {"select": {"name": annotations.rating}}
    if annotations.tense:
        properties[TENSE_PROPERTY] = {"select": {"name": annotations.tense}}

    children: list[dict[str, Any]] = []
    if item.thumbnail:
        properties[FILES_PROPERTY] = {
            "files": [
                {
                    "type": "external",
                    "name": COVER_FILE_NAME,
                    "external": {"url": item.thumbnail},
                }
            ]
        }
        children.append(
            {
                "object": "block",
                "type": "image",
                "image": {"type": "external", "external": {"url": item.thumbnail}},
            }
        )

    return {
        "parent": {"database_id": database_id},
        "properties": properties,
        "children": children,
    }


def build_entry_from_schema(
    item: CatalogItem,
    annotations: Annotations,
    *,
    database_id: str,
    schema: Mapping[str, Any],
) -> dict[str, Any]:
    """Page payload for an arbitrary database, matching properties by name.

    Each field lands on the first property whose name is one of its aliases,
    shaped by that property's declared type. Fields with no matching property,
    or with a property type we cannot write, are left out.
    """
    property_types = _property_types(schema)
    properties: dict[str, Any] = {}

    title_name = next((name for name, kind in property_types.items() if kind == "title"), None)
    if title_name is not None:
        properties[title_name] = {"title": [_text(item.title)]}

    label = CATEGORY_LABELS[item.type]
    fields: list[tuple[tuple[str, ...], list[str]]] = [
        (AUTHOR_ALIASES, item.authors),
        (PUBLISHER_ALIASES, [item.publisher] if item.publisher else []),
        (ISBN_ALIASES, [item.isbn] if item.isbn else []),
        (URL_ALIASES, [item.url] if item.url else []),
        (DATE_ALIASES, [item.published_date] if item.published_date else []),
        (TYPE_ALIASES, [label]),
        ((RATING_PROPERTY,), [annotations.rating] if annotations.rating else []),
        ((TENSE_PROPERTY,), [annotations.tense] if annotations.tense else []),
    ]
    for aliases, values in fields:
        if not values:
            continue
        name = _find_property(property_types, aliases)
        if name is None or name in properties:
            continue
        shaped = shape_property_value(property_types[name], values)
        if shaped is not None:
            properties[name] = shaped

    body: dict[str, Any] = {"parent": {"database_id": database_id}, "properties": properties}
    if item.thumbnail:
        body["cover"] = {"type": "external", "external": {"url": item.thumbnail}}
        body["icon"] = {"type": "external", "external": {"url": item.thumbnail}}
    return body


def shape_property_value(property_type: str, values: list[str]) -> dict[str, Any] | None:
    if not values:
        return None
    if property_type == "rich_text":
        return {"rich_text": [_text(", ".join(values))]}
    if property_type == "multi_select":
        return _multi_select(values)
    if property_type == "select":
        return {"select": {"name": values[0]}}
    if property_type == "url":
        return {"url": values[0]}
    if property_type == "date":
        return {"date": {"start": values[0]}}
    return None


def _property_types(schema: Mapping[str, Any]) -> dict[str, str]:
    types: dict[str, str] = {}
    for name, definition in schema.items():
        kind = as_str(as_dict(definition).get("type"))
        if kind is not None:
            types[name] = kind
    return types


def _find_property(property_types: Mapping[str, str], aliases: tuple[str, ...]) -> str | None:
    # Schema order decides ties, the same way a reader scans the database.
    for name in property_types:
        if name in aliases:
            return name
    return None


def _text(content: str) -> dict[str, Any]:
    return {"text": {"content": content}}


def _multi_select(names: list[str]) -> dict[str, Any]:
    return {"multi_select": [{"name": name} for name in names]}
