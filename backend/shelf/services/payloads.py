from __future__ import annotations

import re
from typing import Any, cast

_HANGUL = re.compile(r"[가-힣]")


def as_str(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
    return None


def as_dict(value: object) -> dict[str, Any]:
    if not isinstance(value, dict):
        return {}
    raw = cast(dict[object, object], value)
    return {key: item for key, item in raw.items() if isinstance(key, str)}


def dict_entries(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [as_dict(entry) for entry in cast(list[object], value) if isinstance(entry, dict)]


def str_entries(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    output: list[str] = []
    for entry in cast(list[object], value):
        text = as_str(entry)
        if text is not None:
            output.append(text)
    return output


def has_hangul(value: str | None) -> bool:
    return value is not None and _HANGUL.search(value) is not None
