from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

TelemetryValue = bool | int | float | str | None
ProviderOutcome = Literal["ok", "http_error", "network_error"]

_SENSITIVE_ATTRIBUTE_TOKENS = ("api_key", "authorization", "body", "secret", "token", "ttbkey")
_SENSITIVE_QUERY_PARAMS = frozenset({"api_key", "ttbkey"})
_MAX_STRING_LENGTH = 200
_MAX_LIST_ITEMS = 5

# Host suffix -> provider label used on provider.request.* events.
PROVIDER_HOSTS: tuple[tuple[str, str], ...] = (
    ("aladin.co.kr", "aladin"),
    ("kakao.com", "kakao"),
    ("yes24.com", "yes24"),
    ("themoviedb.org", "tmdb"),
    ("notion.com", "notion"),
)


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        _ = (event_name, attributes)


class StructuredLogTelemetrySink:
    def __init__(self) -> None:
        self._logger = structlog.get_logger("notion_shelf.telemetry")

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **dict(attributes))


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if not self.enabled:
            return
        self.sink.emit(event_name=event_name, attributes=_sanitize_attributes(attributes))

    def emit_provider_call(
        self,
        *,
        method: str,
        url: str,
        status_code: int | None,
        duration_ms: int,
    ) -> None:
        if not self.enabled:
            return
        self.emit(
            "provider.request.finish",
            provider=provider_for_url(url),
            outcome=classify_outcome(status_code),
            method=method,
            url=url,
            status_code=status_code,
            duration_ms=duration_ms,
        )


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if not enabled or sink == "none":
        return TelemetryClient.disabled()
    if sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())

    logging.getLogger("notion_shelf.telemetry").warning(
        "unsupported telemetry sink requested; disabling telemetry sink=%s",
        sink,
    )
    return TelemetryClient.disabled()


def provider_for_url(url: str) -> str:
    host = urlsplit(url).hostname or ""
    for suffix, provider in PROVIDER_HOSTS:
        if host == suffix or host.endswith(f".{suffix}"):
            return provider
    return "other"


def classify_outcome(status_code: int | None) -> ProviderOutcome:
    if status_code is None:
        return "network_error"
    if status_code >= 400:
        return "http_error"
    return "ok"


def redact_url(url: str) -> str:
    """Mask credential query parameters so provider URLs can be logged."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, "[redacted]" if key.lower() in _SENSITIVE_QUERY_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="[]")))


def _sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, TelemetryValue]:
    sanitized: dict[str, TelemetryValue] = {}
    for raw_key, raw_value in attributes.items():
        key = str(raw_key).strip().lower()
        if not key:
            continue
        if any(token in key for token in _SENSITIVE_ATTRIBUTE_TOKENS):
            sanitized[key] = "[redacted]"
        elif key == "url" and isinstance(raw_value, str):
            sanitized[key] = _compact(redact_url(raw_value))
        else:
            sanitized[key] = _sanitize_value(raw_value)
    return sanitized


def _sanitize_value(value: Any) -> TelemetryValue:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, str):
        return _compact(value)
    # Genre and author lists are the common non-scalar attributes.
    if isinstance(value, list | tuple) and all(isinstance(entry, str) for entry in value):
        entries = [str(entry) for entry in value]
        suffix = f" (+{len(entries) - _MAX_LIST_ITEMS})" if len(entries) > _MAX_LIST_ITEMS else ""
        return _compact(", ".join(entries[:_MAX_LIST_ITEMS]) + suffix)
    return type(value).__name__


def _compact(text: str) -> str:
    compact = " ".join(text.split())
    if len(compact) <= _MAX_STRING_LENGTH:
        return compact
    return f"{compact[:_MAX_STRING_LENGTH]}..."
