from __future__ import annotations

import json
import logging
from http.client import HTTPException
from time import perf_counter
from typing import Any, Protocol, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import Request, urlopen

from backend.shelf.telemetry import TelemetryClient, redact_url

LOGGER = logging.getLogger("notion_shelf.http")


class HttpTransportError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class HttpTransport(Protocol):
    def get_json(self, url: str, *, headers: dict[str, str] | None = None) -> dict[str, Any]:
        ...

    def get_text(self, url: str, *, headers: dict[str, str] | None = None) -> str:
        ...

    def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        ...


class UrllibTransport:
    """Single-attempt HTTP client shared by every catalog provider and Notion."""

    def __init__(
        self,
        *,
        timeout_seconds: float,
        user_agent: str,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._timeout_seconds = max(0.5, timeout_seconds)
        self._user_agent = user_agent
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def get_json(self, url: str, *, headers: dict[str, str] | None = None) -> dict[str, Any]:
        raw_body = self._send("GET", url, body=None, headers=_with_accept(headers))
        return decode_json_object(raw_body, url=url)

    def get_text(self, url: str, *, headers: dict[str, str] | None = None) -> str:
        return self._send("GET", url, body=None, headers=dict(headers or {}))

    def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        request_headers = _with_accept(headers)
        body: bytes | None = None
        if payload is not None:
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            request_headers["Content-Type"] = "application/json"
        raw_body = self._send(method, url, body=body, headers=request_headers)
        return decode_json_object(raw_body, url=url)

    def _send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None,
        headers: dict[str, str],
    ) -> str:
        headers.setdefault("User-Agent", self._user_agent)
        request = Request(url=url, data=body, headers=headers, method=method)
        host = urlsplit(url).netloc
        started_at = perf_counter()
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                raw_body = response.read().decode("utf-8", errors="replace")
                status_code = int(response.status)
        except HTTPError as exc:
            response_body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            self._emit_finish(method, url, started_at, status_code=exc.code)
            raise HttpTransportError(
                f"{method} {host} failed with status {exc.code}",
                status_code=exc.code,
                body=response_body,
            ) from exc
        except (URLError, TimeoutError, OSError, HTTPException, ValueError) as exc:
            # Truncated bodies, malformed status lines and bad URLs end up here too.
            reason = exc.reason if isinstance(exc, URLError) else exc
            self._emit_finish(method, url, started_at, status_code=None)
            raise HttpTransportError(
                f"{method} {host} failed: {reason}",
                status_code=None,
            ) from exc

        self._emit_finish(method, url, started_at, status_code=status_code)
        return raw_body

    def _emit_finish(
        self,
        method: str,
        url: str,
        started_at: float,
        *,
        status_code: int | None,
    ) -> None:
        duration_ms = int((perf_counter() - started_at) * 1000)
        LOGGER.debug(
            "provider request method=%s url=%s status=%s duration_ms=%s",
            method,
            redact_url(url),
            status_code,
            duration_ms,
        )
        self._telemetry.emit_provider_call(
            method=method,
            url=url,
            status_code=status_code,
            duration_ms=duration_ms,
        )


def decode_json_object(raw_body: str, *, url: str) -> dict[str, Any]:
    # Aladin's `output=js` responses occasionally end with a stray semicolon.
    stripped = raw_body.strip().rstrip(";")
    if not stripped:
        return {}
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise HttpTransportError(
            f"invalid JSON from {urlsplit(url).netloc}",
            status_code=None,
            body=raw_body[:500],
        ) from exc
    if not isinstance(parsed, dict):
        raise HttpTransportError(
            f"unexpected JSON shape from {urlsplit(url).netloc}",
            status_code=None,
            body=raw_body[:500],
        )
    raw_dict = cast(dict[object, object], parsed)
    return {key: value for key, value in raw_dict.items() if isinstance(key, str)}


def _with_accept(headers: dict[str, str] | None) -> dict[str, str]:
    merged = dict(headers or {})
    merged.setdefault("Accept", "application/json")
    return merged
