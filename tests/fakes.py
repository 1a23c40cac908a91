from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from threading import Lock
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from backend.shelf.services.http_transport import HttpTransportError

FIXED_TODAY = date(2024, 5, 17)
NOTION_DATABASE_ID = "db-123"


@dataclass(frozen=True)
class FakeCall:
    method: str
    url: str
    payload: dict[str, Any] | None
    headers: dict[str, str]

    @property
    def path(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}{parts.path}"

    @property
    def params(self) -> dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))


FakeResponse = dict[str, Any] | str | HttpTransportError | Callable[[FakeCall], Any]


class FakeTransport:
    """In-memory transport keyed by URL without its query string."""

    def __init__(self) -> None:
        self.routes: dict[str, FakeResponse] = {}
        self.calls: list[FakeCall] = []
        self._lock = Lock()

    def add(self, url: str, response: FakeResponse) -> None:
        self.routes[url] = response

    def calls_to(self, url: str) -> list[FakeCall]:
        return [call for call in self.calls if call.path == url]

    def get_json(self, url: str, *, headers: dict[str, str] | None = None) -> dict[str, Any]:
        result = self._dispatch(FakeCall("GET", url, None, dict(headers or {})))
        assert isinstance(result, dict)
        return result

    def get_text(self, url: str, *, headers: dict[str, str] | None = None) -> str:
        result = self._dispatch(FakeCall("GET", url, None, dict(headers or {})))
        assert isinstance(result, str)
        return result

    def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        result = self._dispatch(FakeCall(method, url, payload, dict(headers or {})))
        assert isinstance(result, dict)
        return result

    def _dispatch(self, call: FakeCall) -> Any:
        with self._lock:
            self.calls.append(call)
        response = self.routes.get(call.path)
        if response is None:
            raise HttpTransportError(f"no fake route for {call.path}", status_code=404)
        if isinstance(response, HttpTransportError):
            raise response
        if callable(response):
            return response(call)
        return response
