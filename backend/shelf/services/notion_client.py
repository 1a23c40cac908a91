from __future__ import annotations

import json
from typing import Any

from backend.shelf.services.http_transport import HttpTransport, HttpTransportError
from backend.shelf.services.payloads import as_dict, as_str


class NotionApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotionClient:
    def __init__(
        self,
        *,
        transport: HttpTransport,
        token: str | None,
        database_id: str | None,
        base_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
    ) -> None:
        self._transport = transport
        self._token = token
        self._database_id = database_id
        self._base_url = base_url.rstrip("/")
        self._notion_version = notion_version

    @property
    def configured(self) -> bool:
        return self._token is not None and self._database_id is not None

    @property
    def database_id(self) -> str:
        if self._database_id is None:
            raise NotionApiError("Notion database is not configured.", status_code=None)
        return self._database_id

    def retrieve_database(self) -> dict[str, Any]:
        return self._request_json("GET", f"/databases/{self.database_id}", payload=None)

    def query_database(self, query: dict[str, Any]) -> dict[str, Any]:
        return self._request_json("POST", f"/databases/{self.database_id}/query", payload=query)

    def create_page(self, page: dict[str, Any]) -> dict[str, Any]:
        return self._request_json("POST", "/pages", payload=page)

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None,
    ) -> dict[str, Any]:
        if self._token is None:
            raise NotionApiError("Notion integration is not configured.", status_code=None)
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self._notion_version,
        }
        try:
            return self._transport.request_json(
                method,
                f"{self._base_url}{path}",
                payload=payload,
                headers=headers,
            )
        except HttpTransportError as exc:
            message = _extract_error_message(exc.body) or str(exc)
            raise NotionApiError(
                f"Notion API request failed: {message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc


def _extract_error_message(raw_body: str) -> str | None:
    if not raw_body:
        return None
    try:
        parsed: object = json.loads(raw_body)
    except json.JSONDecodeError:
        return None
    return as_str(as_dict(parsed).get("message"))
