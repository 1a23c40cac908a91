from __future__ import annotations

from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".notion-shelf"
NOTION_SCHEMA_MODES: frozenset[str] = frozenset({"fixed", "discover"})
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (("log_dir", Path("logs")),)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    "static_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = (
    "yes24_enabled",
    "telemetry_enabled",
)


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Runtime configuration, read once at startup.

    Every option is read from `NOTION_SHELF_*`. Provider credentials, the
    Notion target and the listen port also accept their plain names
    (`ALADIN_TTB_KEY`, `NOTION_TOKEN`, `PORT`, ...), so an existing `.env`
    keeps working.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTION_SHELF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Server.
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to.",
    )
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("NOTION_SHELF_PORT", "PORT"),
        description="Port the HTTP server listens on.",
    )
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for logs.",
    )
    static_dir: Path = Field(
        default=Path("public"),
        description="Directory holding the browser UI build, served at `/` when present.",
    )
    default_timezone: str = Field(
        default="Asia/Seoul",
        description="Timezone used to compute the entry date written to Notion.",
    )

    # Catalog providers.
    aladin_ttb_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NOTION_SHELF_ALADIN_TTB_KEY", "ALADIN_TTB_KEY"),
        description="Aladin TTB key. Enables the primary book provider.",
    )
    aladin_base_url: str = Field(
        default="http://www.aladin.co.kr/ttb/api",
        description="Aladin open API base URL.",
    )
    kakao_rest_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NOTION_SHELF_KAKAO_REST_API_KEY", "KAKAO_REST_API_KEY"),
        description="Kakao REST API key. Enables the Kakao book search fallback.",
    )
    kakao_base_url: str = Field(
        default="https://dapi.kakao.com",
        description="Kakao API base URL.",
    )
    yes24_enabled: bool = Field(
        default=True,
        description="Enable the Yes24 scraping fallback for book search.",
    )
    yes24_base_url: str = Field(
        default="https://www.yes24.com",
        description="Yes24 storefront base URL.",
    )
    tmdb_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NOTION_SHELF_TMDB_API_KEY", "TMDB_API_KEY"),
        description="TMDB v3 API key. Enables movie and drama search.",
    )
    tmdb_base_url: str = Field(
        default="https://api.themoviedb.org/3",
        description="TMDB API base URL.",
    )
    http_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for every outbound HTTP call. Timeouts count as network failures.",
    )
    enrichment_max_workers: int = Field(
        default=8,
        description="Upper bound on concurrent detail lookups within one request.",
    )
    max_search_results: int = Field(
        default=10,
        description="Maximum number of hits requested from a provider search.",
    )
    suggest_limit: int = Field(
        default=5,
        description="Maximum number of autocomplete suggestions.",
    )
    user_agent: str = Field(
        default="notion-shelf/0.1",
        description="User-Agent sent to catalog providers.",
    )

    # Notion.
    notion_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NOTION_SHELF_NOTION_TOKEN", "NOTION_TOKEN"),
        description="Notion integration token.",
    )
    notion_database_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NOTION_SHELF_NOTION_DATABASE_ID", "NOTION_DATABASE_ID"),
        description="Target Notion database id.",
    )
    notion_base_url: str = Field(
        default="https://api.notion.com/v1",
        description="Notion API base URL.",
    )
    notion_version: str = Field(
        default="2022-06-28",
        description="Value of the `Notion-Version` header.",
    )
    notion_schema_mode: Literal["fixed", "discover"] = Field(
        default="fixed",
        description=(
            "`fixed` writes the known property layout; `discover` reads the database "
            "schema first and fills properties by alias and declared type."
        ),
    )

    # Logging.
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description="Directory for log files. Defaults to `${NOTION_SHELF_DATA_DIR}/logs`.",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (stdout).",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    @field_validator("notion_schema_mode", mode="before")
    @classmethod
    def _normalize_schema_mode(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("NOTION_SHELF_NOTION_SCHEMA_MODE must be a string.")
        normalized = value.strip().lower()
        if normalized in NOTION_SCHEMA_MODES:
            return normalized
        raise ValueError("NOTION_SHELF_NOTION_SCHEMA_MODE must be set to: fixed, discover.")

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("NOTION_SHELF_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("NOTION_SHELF_TELEMETRY_SINK must be set to: none, log.")

    @field_validator(
        "aladin_base_url",
        "kakao_base_url",
        "yes24_base_url",
        "tmdb_base_url",
        "notion_base_url",
        mode="before",
    )
    @classmethod
    def _normalize_base_url(cls, value: Any, info: ValidationInfo) -> str:
        env_name = f"NOTION_SHELF_{str(info.field_name).upper()}"
        if not isinstance(value, str):
            raise ValueError(f"{env_name} must be a string.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError(f"{env_name} must not be empty.")
        return normalized

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError("NOTION_SHELF_DEFAULT_TIMEZONE must be a valid IANA timezone") from exc
        return value

    @field_validator("http_timeout_seconds")
    @classmethod
    def _clamp_timeout(cls, value: float) -> float:
        return max(0.5, value)

    @field_validator("enrichment_max_workers", "max_search_results", "suggest_limit")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)

    @field_validator(
        "aladin_ttb_key",
        "kakao_rest_api_key",
        "tmdb_api_key",
        "notion_token",
        "notion_database_id",
        mode="before",
    )
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)

    @property
    def notion_configured(self) -> bool:
        return self.notion_token is not None and self.notion_database_id is not None


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings() -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    return _resolve_path_fields(settings)
