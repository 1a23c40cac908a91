from __future__ import annotations

from functools import lru_cache

from backend.shelf.config import AppSettings, load_settings
from backend.shelf.services.aladin_client import AladinClient
from backend.shelf.services.catalog_service import CatalogService
from backend.shelf.services.http_transport import HttpTransport, UrllibTransport
from backend.shelf.services.kakao_client import KakaoBookClient
from backend.shelf.services.notion_client import NotionClient
from backend.shelf.services.shelf_service import ShelfService
from backend.shelf.services.tmdb_client import TmdbClient
from backend.shelf.services.yes24_client import Yes24Client
from backend.shelf.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_transport() -> HttpTransport:
    settings = get_settings()
    return UrllibTransport(
        timeout_seconds=settings.http_timeout_seconds,
        user_agent=settings.user_agent,
        telemetry=get_telemetry(),
    )


@lru_cache(maxsize=1)
def get_catalog_service() -> CatalogService:
    return build_catalog_service(get_settings(), get_transport())


@lru_cache(maxsize=1)
def get_shelf_service() -> ShelfService:
    return build_shelf_service(get_settings(), get_transport())


def build_catalog_service(settings: AppSettings, transport: HttpTransport) -> CatalogService:
    aladin: AladinClient | None = None
    if settings.aladin_ttb_key is not None:
        aladin = AladinClient(
            transport=transport,
            ttb_key=settings.aladin_ttb_key,
            base_url=settings.aladin_base_url,
            max_results=settings.max_search_results,
            max_workers=settings.enrichment_max_workers,
        )

    kakao: KakaoBookClient | None = None
    if settings.kakao_rest_api_key is not None:
        kakao = KakaoBookClient(
            transport=transport,
            api_key=settings.kakao_rest_api_key,
            base_url=settings.kakao_base_url,
            max_results=settings.max_search_results,
        )

    yes24: Yes24Client | None = None
    if settings.yes24_enabled:
        yes24 = Yes24Client(
            transport=transport,
            base_url=settings.yes24_base_url,
            max_results=settings.max_search_results,
            max_workers=settings.enrichment_max_workers,
        )

    tmdb: TmdbClient | None = None
    if settings.tmdb_api_key is not None:
        tmdb = TmdbClient(
            transport=transport,
            api_key=settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            max_results=settings.max_search_results,
            max_workers=settings.enrichment_max_workers,
        )

    return CatalogService(
        aladin=aladin,
        kakao=kakao,
        yes24=yes24,
        tmdb=tmdb,
        suggest_limit=settings.suggest_limit,
    )


def build_shelf_service(settings: AppSettings, transport: HttpTransport) -> ShelfService:
    return ShelfService(
        notion=NotionClient(
            transport=transport,
            token=settings.notion_token,
            database_id=settings.notion_database_id,
            base_url=settings.notion_base_url,
            notion_version=settings.notion_version,
        ),
        schema_mode=settings.notion_schema_mode,
        timezone=settings.default_timezone,
    )


def reset_cached_dependencies() -> None:
    get_catalog_service.cache_clear()
    get_shelf_service.cache_clear()
    get_transport.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
