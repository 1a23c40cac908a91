from __future__ import annotations

from typing import Annotated, cast

from fastapi import APIRouter, Depends, HTTPException
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.shelf.dependencies import get_catalog_service, get_shelf_service
from backend.shelf.models.catalog_contracts import (
    AddToNotionRequest,
    AddToNotionResponse,
    BookSearchResponse,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    ErrorResponse,
    MediaSearchResponse,
    SuggestResponse,
    SuggestType,
    TenseOptionsResponse,
)
from backend.shelf.services.catalog_service import CatalogService, CatalogUnavailableError
from backend.shelf.services.notion_client import NotionApiError
from backend.shelf.services.shelf_service import ShelfService

router = APIRouter(
    prefix="/api",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

_SUGGEST_TYPES: tuple[SuggestType, ...] = ("book", "ebook", "movie", "drama")


def _require_query(query: str | None) -> str:
    normalized = query.strip() if query else ""
    if not normalized:
        raise HTTPException(status_code=400, detail="query parameter is required.")
    return normalized


def _catalog_failure(exc: CatalogUnavailableError, *, label: str) -> HTTPException:
    return HTTPException(status_code=500, detail=f"{label} search failed: {exc}")


@router.get(
    "/search",
    response_model=BookSearchResponse,
    tags=["catalog"],
    operation_id="search_books",
)
def search_books(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    query: str | None = None,
) -> BookSearchResponse:
    normalized = _require_query(query)
    try:
        return BookSearchResponse(books=catalog.search_books(normalized))
    except CatalogUnavailableError as exc:
        raise _catalog_failure(exc, label="Book") from exc


@router.get(
    "/search-ebook",
    response_model=BookSearchResponse,
    tags=["catalog"],
    operation_id="search_ebooks",
)
def search_ebooks(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    query: str | None = None,
) -> BookSearchResponse:
    normalized = _require_query(query)
    try:
        return BookSearchResponse(books=catalog.search_ebooks(normalized))
    except CatalogUnavailableError as exc:
        raise _catalog_failure(exc, label="E-book") from exc


@router.get(
    "/search-movie",
    response_model=MediaSearchResponse,
    tags=["catalog"],
    operation_id="search_movies",
)
def search_movies(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    query: str | None = None,
) -> MediaSearchResponse:
    normalized = _require_query(query)
    try:
        return MediaSearchResponse(items=catalog.search_movies(normalized))
    except CatalogUnavailableError as exc:
        raise _catalog_failure(exc, label="Movie") from exc


@router.get(
    "/search-drama",
    response_model=MediaSearchResponse,
    tags=["catalog"],
    operation_id="search_dramas",
)
def search_dramas(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    query: str | None = None,
) -> MediaSearchResponse:
    normalized = _require_query(query)
    try:
        return MediaSearchResponse(items=catalog.search_dramas(normalized))
    except CatalogUnavailableError as exc:
        raise _catalog_failure(exc, label="Drama") from exc


@router.get(
    "/suggest",
    response_model=SuggestResponse,
    tags=["catalog"],
    operation_id="suggest",
)
def suggest(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    query: str | None = None,
    type: str | None = None,
) -> SuggestResponse:
    normalized = query.strip() if query else ""
    if not normalized:
        return SuggestResponse(suggestions=[])
    # Unknown types fall back to books rather than failing autocomplete.
    suggest_type = cast(SuggestType, type) if type in _SUGGEST_TYPES else "book"
    return SuggestResponse(suggestions=catalog.suggest(normalized, suggest_type))


@router.get(
    "/tense-options",
    response_model=TenseOptionsResponse,
    tags=["notion"],
    operation_id="list_tense_options",
)
def list_tense_options(
    shelf: Annotated[ShelfService, Depends(get_shelf_service)],
) -> TenseOptionsResponse:
    return TenseOptionsResponse(options=shelf.list_tense_options())


@router.post(
    "/check-duplicate",
    response_model=DuplicateCheckResponse,
    tags=["notion"],
    operation_id="check_duplicate",
)
def check_duplicate(
    request: DuplicateCheckRequest,
    shelf: Annotated[ShelfService, Depends(get_shelf_service)],
) -> DuplicateCheckResponse:
    if request.title is None:
        raise HTTPException(status_code=400, detail="title is required.")
    result = shelf.check_duplicate(request.title, request.published_date)
    return DuplicateCheckResponse(
        exists=result.exists,
        date=result.date,
        existing_title=result.existing_title,
        page_url=result.page_url,
    )


@router.post(
    "/add-to-notion",
    response_model=AddToNotionResponse,
    tags=["notion"],
    operation_id="add_to_notion",
)
def add_to_notion(
    request: AddToNotionRequest,
    shelf: Annotated[ShelfService, Depends(get_shelf_service)],
) -> AddToNotionResponse:
    if request.title is None:
        raise HTTPException(status_code=400, detail="title is required.")
    context_tokens = bind_contextvars(item_type=request.type)
    try:
        created = shelf.add_entry(request)
    except NotionApiError as exc:
        raise HTTPException(
            status_code=exc.status_code or 500,
            detail=f"Notion page creation failed: {exc.body or exc}",
        ) from exc
    finally:
        reset_contextvars(**context_tokens)
    return AddToNotionResponse(success=True, page_id=created.page_id, url=created.url)
