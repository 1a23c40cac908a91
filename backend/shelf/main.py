from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.shelf.api.routes import router
from backend.shelf.dependencies import get_settings, get_telemetry
from backend.shelf.logging_config import configure_application_logging

LOGGER = logging.getLogger("notion_shelf.http.app")


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_application_logging(settings)
    LOGGER.info(
        "notion shelf starting aladin=%s kakao=%s yes24=%s tmdb=%s notion=%s",
        settings.aladin_ttb_key is not None,
        settings.kakao_rest_api_key is not None,
        settings.yes24_enabled,
        settings.tmdb_api_key is not None,
        settings.notion_configured,
    )
    yield


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> Response:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=exc.headers,
    )


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> Response:
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {'; '.join(problems)}"},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Notion Shelf API", version="0.1.0", lifespan=app_lifespan)
    settings = get_settings()

    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        telemetry = get_telemetry()
        incoming_request_id = request.headers.get("X-Request-ID")
        request_id = (
            incoming_request_id.strip()
            if isinstance(incoming_request_id, str) and incoming_request_id.strip()
            else str(uuid4())
        )
        context_tokens = bind_contextvars(
            http_request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        started_at = perf_counter()
        telemetry.emit(
            "http.request.start",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            LOGGER.exception("unhandled request error")
            telemetry.emit(
                "http.request.error",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=int((perf_counter() - started_at) * 1000),
                error_type=type(exc).__name__,
            )
            response = JSONResponse(status_code=500, content={"error": "Internal server error"})
            response.headers["X-Request-ID"] = request_id
            return response
        else:
            response.headers["X-Request-ID"] = request_id
            telemetry.emit(
                "http.request.finish",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=int((perf_counter() - started_at) * 1000),
                status_code=response.status_code,
            )
            return response
        finally:
            reset_contextvars(**context_tokens)

    app.middleware("http")(request_context_middleware)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    _mount_web_ui(app=app, static_dir=settings.static_dir)

    return app


def _mount_web_ui(*, app: FastAPI, static_dir: Path) -> None:
    # Mounted last: a root mount would otherwise shadow the API routes.
    if not (static_dir / "index.html").is_file():
        return
    app.mount("/", StaticFiles(directory=static_dir, html=True), name="web_ui")


app = create_app()
