from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog
from structlog.typing import EventDict, Processor

from backend.shelf.config import AppSettings

ROOT_LOGGER_NAME = "notion_shelf"
LOG_FILE_NAME = "notion-shelf.log"
PROVIDER_LOG_FILE_NAME = "notion-shelf-providers.log"
TELEMETRY_LOG_FILE_NAME = "notion-shelf-telemetry.log"

# Loggers whose traffic lands in the provider log as well as the main log.
PROVIDER_LOGGER_NAMES = (
    f"{ROOT_LOGGER_NAME}.http",
    f"{ROOT_LOGGER_NAME}.fallback",
    f"{ROOT_LOGGER_NAME}.catalog",
)
SERVER_LOGGER_NAMES = ("uvicorn", "uvicorn.error", "uvicorn.access")

_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3
_CREDENTIAL_PATTERN = re.compile(
    r"(?P<prefix>(?:ttbkey|api_key)=|Bearer\s+|KakaoAK\s+)(?P<secret>[^\s&\"',]+)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class LogPaths:
    main: Path
    providers: Path
    telemetry: Path


def configure_application_logging(settings: AppSettings) -> LogPaths:
    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    paths = LogPaths(
        main=log_dir / LOG_FILE_NAME,
        providers=log_dir / PROVIDER_LOG_FILE_NAME,
        telemetry=log_dir / TELEMETRY_LOG_FILE_NAME,
    )

    _configure_structlog()

    console_level = _resolve_log_level(settings.log_level)
    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        _build_console_formatter(enable_colors=_stream_supports_color(sys.stdout))
    )

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    _reset_handlers(logger)
    logger.addHandler(console_handler)
    logger.addHandler(_rotating_file_handler(paths.main, level=logging.DEBUG))

    provider_handler = _rotating_file_handler(paths.providers, level=logging.DEBUG)
    for name in PROVIDER_LOGGER_NAMES:
        provider_logger = logging.getLogger(name)
        _reset_handlers(provider_logger)
        provider_logger.addHandler(provider_handler)

    telemetry_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.telemetry")
    telemetry_logger.setLevel(logging.INFO)
    telemetry_logger.propagate = False
    _reset_handlers(telemetry_logger)
    telemetry_logger.addHandler(_rotating_file_handler(paths.telemetry, level=logging.INFO))

    for name in SERVER_LOGGER_NAMES:
        server_logger = logging.getLogger(name)
        server_logger.propagate = False
        _reset_handlers(server_logger)
        server_logger.addHandler(console_handler)

    logger.info(
        "logging configured console_level=%s path=%s providers_path=%s telemetry_path=%s",
        logging.getLevelName(console_level),
        paths.main,
        paths.providers,
        paths.telemetry,
    )
    return paths


def mask_credentials(text: str) -> str:
    return _CREDENTIAL_PATTERN.sub(lambda match: f"{match.group('prefix')}[redacted]", text)


def _resolve_log_level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _rotating_file_handler(path: Path, *, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(_build_file_formatter())
    return handler


def _build_console_formatter(*, enable_colors: bool) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=enable_colors),
        ],
    )


def _build_file_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_pre_chain(),
        processors=[
            _add_source_location,
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            # Korean titles stay readable in the file log.
            structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False),
        ],
    )


def _shared_pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _mask_event_credentials,
    ]


def _mask_event_credentials(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = mask_credentials(event)
    return event_dict


def _add_source_location(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        event_dict["module"] = record.module
        event_dict["lineno"] = record.lineno
        event_dict["thread_name"] = record.threadName
    return event_dict


def _stream_supports_color(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False
