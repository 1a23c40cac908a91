from __future__ import annotations

import argparse
from collections.abc import Sequence

import uvicorn

from backend.shelf.dependencies import get_settings


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Notion Shelf web server.")
    parser.add_argument("--host", default=None, help="Bind address (default: NOTION_SHELF_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: PORT or 3000).")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()
    uvicorn.run(
        "backend.shelf.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
