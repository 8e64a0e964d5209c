"""Run the Inbox View API under uvicorn."""

from __future__ import annotations

import argparse

import uvicorn

from inboxview.infrastructure import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Serve the Inbox View API")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    uvicorn.run(
        "inboxview.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
