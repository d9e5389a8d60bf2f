"""Process entry point.

Usage:
    python -m usersvc.server --http.addr :8080 --store sqlite --db.url users.db

Flags override the matching environment variables (see ``usersvc.settings``).
"""
from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from usersvc.main import create_app
from usersvc.settings import Settings, get_settings

logger = logging.getLogger("usersvc")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="usersvc", description="CRUD users service over HTTP")
    p.add_argument("--http.addr", dest="http_addr", default=None, help="HTTP listen address (default :8080)")
    p.add_argument("--store", dest="store", choices=["memory", "sqlite"], default=None, help="Storage backend")
    p.add_argument("--db.url", dest="database_url", default=None, help="SQLite database path")
    p.add_argument("--log-level", dest="log_level", default=None)
    return p.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    s = base or get_settings()
    overrides = {k: v for k, v in vars(args).items() if v is not None}
    return s.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    settings = settings_from_args(parse_args(argv))
    try:
        host, port = settings.listen_host_port()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    application = create_app(settings=settings)
    logger.info("transport=HTTP addr=%s", settings.http_addr)
    # uvicorn handles SIGINT/SIGTERM and shuts down gracefully.
    uvicorn.run(application, host=host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
