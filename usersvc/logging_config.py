from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by the app and the server entry point.

    Uvicorn installs its own handlers for its access/error loggers on top of this.
    """
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
