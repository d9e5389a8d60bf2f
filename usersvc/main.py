from __future__ import annotations

import logging

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from usersvc import deps
from usersvc.logging_config import configure_logging
from usersvc.service import Service
from usersvc.settings import Settings, get_settings
from usersvc.transport import JSON_CONTENT_TYPE, make_http_router

logger = logging.getLogger("usersvc")

APP_VERSION = "1.0.0"


def create_app(service: Service | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the HTTP application.

    ``service`` lets tests (or an embedding process) inject their own service;
    otherwise one is built from settings.
    """
    s = settings or get_settings()
    configure_logging(s.log_level)

    if service is None:
        service = deps.build_service(s)
    logger.info("Users service ready", extra={"store": s.store})

    application = FastAPI(title="Users Service", version=APP_VERSION)
    application.include_router(make_http_router(service, logging.getLogger("usersvc.http")))

    # Dependencies see the settings this app was built with.
    application.dependency_overrides[deps.get_settings_dep] = lambda: s

    @application.get("/healthz")
    def healthz(cfg: Settings = Depends(deps.get_settings_dep)):
        return JSONResponse(
            {
                "ok": True,
                "service": "usersvc",
                "version": APP_VERSION,
                "store": cfg.store,
            },
            media_type=JSON_CONTENT_TYPE,
        )

    return application


app = create_app()
