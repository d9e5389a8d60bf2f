from __future__ import annotations

import logging

from usersvc.service import Service, UserService, logging_middleware
from usersvc.settings import Settings, get_settings
from usersvc.storage import open_storage


def get_settings_dep() -> Settings:
    """Settings for route handlers.

    ``create_app`` overrides this with the settings the app was built from.
    """
    return get_settings()


def build_service(settings: Settings) -> Service:
    """Storage backend chosen by settings, wrapped in the logging middleware."""
    storage = open_storage(settings.store, database_url=settings.database_url)
    service: Service = UserService(storage)
    return logging_middleware(logging.getLogger("usersvc.service"))(service)
