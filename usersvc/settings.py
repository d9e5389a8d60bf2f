from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # A .env in the working directory is read when present; real env vars win over it.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Env vars:
    # - HTTP_ADDR: listen address, "host:port" or ":port"
    # - USERS_STORE: "memory" (default) or "sqlite"
    # - DATABASE_URL: sqlite file path (or ":memory:"), only read when USERS_STORE=sqlite
    # - LOG_LEVEL
    http_addr: str = Field(default=":8080", validation_alias="HTTP_ADDR")
    store: Literal["memory", "sqlite"] = Field(default="memory", validation_alias="USERS_STORE")
    database_url: str = Field(default="users.db", validation_alias="DATABASE_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def listen_host_port(self) -> tuple[str, int]:
        """Split ``http_addr`` into (host, port). An empty host means all interfaces."""
        host, sep, port = (self.http_addr or "").strip().rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"HTTP_ADDR must look like 'host:port' or ':port', got {self.http_addr!r}")
        return (host or "0.0.0.0"), int(port)


def get_settings() -> Settings:
    """Settings as currently found in the environment (and .env).

    Read fresh on every call, so env changes made by tests take effect.
    """
    return Settings()
