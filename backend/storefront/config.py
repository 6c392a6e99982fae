# backend/storefront/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field


def _sqlite_engine_options(url: str, busy_timeout: float) -> dict:
    # Writers queue on SQLite's database lock instead of failing fast.
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": busy_timeout}}
    return {}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLITE_BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI, SQLITE_BUSY_TIMEOUT)

    # Which data-access adapter backs order operations: "orm" or "sql"
    ORDER_STORE_BACKEND = os.environ.get("ORDER_STORE_BACKEND", "orm")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = "DEBUG"


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings handed to a standalone order store."""

    database_url: str
    busy_timeout: float = 5.0
    echo: bool = False
    engine_options: dict = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, config) -> "StoreConfig":
        """Build from a Flask config (or any mapping using the same keys)."""
        return cls(
            database_url=config["SQLALCHEMY_DATABASE_URI"],
            busy_timeout=float(config.get("SQLITE_BUSY_TIMEOUT", 5.0)),
            echo=bool(config.get("SQLALCHEMY_ECHO", False)),
        )

    def create_engine_kwargs(self) -> dict:
        kwargs = {"echo": self.echo}
        kwargs.update(_sqlite_engine_options(self.database_url, self.busy_timeout))
        kwargs.update(self.engine_options)
        return kwargs
