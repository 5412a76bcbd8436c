"""Environment configuration loaded from .env, env vars, or programmatic input."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "https://kutter.onrender.com")
DEFAULT_BUS_CAPACITY = 20


def _parse_bool(raw: str | None) -> bool:
    """Parse a truthy env flag ("1", "true", "yes", "on")."""
    if not raw:
        return False
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_origins(raw: str | None) -> list[str]:
    """Split a comma-separated origin list, falling back to the defaults."""
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Config:
    """Server configuration. Can be built from env, CLI args, or programmatic input."""

    database_url: str | None = None
    jwt_secret: str = ""
    token_ttl_minutes: int = 24 * 60
    host: str = "127.0.0.1"
    port: int = 8080
    static_dir: str = "static"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    bus_capacity: int = DEFAULT_BUS_CAPACITY
    maintenance_mode: bool = False
    cookie_secure: bool = False

    @classmethod
    def from_env(cls) -> Config:
        """Load config from environment variables and .env file."""
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            jwt_secret=os.getenv("JWT_SECRET", ""),
            token_ttl_minutes=int(os.getenv("TOKEN_TTL_MINUTES", "1440")),
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "8080")),
            static_dir=os.getenv("STATIC_DIR", "static"),
            cors_origins=_parse_origins(os.getenv("CORS_ORIGINS")),
            bus_capacity=int(os.getenv("BUS_CAPACITY", str(DEFAULT_BUS_CAPACITY))),
            maintenance_mode=_parse_bool(os.getenv("MAINTENANCE_MODE")),
            cookie_secure=_parse_bool(os.getenv("COOKIE_SECURE")),
        )

    @classmethod
    def from_args(
        cls,
        host: str | None = None,
        port: int | None = None,
        database_url: str | None = None,
        maintenance: bool | None = None,
    ) -> Config:
        """Build config from explicit arguments, falling back to env."""
        env = cls.from_env()
        if host is not None:
            env.host = host
        if port is not None:
            env.port = port
        if database_url is not None:
            env.database_url = database_url
        if maintenance is not None:
            env.maintenance_mode = maintenance
        return env

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if config is valid."""
        errors = []
        if not self.jwt_secret:
            errors.append(
                "JWT_SECRET is not set. "
                "Pass jwt_secret= or set JWT_SECRET in env/.env."
            )
        if self.bus_capacity < 1:
            errors.append("BUS_CAPACITY must be at least 1.")
        if self.token_ttl_minutes < 1:
            errors.append("TOKEN_TTL_MINUTES must be at least 1.")
        return errors
