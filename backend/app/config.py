"""Application settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)

DEFAULT_PREFIX = "koelker.tech:"


@dataclass(frozen=True)
class Settings:
    app_env: str
    host: str
    port: int
    redis_url: str
    auth_secret: str
    analytics_secret: str
    analytics_prefix: str
    admin_username: Optional[str]
    admin_password: Optional[str]
    github_token: Optional[str]
    github_username: str
    bcrypt_rounds: int = 12
    log_level: str = "INFO"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "production"

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_username and self.admin_password)


def _require_env(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _optional_env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def normalize_prefix(prefix: Optional[str]) -> str:
    if not prefix:
        return DEFAULT_PREFIX
    return prefix if prefix.endswith(":") else f"{prefix}:"


@lru_cache()
def get_settings() -> Settings:
    app_env = _optional_env("APP_ENV") or "development"
    return Settings(
        app_env=app_env,
        host=_optional_env("HOST") or "0.0.0.0",
        port=int(_optional_env("PORT") or "4000"),
        redis_url=_require_env("REDIS_URL"),
        auth_secret=_require_env("AUTH_SECRET"),
        analytics_secret=_require_env("ANALYTICS_SECRET"),
        analytics_prefix=normalize_prefix(_optional_env("ANALYTICS_PREFIX")),
        admin_username=_optional_env("ADMIN_USERNAME"),
        admin_password=_optional_env("ADMIN_PASSWORD"),
        github_token=_optional_env("GITHUB_TOKEN"),
        github_username=_optional_env("GITHUB_USERNAME") or "HolzKopf108",
        bcrypt_rounds=int(_optional_env("BCRYPT_ROUNDS") or "12"),
        log_level=(_optional_env("LOG_LEVEL") or "INFO").upper(),
    )
