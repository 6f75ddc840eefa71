from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from .constants import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    LOGGER,
)

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


@dataclass
class Settings:
    base_url: str
    api_version: str
    timeout: float
    production: bool
    token_store_path: str | None = None
    csrf_token: str | None = None
    coalesce_refresh: bool = False
    debug: bool = True


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")
    if value <= 0:
        raise RuntimeError(f"{key} must be greater than zero.")
    return value


def _get_env_str(key: str) -> str | None:
    raw = os.getenv(key, "").strip()
    return raw or None


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def load_settings() -> Settings:
    return Settings(
        base_url=os.getenv("JOBBOARD_API_BASE_URL", DEFAULT_BASE_URL).strip().rstrip("/"),
        api_version=os.getenv("JOBBOARD_API_VERSION", DEFAULT_API_VERSION).strip().strip("/"),
        timeout=_get_env_float("JOBBOARD_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        production=os.getenv("JOBBOARD_ENV", "development").strip().lower() == "production",
        token_store_path=_get_env_str("JOBBOARD_TOKEN_STORE_PATH"),
        csrf_token=_get_env_str("JOBBOARD_CSRF_TOKEN"),
        coalesce_refresh=is_truthy(os.getenv("JOBBOARD_COALESCE_REFRESH")),
        debug=is_truthy(os.getenv("JOBBOARD_API_DEBUG", "1")),
    )


def validate_settings(settings: Settings) -> None:
    try:
        url = _URL_ADAPTER.validate_python(settings.base_url)
    except ValidationError as error:
        raise RuntimeError(
            "JOBBOARD_API_BASE_URL must be a valid http(s) URL (for example: "
            "https://jobs.example.com)."
        ) from error

    if not settings.api_version:
        raise RuntimeError("JOBBOARD_API_VERSION must not be empty.")

    if settings.production and url.scheme != "https":
        LOGGER.warning("JOBBOARD_API_BASE_URL should use HTTPS in production.")


def setup_logging(settings: Settings) -> bool:
    if settings.debug:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return settings.debug
