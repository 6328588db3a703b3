from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

CONFIG_FILE = Path("feedhub_config.json")

DEFAULT_CONFIG: dict[str, Any] = {
    "news_category": "general",
    "movie_list_type": "popular",
    "social_hashtag": "technology",
    "page_size": 20,
    "max_pages": 5,
    "request_timeout_seconds": 10,
    "search_debounce_ms": 300,
    "token_max_age_seconds": 86400,
    "cors_origins": ["http://localhost:3000"],
    "host": "127.0.0.1",
    "port": 5000,
    "db_path": "feedhub.db",
    "log_level": "INFO",
    "log_file": "feedhub.log",
}

_POSITIVE_INT_KEYS = (
    "page_size",
    "max_pages",
    "request_timeout_seconds",
    "token_max_age_seconds",
    "port",
)


@dataclass
class Settings:
    """Holds all application configuration loaded from environment variables and config file."""

    news_api_key: str | None = None
    tmdb_api_key: str | None = None
    social_api_url: str | None = None
    social_api_key: str | None = None
    secret_key: str | None = None
    api_url: str | None = None
    api_token: str | None = None
    news_category: str = "general"
    movie_list_type: str = "popular"
    social_hashtag: str = "technology"
    page_size: int = 20
    max_pages: int = 5
    request_timeout_seconds: int = 10
    search_debounce_ms: int = 300
    token_max_age_seconds: int = 86400
    cors_origins: list[str] = field(default_factory=list)
    host: str = "127.0.0.1"
    port: int = 5000
    db_path: str = "feedhub.db"
    log_level: str = "INFO"
    log_file: str | None = "feedhub.log"

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0


def _load_config_file(path: Path = CONFIG_FILE) -> dict[str, Any]:
    if path.exists():
        with open(path, encoding="utf-8") as f:
            user_config = json.load(f)
        merged = {**DEFAULT_CONFIG, **user_config}
        return merged
    return dict(DEFAULT_CONFIG)


def _validate_config(config: dict[str, Any]) -> None:
    invalid = [
        key
        for key in _POSITIVE_INT_KEYS
        if not isinstance(config.get(key), int) or config[key] < 1
    ]
    debounce = config.get("search_debounce_ms")
    if not isinstance(debounce, int) or debounce < 0:
        invalid.append("search_debounce_ms")
    if invalid:
        raise ValueError(
            f"Invalid values in {CONFIG_FILE}: {', '.join(invalid)}. "
            "Expected positive integers."
        )


def _env(name: str) -> str | None:
    value = os.getenv(name)
    return value if value else None


def load_settings(config_path: Path = CONFIG_FILE) -> Settings:
    config = _load_config_file(config_path)
    _validate_config(config)

    return Settings(
        news_api_key=_env("NEWS_API_KEY"),
        tmdb_api_key=_env("TMDB_API_KEY"),
        social_api_url=_env("SOCIAL_API_URL"),
        social_api_key=_env("SOCIAL_API_KEY"),
        secret_key=_env("FEEDHUB_SECRET_KEY"),
        api_url=_env("FEEDHUB_API_URL"),
        api_token=_env("FEEDHUB_TOKEN"),
        news_category=config.get("news_category", DEFAULT_CONFIG["news_category"]),
        movie_list_type=config.get("movie_list_type", DEFAULT_CONFIG["movie_list_type"]),
        social_hashtag=config.get("social_hashtag", DEFAULT_CONFIG["social_hashtag"]),
        page_size=config.get("page_size", DEFAULT_CONFIG["page_size"]),
        max_pages=config.get("max_pages", DEFAULT_CONFIG["max_pages"]),
        request_timeout_seconds=config.get(
            "request_timeout_seconds", DEFAULT_CONFIG["request_timeout_seconds"]
        ),
        search_debounce_ms=config.get(
            "search_debounce_ms", DEFAULT_CONFIG["search_debounce_ms"]
        ),
        token_max_age_seconds=config.get(
            "token_max_age_seconds", DEFAULT_CONFIG["token_max_age_seconds"]
        ),
        cors_origins=config.get("cors_origins", DEFAULT_CONFIG["cors_origins"]),
        host=config.get("host", DEFAULT_CONFIG["host"]),
        port=config.get("port", DEFAULT_CONFIG["port"]),
        db_path=_env("FEEDHUB_DB_PATH") or config.get("db_path", DEFAULT_CONFIG["db_path"]),
        log_level=_env("FEEDHUB_LOG_LEVEL") or config.get("log_level", DEFAULT_CONFIG["log_level"]),
        log_file=config.get("log_file", DEFAULT_CONFIG["log_file"]),
    )


def require_secret_key(settings: Settings) -> str:
    if not settings.secret_key:
        raise EnvironmentError(
            "Missing required environment variable: FEEDHUB_SECRET_KEY. "
            "Please set it in your .env file or system environment."
        )
    return settings.secret_key
