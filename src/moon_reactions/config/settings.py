from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value == "" else value


def _bool(name: str, default: bool) -> bool:
    raw = _env(name, "1" if default else "0").strip().lower()
    return raw in {"1", "true", "yes", "y", "on"}


def _int(name: str, default: int) -> int:
    raw = _env(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    raw = _env(name, str(default)).strip()
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    site_extraction_yield: float
    price_api_url: str
    price_market: str
    price_timeout_seconds: float
    price_cache_ttl_seconds: int
    user_agent: str
    analysis_max_workers: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        # Ore units one surveyed site contributes at a fraction of 1.0.
        site_extraction_yield=_float("MOON_SITE_EXTRACTION_YIELD", default=250_000.0),
        price_api_url=_env("MOON_PRICE_API_URL", "https://appraise.gnf.lt/appraisal.json"),
        price_market=_env("MOON_PRICE_MARKET", "jita"),
        price_timeout_seconds=_float("MOON_PRICE_TIMEOUT", default=30.0),
        price_cache_ttl_seconds=_int("MOON_PRICE_CACHE_TTL", default=300),
        user_agent=_env("MOON_USER_AGENT", "MOON-Reaction-Calculator/1.0"),
        analysis_max_workers=_int("MOON_ANALYSIS_WORKERS", default=1),
    )


def site_extraction_yield() -> float:
    return get_settings().site_extraction_yield


def price_api_url() -> str:
    return get_settings().price_api_url


def price_market() -> str:
    return get_settings().price_market


def price_timeout_seconds() -> float:
    return get_settings().price_timeout_seconds


def price_cache_ttl_seconds() -> int:
    return get_settings().price_cache_ttl_seconds


def user_agent() -> str:
    return get_settings().user_agent


def analysis_max_workers() -> int:
    return get_settings().analysis_max_workers
