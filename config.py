"""
Application settings.

Values are read from the environment (optionally from a `.env` file at the
project root). Nothing here talks to the record store; credentials are only
validated when the Supabase client is first requested.

Environment variables:
- SUPABASE_URL / SUPABASE_KEY: record store credentials (server-side key)
- SUPABASE_TIMEOUT_SECONDS: per-request timeout for store calls (default 10)
- BUSINESS_TIMEZONE: IANA zone used for business calendar math (default America/Sao_Paulo)
- CANDIDATE_SEARCH_LIMIT: max candidates returned by a manual-link search (default 20)
- AUDIT_PAGE_SIZE: default page size for audit trail reads (default 20)
- LOG_LEVEL: root logging level (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_BUSINESS_TIMEZONE = "America/Sao_Paulo"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    supabase_timeout_seconds: int = 10
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    candidate_search_limit: int = 20
    audit_page_size: int = 20
    log_level: str = "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings from the current environment (cached)."""

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        supabase_timeout_seconds=_int_env("SUPABASE_TIMEOUT_SECONDS", 10),
        business_timezone=os.getenv("BUSINESS_TIMEZONE") or DEFAULT_BUSINESS_TIMEZONE,
        candidate_search_limit=_int_env("CANDIDATE_SEARCH_LIMIT", 20),
        audit_page_size=_int_env("AUDIT_PAGE_SIZE", 20),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for entry points (API, scripts)."""

    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["Settings", "get_settings", "configure_logging", "DEFAULT_BUSINESS_TIMEZONE"]
