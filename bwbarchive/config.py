"""Runtime configuration, read once at startup and passed to constructors."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PG_DSN = "dbname=bwbarchive user=bwb password=bwbpass host=localhost port=5432"
DEFAULT_SOURCE_URL = "http://wetten.overheid.nl/xml.php"
DEFAULT_CATALOG_URL = "http://wetten.overheid.nl/BWBIdService/BWBIdList.xml.zip"

# The source returns nothing for as-of dates before this day.
ARCHIVE_MIN_DATE = date(2002, 5, 1)


@dataclass(frozen=True)
class ArchiveConfig:
    pg_dsn: str = DEFAULT_PG_DSN
    source_url: str = DEFAULT_SOURCE_URL
    catalog_url: str = DEFAULT_CATALOG_URL
    http_timeout: float = 30.0
    user_agent: str = "BWBArchive/1.0"
    concurrency: int = 8
    coarse_step_days: int = 62
    fine_step_days: int = 1
    min_date: date = ARCHIVE_MIN_DATE
    document_kind: str = "wet"
    sync_interval_hours: float = 24.0
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    def with_overrides(self, **overrides: Any) -> "ArchiveConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_date(name: str, default: date) -> date:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        logger.warning("Ignoring malformed %s=%r (expected YYYY-MM-DD)", name, raw)
        return default


def load_config(env_file: Optional[str] = None) -> ArchiveConfig:
    """Build the configuration from the environment (and an optional .env file)."""
    load_dotenv(env_file)
    coarse_days = max(1, _env_int("SYNC_COARSE_DAYS", 62))
    fine_days = max(1, _env_int("SYNC_FINE_DAYS", 1))
    if fine_days >= coarse_days:
        logger.warning(
            "Ignoring SYNC_COARSE_DAYS=%d / SYNC_FINE_DAYS=%d (coarse must exceed fine), using 62 / 1",
            coarse_days,
            fine_days,
        )
        coarse_days, fine_days = 62, 1
    return ArchiveConfig(
        pg_dsn=os.environ.get("PG_DSN", DEFAULT_PG_DSN),
        source_url=os.environ.get("BWB_SOURCE_URL", DEFAULT_SOURCE_URL),
        catalog_url=os.environ.get("BWB_CATALOG_URL", DEFAULT_CATALOG_URL),
        http_timeout=_env_float("HTTP_TIMEOUT", 30.0),
        concurrency=max(1, _env_int("SYNC_CONCURRENCY", 8)),
        coarse_step_days=coarse_days,
        fine_step_days=fine_days,
        min_date=_env_date("SYNC_MIN_DATE", ARCHIVE_MIN_DATE),
        document_kind=os.environ.get("SYNC_DOCUMENT_KIND", "wet"),
        sync_interval_hours=_env_float("SYNC_INTERVAL_HOURS", 24.0),
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=_env_int("WEB_PORT", 8080),
    )
