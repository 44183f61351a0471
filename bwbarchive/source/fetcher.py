"""Fetch a BWB document as it was valid on a given day.

The source has no changelog: the only query it answers is "give me regulation
X as of date D". Every failure is reported as FetchError so the caller can
abort the document's scan as a whole.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict

import requests

from bwbarchive.config import ArchiveConfig, DEFAULT_SOURCE_URL
from bwbarchive.errors import FetchError

logger = logging.getLogger(__name__)


def format_as_of(day: date) -> str:
    """Render a date the way the source expects it (DD-MM-YYYY)."""
    return f"{day.day:02d}-{day.month:02d}-{day.year:04d}"


def request_params(document_id: str, as_of: date) -> Dict[str, str]:
    return {"regelingID": document_id, "geldigheidsdatum": format_as_of(as_of)}


@dataclass(frozen=True)
class BWBFetcher:
    endpoint: str = DEFAULT_SOURCE_URL
    timeout: float = 30.0
    user_agent: str = "BWBArchive/1.0"

    @classmethod
    def from_config(cls, config: ArchiveConfig) -> "BWBFetcher":
        return cls(endpoint=config.source_url, timeout=config.http_timeout, user_agent=config.user_agent)

    def fetch(self, document_id: str, as_of: date) -> bytes:
        params = request_params(document_id, as_of)
        logger.debug("GET %s %s", self.endpoint, params)
        try:
            resp = requests.get(
                self.endpoint,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FetchError(f"{document_id} @ {params['geldigheidsdatum']}: {e}") from e
        if resp.status_code != 200:
            raise FetchError(
                f"{document_id} @ {params['geldigheidsdatum']}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.content
