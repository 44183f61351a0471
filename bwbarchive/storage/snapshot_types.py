"""Shared snapshot data types and the SnapshotStore contract."""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass
from datetime import date
from typing import List, Optional


def content_hash(content: bytes) -> str:
    """Stable SHA-256 hex digest of the raw fetched bytes."""
    return hashlib.sha256(content).hexdigest()


class InsertResult(enum.Enum):
    INSERTED = "inserted"
    # Another scan (or an earlier run) already stored this hash.
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Snapshot:
    """One archived version of a document."""

    hash: str
    bwb_id: str
    pub_date: date
    # Exactly the bytes that were fetched and hashed.
    content: bytes
    title: Optional[str] = None


@dataclass(frozen=True)
class SnapshotStatistic:
    bwb_id: str
    title: str
    snapshot_count: int


class SnapshotStore:
    """Write side used by the scanner.

    Implementations must be safe to call from several scanner threads at once.
    """

    def hash_exists(self, hash_: str) -> bool:
        raise NotImplementedError

    def insert(self, bwb_id: str, hash_: str, pub_date: date, content: bytes) -> InsertResult:
        raise NotImplementedError

    def last_known_date(self, bwb_id: str) -> Optional[date]:
        raise NotImplementedError


class SnapshotReader:
    """Read side used by the viewer."""

    def latest_snapshot(self, bwb_id: str) -> Optional[Snapshot]:
        raise NotImplementedError

    def snapshot_as_of(self, bwb_id: str, as_of: date) -> Optional[Snapshot]:
        raise NotImplementedError

    def publication_dates(self, bwb_id: str) -> List[date]:
        raise NotImplementedError

    def snapshot_statistics(self) -> List[SnapshotStatistic]:
        raise NotImplementedError
