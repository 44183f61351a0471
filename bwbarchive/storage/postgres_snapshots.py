"""Postgres-backed snapshot archive.

Each call opens its own connection and runs in its own transaction, so the
store can be shared by every scanner thread without locking. Duplicate hashes
are settled by the primary key on bwb_snapshots.hash.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

import psycopg

from bwbarchive.errors import StorageError
from bwbarchive.storage.snapshot_types import (
    InsertResult,
    Snapshot,
    SnapshotReader,
    SnapshotStatistic,
    SnapshotStore,
)

logger = logging.getLogger(__name__)


class PostgresSnapshotStore(SnapshotStore, SnapshotReader):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self, **kwargs):
        return psycopg.connect(self.pg_dsn, **kwargs)

    # -- write side -------------------------------------------------------

    def hash_exists(self, hash_: str) -> bool:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1 FROM bwb_snapshots WHERE hash = %s", (hash_,))
                    return cur.fetchone() is not None
        except psycopg.Error as e:
            raise StorageError(f"hash lookup failed: {e}") from e

    def insert(self, bwb_id: str, hash_: str, pub_date: date, content: bytes) -> InsertResult:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO bwb_snapshots (hash, bwbid, pubdate, content)
                        VALUES (%s, %s, %s, %s)
                        ON CONFLICT (hash) DO NOTHING
                        """,
                        (hash_, bwb_id, pub_date, content),
                    )
                    inserted = cur.rowcount == 1
        except psycopg.Error as e:
            raise StorageError(f"insert of {bwb_id} @ {pub_date} failed: {e}") from e
        return InsertResult.INSERTED if inserted else InsertResult.DUPLICATE

    def last_known_date(self, bwb_id: str) -> Optional[date]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT pubdate FROM bwb_snapshots WHERE bwbid = %s ORDER BY pubdate DESC LIMIT 1",
                        (bwb_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"cursor lookup for {bwb_id} failed: {e}") from e
        return row[0] if row else None

    # -- read side --------------------------------------------------------

    _SNAPSHOT_SELECT = """
        SELECT s.hash, s.bwbid, s.pubdate, s.content, d.titel
        FROM bwb_snapshots s
        LEFT JOIN bwb_documents d ON d.bwbid = s.bwbid
    """

    def latest_snapshot(self, bwb_id: str) -> Optional[Snapshot]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    self._SNAPSHOT_SELECT + " WHERE s.bwbid = %s ORDER BY s.pubdate DESC LIMIT 1",
                    (bwb_id,),
                )
                row = cur.fetchone()
        return self._row_to_snapshot(row) if row else None

    def snapshot_as_of(self, bwb_id: str, as_of: date) -> Optional[Snapshot]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    self._SNAPSHOT_SELECT
                    + " WHERE s.bwbid = %s AND s.pubdate <= %s ORDER BY s.pubdate DESC LIMIT 1",
                    (bwb_id, as_of),
                )
                row = cur.fetchone()
        return self._row_to_snapshot(row) if row else None

    def publication_dates(self, bwb_id: str) -> List[date]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT pubdate FROM bwb_snapshots WHERE bwbid = %s ORDER BY pubdate ASC",
                    (bwb_id,),
                )
                return [r[0] for r in cur.fetchall()]

    def snapshot_statistics(self) -> List[SnapshotStatistic]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT s.bwbid, COALESCE(d.titel, s.bwbid), COUNT(*)
                    FROM bwb_snapshots s
                    LEFT JOIN bwb_documents d ON d.bwbid = s.bwbid
                    GROUP BY s.bwbid, d.titel
                    ORDER BY COUNT(*) DESC, s.bwbid
                    """
                )
                rows = cur.fetchall()
        return [SnapshotStatistic(bwb_id=b, title=t, snapshot_count=int(n or 0)) for (b, t, n) in rows]

    @staticmethod
    def _row_to_snapshot(row) -> Snapshot:
        hash_, bwb_id, pub_date, content, title = row
        return Snapshot(hash=hash_, bwb_id=bwb_id, pub_date=pub_date, content=bytes(content), title=title)
