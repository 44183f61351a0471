"""Postgres repository for the document catalog (bwb_documents)."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

import psycopg

from bwbarchive.catalog.bwb_catalog import RegelingInfo, download_bwb_id_list, iter_bwb_id_list
from bwbarchive.config import ArchiveConfig
from bwbarchive.errors import CatalogError

logger = logging.getLogger(__name__)


class PostgresCatalog:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def store_documents(self, items: Iterable[RegelingInfo]) -> int:
        """Upsert catalog entries by bwbid in one transaction.

        Returns the number of rows written. Nothing is committed on failure.
        """
        processed = 0
        try:
            with psycopg.connect(self.pg_dsn) as conn:
                with conn.cursor() as cur:
                    for it in items:
                        cur.execute(
                            """
                            INSERT INTO bwb_documents (
                              bwbid, officieletitel, titel, status, regelingsoort, startdatum, vervaldatum
                            )
                            VALUES (
                              %(bwbid)s, %(officieletitel)s, %(titel)s, %(status)s, %(regelingsoort)s,
                              %(startdatum)s, %(vervaldatum)s
                            )
                            ON CONFLICT (bwbid) DO UPDATE SET
                              officieletitel = EXCLUDED.officieletitel,
                              titel = EXCLUDED.titel,
                              status = EXCLUDED.status,
                              regelingsoort = EXCLUDED.regelingsoort,
                              startdatum = EXCLUDED.startdatum,
                              vervaldatum = EXCLUDED.vervaldatum
                            """,
                            {
                                "bwbid": it.bwb_id,
                                "officieletitel": it.officiele_titel,
                                "titel": it.titel,
                                "status": it.status,
                                "regelingsoort": it.regeling_soort,
                                "startdatum": it.inwerkingtredings_datum,
                                "vervaldatum": it.verval_datum,
                            },
                        )
                        processed += 1
        except psycopg.Error as e:
            raise CatalogError(f"storing catalog failed after {processed} rows: {e}") from e
        logger.info("Stored %d catalog entries", processed)
        return processed

    def iter_document_ids(self, kind: str = "wet", *, batch_size: int = 500) -> Iterator[str]:
        """Stream the identifiers of one regulation kind in identifier order.

        Uses a server-side cursor so the full catalog never sits in memory.
        """
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor(name="bwb_document_ids") as cur:
                cur.itersize = batch_size
                cur.execute(
                    "SELECT bwbid FROM bwb_documents WHERE regelingsoort = %s ORDER BY bwbid",
                    (kind,),
                )
                for (bwb_id,) in cur:
                    yield bwb_id

    def count_documents(self, kind: str | None = None) -> int:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                if kind:
                    cur.execute("SELECT COUNT(*) FROM bwb_documents WHERE regelingsoort = %s", (kind,))
                else:
                    cur.execute("SELECT COUNT(*) FROM bwb_documents")
                return int(cur.fetchone()[0] or 0)


def refresh_catalog(config: ArchiveConfig) -> int:
    """Download the BWBIdList and upsert every entry; return the number stored."""
    xml_bytes = download_bwb_id_list(config.catalog_url)
    logger.info("Filling bwb_documents table")
    return PostgresCatalog(config.pg_dsn).store_documents(iter_bwb_id_list(xml_bytes))
