"""Postgres schema management for the BWB archive.

Schema creation is idempotent (CREATE IF NOT EXISTS); reset drops both tables
first and is only run on explicit request.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import psycopg

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS bwb_documents (
      bwbid VARCHAR(32) PRIMARY KEY,
      officieletitel TEXT NOT NULL,
      titel TEXT NOT NULL,
      status TEXT NOT NULL,
      regelingsoort TEXT NOT NULL,
      startdatum DATE NULL,
      vervaldatum DATE NULL
    );
    """,
    # Older databases used bounded VARCHAR columns.
    """
    DO $$
    BEGIN
      IF EXISTS (
        SELECT 1 FROM information_schema.columns
        WHERE table_name = 'bwb_documents' AND column_name = 'officieletitel'
          AND data_type = 'character varying'
      ) THEN
        ALTER TABLE bwb_documents
          ALTER COLUMN officieletitel TYPE TEXT,
          ALTER COLUMN titel TYPE TEXT,
          ALTER COLUMN status TYPE TEXT,
          ALTER COLUMN regelingsoort TYPE TEXT;
      END IF;
    END $$;
    """,
    "CREATE INDEX IF NOT EXISTS idx_bwb_documents_regelingsoort ON bwb_documents (regelingsoort);",
    # hash is the only key: identical bytes are stored once, whichever document
    # produced them first. content holds exactly the bytes that were hashed.
    """
    CREATE TABLE IF NOT EXISTS bwb_snapshots (
      hash VARCHAR(128) PRIMARY KEY,
      bwbid VARCHAR(32) NOT NULL REFERENCES bwb_documents(bwbid),
      pubdate DATE NOT NULL,
      content BYTEA NOT NULL
    );
    """,
    """
    DO $$
    BEGIN
      IF EXISTS (
        SELECT 1 FROM information_schema.columns
        WHERE table_name = 'bwb_snapshots' AND column_name = 'content' AND data_type = 'text'
      ) THEN
        ALTER TABLE bwb_snapshots ALTER COLUMN content TYPE BYTEA USING convert_to(content, 'UTF8');
      END IF;
    END $$;
    """,
    "CREATE INDEX IF NOT EXISTS idx_bwb_snapshots_bwbid_pubdate ON bwb_snapshots (bwbid, pubdate DESC);",
]

RESET_STATEMENTS: list[str] = [
    "DROP TABLE IF EXISTS bwb_snapshots;",
    "DROP TABLE IF EXISTS bwb_documents;",
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)


def reset_postgres_schema(pg_dsn: str) -> None:
    """Drop all archive tables and recreate them empty."""
    logger.warning("Resetting database: dropping bwb_snapshots and bwb_documents")
    with psycopg.connect(pg_dsn) as conn:
        with conn.cursor() as cur:
            for s in RESET_STATEMENTS + SCHEMA_STATEMENTS:
                cur.execute(s)
