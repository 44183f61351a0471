#!/usr/bin/env python3
"""Download the BWBIdList and register every regulation in bwb_documents.

Idempotent: re-runs update titles, status and validity dates in place.
"""

from __future__ import annotations

import argparse
import logging
import sys

from bwbarchive.catalog.postgres_catalog import PostgresCatalog, refresh_catalog
from bwbarchive.config import load_config
from bwbarchive.errors import CatalogError
from bwbarchive.storage.postgres_schema import ensure_postgres_schema


def main() -> int:
    parser = argparse.ArgumentParser(description="Load the BWBIdList catalog into Postgres")
    parser.add_argument("--env", default=None, help="Path to .env file")
    parser.add_argument("--pg-dsn", default=None, help="Postgres DSN (defaults to PG_DSN)")
    parser.add_argument("--url", default=None, help="BWBIdList zip URL (defaults to BWB_CATALOG_URL)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    config = load_config(args.env).with_overrides(pg_dsn=args.pg_dsn, catalog_url=args.url)
    ensure_postgres_schema(config.pg_dsn)

    try:
        stored = refresh_catalog(config)
    except CatalogError as e:
        logging.getLogger(__name__).error("Catalog load failed: %s", e)
        return 1

    kind_count = PostgresCatalog(config.pg_dsn).count_documents(config.document_kind)
    print(f"[catalog] stored={stored} kind={config.document_kind} documents_of_kind={kind_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
