"""Read-only Flask viewer over the snapshot archive.

/status/                     snapshot counts per document
/single/<bwbid>/             latest stored version of a document
/single/<bwbid>/<date>/      version valid on <date> (DD-MM-YYYY)
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import psycopg
from flask import Flask, abort, jsonify, render_template

from bwbarchive.config import ArchiveConfig
from bwbarchive.documents.wetgeving import parse_wetgeving
from bwbarchive.errors import DocumentParseError
from bwbarchive.storage.postgres_snapshots import PostgresSnapshotStore
from bwbarchive.storage.snapshot_types import SnapshotReader

logger = logging.getLogger(__name__)

DATE_FMT = "%d-%m-%Y"


def format_date(value: date) -> str:
    return value.strftime(DATE_FMT)


def parse_view_date(value: str) -> Optional[date]:
    for fmt in (DATE_FMT, "%Y-%m-%d"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def create_app(config: Optional[ArchiveConfig] = None, store: Optional[SnapshotReader] = None) -> Flask:
    config = config or ArchiveConfig()
    reader = store if store is not None else PostgresSnapshotStore(config.pg_dsn)

    app = Flask(__name__)
    app.jinja_env.filters["viewdate"] = format_date

    @app.errorhandler(psycopg.Error)
    def database_error(e):
        logger.error("Database error: %s", e)
        return "Database error", 500

    @app.route("/api/health")
    def health_check():
        return jsonify({"status": "healthy", "timestamp": datetime.now().isoformat()})

    @app.route("/status/")
    def status():
        stats = reader.snapshot_statistics()
        total = sum(s.snapshot_count for s in stats)
        return render_template("status.html", stats=stats, total_snapshots=total)

    @app.route("/single/<bwbid>/")
    @app.route("/single/<bwbid>/<as_of>/")
    def single(bwbid: str, as_of: Optional[str] = None):
        if as_of is None:
            snapshot = reader.latest_snapshot(bwbid)
        else:
            day = parse_view_date(as_of)
            if day is None:
                abort(400, description="Date must be DD-MM-YYYY")
            snapshot = reader.snapshot_as_of(bwbid, day)
        if snapshot is None:
            abort(404, description="Document not found")
        try:
            parsed = parse_wetgeving(snapshot.content)
        except DocumentParseError as e:
            logger.error("Parse error for %s @ %s: %s", bwbid, snapshot.pub_date, e)
            return "Parse error", 500
        versions = reader.publication_dates(bwbid)
        return render_template(
            "single.html",
            bwbid=bwbid,
            title=snapshot.title or bwbid,
            snapshot=snapshot,
            parsed=parsed,
            versions=versions,
        )

    return app
