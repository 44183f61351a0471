"""Download and parse the BWBIdList, the catalog of every known regulation.

The list is published as a zip containing a single BWBIdList.xml. Only the
fields the archive stores are kept.
"""

from __future__ import annotations

import io
import logging
import zipfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, List, Optional

import requests

from bwbarchive.config import DEFAULT_CATALOG_URL
from bwbarchive.errors import CatalogError

logger = logging.getLogger(__name__)

BWB_ID_LIST_MEMBER = "BWBIdList.xml"


@dataclass(frozen=True)
class RegelingInfo:
    bwb_id: str
    officiele_titel: str = ""
    titel: str = ""
    status: str = ""
    regeling_soort: str = ""
    datum_laatste_wijziging: Optional[date] = None
    inwerkingtredings_datum: Optional[date] = None
    verval_datum: Optional[date] = None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_catalog_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD or DD-MM-YYYY; empty or unparseable values become None."""
    s = (value or "").strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(s[:10], fmt).date()
        except ValueError:
            continue
    logger.debug("Unparseable catalog date %r", value)
    return None


def _child_text(elem: ET.Element, *path: str) -> str:
    """Text of the first descendant following the local-name path, or ''."""
    current: Optional[ET.Element] = elem
    for name in path:
        if current is None:
            return ""
        current = next((c for c in current if _local(c.tag) == name), None)
    if current is None or current.text is None:
        return ""
    return current.text.strip()


def _to_regeling_info(elem: ET.Element) -> Optional[RegelingInfo]:
    bwb_id = _child_text(elem, "BWBId")
    if not bwb_id:
        return None
    return RegelingInfo(
        bwb_id=bwb_id,
        officiele_titel=_child_text(elem, "OfficieleTitel"),
        titel=_child_text(elem, "CiteertitelLijst", "Citeertitel", "titel"),
        status=_child_text(elem, "CiteertitelLijst", "Citeertitel", "status"),
        regeling_soort=_child_text(elem, "RegelingSoort"),
        datum_laatste_wijziging=parse_catalog_date(_child_text(elem, "DatumLaatsteWijziging")),
        inwerkingtredings_datum=parse_catalog_date(
            _child_text(elem, "CiteertitelLijst", "Citeertitel", "InwerkingtredingsDatum")
        ),
        verval_datum=parse_catalog_date(_child_text(elem, "VervalDatum")),
    )


def iter_bwb_id_list(xml_bytes: bytes) -> Iterator[RegelingInfo]:
    """Stream RegelingInfo records out of a BWBIdList.xml document."""
    try:
        for _event, elem in ET.iterparse(io.BytesIO(xml_bytes), events=("end",)):
            if _local(elem.tag) != "RegelingInfo":
                continue
            info = _to_regeling_info(elem)
            elem.clear()
            if info is not None:
                yield info
    except ET.ParseError as e:
        raise CatalogError(f"malformed BWBIdList: {e}") from e


def parse_bwb_id_list(xml_bytes: bytes) -> List[RegelingInfo]:
    return list(iter_bwb_id_list(xml_bytes))


def extract_bwb_id_list(zip_bytes: bytes) -> bytes:
    """Return the BWBIdList.xml member of the published zip."""
    try:
        with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
            for name in zf.namelist():
                if name.rsplit("/", 1)[-1] == BWB_ID_LIST_MEMBER:
                    return zf.read(name)
    except zipfile.BadZipFile as e:
        raise CatalogError(f"catalog download is not a zip file: {e}") from e
    raise CatalogError(f"{BWB_ID_LIST_MEMBER} not found in catalog zip")


def download_bwb_id_list(url: str = DEFAULT_CATALOG_URL, *, timeout: float = 120.0) -> bytes:
    """Download the catalog zip and return the raw BWBIdList.xml bytes."""
    logger.info("Downloading BWBIdList zip from %s", url)
    try:
        resp = requests.get(url, headers={"User-Agent": "BWBArchive/1.0"}, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise CatalogError(f"catalog download failed: {e}") from e
    return extract_bwb_id_list(resp.content)
