"""Structural parse of a stored BWB snapshot for display."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

from bwbarchive.errors import DocumentParseError


@dataclass(frozen=True)
class Aanhef:
    wij: str = ""
    considerans: List[str] = field(default_factory=list)
    afkondiging: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Artikel:
    status: str = ""
    label: str = ""
    nr: str = ""
    tekst: str = ""


@dataclass(frozen=True)
class Wetgeving:
    bwb_id: str = ""
    dtd_versie: str = ""
    soort: str = ""
    lang: str = ""
    intitule: str = ""
    aanhef: Aanhef = field(default_factory=Aanhef)
    artikelen: List[Artikel] = field(default_factory=list)


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None:
        return ""
    return " ".join("".join(elem.itertext()).split())


def _find_first(root: ET.Element, tag: str) -> Optional[ET.Element]:
    if root.tag == tag:
        return root
    return root.find(f".//{tag}")


def _parse_artikel(elem: ET.Element) -> Artikel:
    kop = elem.find("kop")
    paragraphs = [_text(al) for al in elem.iter("al")]
    return Artikel(
        status=elem.get("status", ""),
        label=_text(kop.find("label")) if kop is not None else "",
        nr=_text(kop.find("nr")) if kop is not None else "",
        tekst="\n".join(p for p in paragraphs if p),
    )


def parse_wetgeving(document: str | bytes) -> Wetgeving:
    """Parse the <wetgeving> part of a snapshot.

    Raises DocumentParseError for malformed XML or a document without a
    <wetgeving> element.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise DocumentParseError(f"malformed document: {e}") from e
    wetgeving = _find_first(root, "wetgeving")
    if wetgeving is None:
        raise DocumentParseError("document has no <wetgeving> element")

    aanhef_elem = wetgeving.find("wet-besluit/aanhef")
    aanhef = Aanhef()
    if aanhef_elem is not None:
        aanhef = Aanhef(
            wij=_text(aanhef_elem.find("wij")),
            considerans=[_text(al) for al in aanhef_elem.findall("considerans/considerans.al")],
            afkondiging=[_text(al) for al in aanhef_elem.findall("afkondiging/al")],
        )

    wettekst = wetgeving.find("wet-besluit/wettekst")
    artikelen = [_parse_artikel(a) for a in wettekst.iter("artikel")] if wettekst is not None else []

    return Wetgeving(
        bwb_id=wetgeving.get("bwb-id", ""),
        dtd_versie=wetgeving.get("dtdversie", ""),
        soort=wetgeving.get("soort", ""),
        lang=wetgeving.get("{http://www.w3.org/XML/1998/namespace}lang", wetgeving.get("lang", "")),
        intitule=_text(wetgeving.find("intitule")),
        aanhef=aanhef,
        artikelen=artikelen,
    )
