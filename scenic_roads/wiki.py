"""
wiki.py – descriptions, lengths and photos from Wikipedia / Wikidata

Wikipedia gives us the lead paragraph and the Wikidata item id; Wikidata
gives the road length (P2043) and a Commons image (P18), which we resolve
to a URL plus licence/attribution via `imageinfo`.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

from .http import HttpClient

logger = logging.getLogger("scenic.wiki")

_TAG_RE = re.compile(r"<[^>]+>")

# Wikidata unit item → factor to kilometres
LENGTH_UNITS_KM: Dict[str, float] = {
    "Q253276": 1.609344,    # mile
    "Q828224": 0.001,       # metre
    "Q11573": 1.0,          # kilometre
    "Q3710": 0.0003048,     # foot
    "Q174728": 0.0009144,   # yard
}


def _strip_tags(s: Optional[str]) -> str:
    return _TAG_RE.sub("", s or "").strip()


def _first_page(data: Dict[str, Any]) -> Dict[str, Any]:
    pages = (data.get("query") or {}).get("pages") or {}
    if isinstance(pages, dict):
        return next(iter(pages.values()), {})
    return pages[0] if pages else {}


def normalize_length(value: Optional[Dict[str, Any]]) -> Optional[float]:
    """Convert a Wikidata quantity (`{"amount": "+12.5", "unit": ".../Q253276"}`) to km."""
    if not value or "amount" not in value or "unit" not in value:
        return None
    factor = LENGTH_UNITS_KM.get(str(value["unit"]).rsplit("/", 1)[-1])
    if factor is None:
        return None
    return float(value["amount"]) * factor


class WikipediaService:
    def __init__(self, client: HttpClient):
        self.client = client

    def search(self, road_name: str) -> Dict[str, Optional[str]]:
        """
        Title lookup (redirects followed) for the road's article.

        Returns description (plain-text intro), wikidata_id and page_url;
        all three are None when there is no such article.
        """
        data = self.client.get("", {
            "format": "json",
            "action": "query",
            "titles": road_name,
            "prop": "extracts|pageprops",
            "redirects": 1,
            "exintro": 1,
            "explaintext": 1,
        }) or {}

        page = _first_page(data)
        page_id = page.get("pageid")
        return {
            "description": page.get("extract") or None,
            "wikidata_id": (page.get("pageprops") or {}).get("wikibase_item"),
            "page_url": f"https://en.wikipedia.org/?curid={page_id}" if page_id else None,
        }


class WikidataService:
    def __init__(self, client: HttpClient):
        self.client = client

    def get_data(self, wikidata_id: str) -> Dict[str, Any]:
        data = self.client.get("", {
            "format": "json",
            "action": "wbgetentities",
            "props": "claims",
            "ids": wikidata_id,
        }) or {}
        claims = ((data.get("entities") or {}).get(wikidata_id) or {}).get("claims") or {}

        length = self._claim_value(claims, "P2043")
        filename = self._claim_value(claims, "P18")

        return {
            "length_km": normalize_length(length),
            "image": self._fetch_image_data(filename) if filename else None,
        }

    @staticmethod
    def _claim_value(claims: Dict[str, Any], prop: str) -> Any:
        try:
            return claims[prop][0]["mainsnak"]["datavalue"]["value"]
        except (KeyError, IndexError, TypeError):
            return None

    def _fetch_image_data(self, filename: str) -> Dict[str, Any]:
        """Resolve a Commons filename to its URL and attribution metadata."""
        data = self.client.get("", {
            "action": "query",
            "titles": f"File:{filename}",
            "format": "json",
            "prop": "imageinfo",
            "iiprop": "url|extmetadata",
        }) or {}

        info = (_first_page(data).get("imageinfo") or [None])[0]
        if not info:
            return {"filename": filename}

        meta = info.get("extmetadata") or {}

        def _meta(key: str) -> Optional[str]:
            return (meta.get(key) or {}).get("value")

        return {
            "filename": filename,
            "url": info.get("url"),
            "license": _meta("LicenseShortName"),
            "licenseUrl": _meta("LicenseUrl"),
            "author": _strip_tags(_meta("Artist")),
            "credit": _strip_tags(_meta("Credit")),
            "usageTerms": _meta("UsageTerms"),
        }


class MediaService:
    """Stores road photos under `<output_dir>/images/`."""

    def __init__(self, client: HttpClient, output_dir: Path | str):
        self.client = client
        self.output_dir = Path(output_dir)

    def download_image(self, url: str, file_name: str) -> Path:
        return self.client.download_file(url, self.output_dir / "images" / file_name)
