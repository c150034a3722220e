"""
sources.py – where raw road geometry comes from

A source knows how to list its targets (files, US states …), how to
describe a target's location, and how to fetch the roads inside it as
RawRoadData.  Feature layers usually split one road into many features,
so `merge_features_by_name` folds them into one MultiLineString per name;
stitching the parts is the geometry module's job.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .http import HttpClient
from .io import load_json
from .models import Location, RawRoadData

logger = logging.getLogger("scenic.sources")


class SourceError(RuntimeError):
    """Raised when a source delivers an item we cannot use."""


US_STATES: Dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AS": "American Samoa", "AZ": "Arizona",
    "AR": "Arkansas", "CA": "California", "CO": "Colorado", "CT": "Connecticut",
    "DE": "Delaware", "DC": "District Of Columbia",
    "FM": "Federated States Of Micronesia", "FL": "Florida", "GA": "Georgia",
    "GU": "Guam", "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois",
    "IN": "Indiana", "IA": "Iowa", "KS": "Kansas", "KY": "Kentucky",
    "LA": "Louisiana", "ME": "Maine", "MH": "Marshall Islands", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey",
    "NM": "New Mexico", "NY": "New York", "NC": "North Carolina",
    "ND": "North Dakota", "MP": "Northern Mariana Islands", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PW": "Palau", "PA": "Pennsylvania",
    "PR": "Puerto Rico", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VI": "Virgin Islands", "VA": "Virginia",
    "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin",
    "WY": "Wyoming",
}


def state_name(iso2: str) -> str:
    try:
        return US_STATES[iso2.upper()]
    except KeyError:
        raise ValueError(f"Invalid US state code: {iso2}") from None


# GIS abbreviations → words, whole words only (" ST" must not hit " STATE")
ABBREVIATIONS: Dict[str, str] = {
    "PKWY": "Parkway", "HWY": "Highway", "EXPY": "Expressway", "TRCE": "Trace",
    "RD": "Road", "BLVD": "Boulevard", "NP": "National Park", "TRL": "Trail",
    "RTE": "Route", "ST": "Street", "AVE": "Avenue", "DR": "Drive", "LN": "Lane",
    "CIR": "Circle", "WAY": "Way", "BYP": "Bypass", "TPKE": "Turnpike",
}
_ABBREV_RE = re.compile(r" (%s)\b" % "|".join(ABBREVIATIONS), re.IGNORECASE)
_WORD_RE = re.compile(r"\w+('\w+)?")


def normalize_road_name(props: Dict[str, Any]) -> str:
    """
    Readable road name from raw GIS attributes.

    >>> normalize_road_name({"NAME": "SUNCOAST SCENIC PKWY"})
    'Suncoast Scenic Parkway'
    """
    raw = next((props[k] for k in ("NAME", "Name", "name", "LOCATION", "DESCRIPT", "Byway_Name")
                if props.get(k) is not None), "")
    raw = str(raw).strip()
    if not raw:
        return ""

    expanded = _ABBREV_RE.sub(lambda m: " " + ABBREVIATIONS[m.group(1).upper()], raw)
    return _WORD_RE.sub(lambda m: m.group(0).capitalize(), expanded.lower())


# ────────────────────────────────────────────────────────────────────────────
def merge_features_by_name(
    features: Iterable[Dict[str, Any]],
    name_keys: Sequence[str] = ("Name", "name", "Byway_Name"),
    name_func: Optional[Callable[[Dict[str, Any]], str]] = None,
) -> List[Dict[str, Any]]:
    """
    Group GeoJSON features by their trimmed name.

    Returns `[{"name", "geometry": MultiLineString}]` in first-seen order;
    LineStrings become one part, MultiLineStrings contribute every part.
    Unnamed features and features without coordinates are dropped.
    `name_func(properties)` replaces the `name_keys` lookup when given.
    """
    merged: Dict[str, Dict[str, Any]] = {}

    for feature in features:
        props = feature.get("properties") or {}
        if name_func is not None:
            raw_name = name_func(props)
        else:
            raw_name = next((props[k] for k in name_keys if props.get(k)), "")
        name = str(raw_name or "").strip()
        if not name:
            continue

        geometry = feature.get("geometry") or {}
        coordinates = geometry.get("coordinates")
        if not coordinates:
            continue
        gtype = geometry.get("type", "LineString")

        road = merged.setdefault(name, {
            "name": name,
            "geometry": {"type": "MultiLineString", "coordinates": []},
        })
        parts = road["geometry"]["coordinates"]
        if gtype == "LineString":
            parts.append(coordinates)
        elif gtype == "MultiLineString":
            parts.extend(coordinates)
        else:
            logger.debug("Ignoring %s part of %s", gtype, name)

    return list(merged.values())


# ────────────────────────────────────────────────────────────────────────────
class Source:
    """Base class: subclasses implement the four target hooks."""

    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name

    def get_targets(self) -> List[str]:
        raise NotImplementedError

    def get_target_location(self, target_id: str) -> Location:
        raise NotImplementedError

    def get_target_out_filename(self, target_id: str) -> str:
        return target_id

    def fetch_raw_data(self, target_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_target_data(self, target_id: str) -> List[RawRoadData]:
        roads: List[RawRoadData] = []
        for item in self.fetch_raw_data(target_id):
            if not isinstance(item, dict) or "name" not in item or "geometry" not in item:
                raise SourceError(f"Source [{self.name}] provided an item missing 'name' or 'geometry'.")
            try:
                roads.append(RawRoadData(name=item["name"], geometry=item["geometry"]))
            except ValueError as exc:
                raise SourceError(f"Source [{self.name}]: {exc}") from exc
        return roads

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class LocalFileSource(Source):
    """Roads from `<input_dir>/<target>.json`; target = country ISO2."""

    def __init__(self, input_dir: Path | str, id: str = "local", name: str = "Local Files"):
        super().__init__(id, name)
        self.input_dir = Path(input_dir)

    def get_targets(self) -> List[str]:
        if not self.input_dir.is_dir():
            logger.error("Input directory not found: %s", self.input_dir)
            return []
        return [p.stem for p in sorted(self.input_dir.glob("*.json"))]

    def get_target_location(self, target_id: str) -> Location:
        return Location(country_iso2=target_id)

    def fetch_raw_data(self, target_id: str) -> List[Dict[str, Any]]:
        data = load_json(self.input_dir / f"{target_id}.json")
        if not isinstance(data, list):
            raise SourceError(f"{target_id}.json must contain a list of roads")
        return data


class ArcGisSource(Source):
    """America's Scenic Highways & Byways feature service, one target per state."""

    ENDPOINT = ("/yiuFazTjHE8F5gzQ/ArcGIS/rest/services/"
                "America_s_Scenic_Highways_and_Byways_WFL1/FeatureServer/{layer}/query")

    def __init__(self, client: HttpClient, layers: Sequence[int] = (0,),
                 id: str = "arcgis", name: str = "ArcGIS (services7.arcgis.com)"):
        super().__init__(id, name)
        self.client = client
        self.layers = list(layers)

    def get_targets(self) -> List[str]:
        return list(US_STATES)

    def get_target_location(self, target_id: str) -> Location:
        return Location(country_iso2="US", state_iso2=target_id, state_name=state_name(target_id))

    def fetch_raw_data(self, target_id: str) -> List[Dict[str, Any]]:
        params = {
            "where": f"State='{state_name(target_id)}'",
            "outFields": "*",
            "returnGeometry": "true",
            "f": "pgeojson",
        }

        features: List[Dict[str, Any]] = []
        for layer in self.layers:
            data = self.client.get(self.ENDPOINT.format(layer=layer), params) or {}
            features.extend(data.get("features") or [])
        logger.debug("%s: %d raw features across %d layers", target_id, len(features), len(self.layers))

        return merge_features_by_name(features)


# MapServer layer id → (state ISO2, layer name)
US_DOT_LAYERS: Dict[int, Tuple[str, str]] = {
    3: ("AL", "AL_ScenicByways"),
    5: ("AK", "AK_ScenicByways"),
    7: ("AZ", "AZ_ScenicByways"),
    9: ("AR", "AR_ScenicByways"),
    11: ("CA", "CA_Scenic_Byways"),
    13: ("CO", "Grand_Mesa_Scenic_Byway"),
    14: ("CO", "Gold_Belt_Tour_Scenic_Byway"),
    15: ("CO", "Frontier_Pathways_Scenic_Byway"),
    16: ("CO", "Flat_Tops_Trail_Scenic_Byway"),
    17: ("CO", "Dinosaur_Diamond_Scenic_Byway"),
    18: ("CO", "Colorado_River_Headwaters_Scenic_Byway"),
    19: ("CO", "Colligiate_Peaks_Scenic_Byway"),
    20: ("CO", "Cache_la_Poudre_NP_Scenic_Byway"),
    21: ("CO", "Alpine_Loop_Scenic_Byway"),
    23: ("CT", "CT_ScenicByways"),
    25: ("FL", "scenic_highways"),
    27: ("GA", "GA_ScenicByways"),
    29: ("ID", "Scenic_Byway"),
    31: ("IL", "IL_ScenicByways"),
    33: ("IN", "IN_ScenicByways"),
    35: ("IA", "IA_ScenicByways"),
    37: ("KS", "KS_ScenicByways"),
    39: ("KY", "KY_ScenicByways"),
    41: ("LA", "LA_ScenicByways"),
    43: ("ME", "MaineDOT_Scenic_Byways"),
    45: ("MA", "MA_ScenicByways"),
    47: ("MD", "MD_ScenicByways"),
    49: ("MI", "MI_ScenicByways"),
    51: ("MN", "MN_ScenicByways"),
    53: ("MS", "MS_ScenicByways"),
    55: ("MO", "MO_ScenicByways"),
    57: ("MT", "MT_ScenicByways"),
    59: ("NE", "NE_ScenicByways"),
    61: ("NV", "NV_ScenicByways"),
    63: ("NH", "NH_ScenicByways"),
    65: ("NJ", "NJ_ScenicByways"),
    67: ("NY", "NY_ScenicByways"),
    69: ("NM", "NM_ScenicByways"),
    71: ("NC", "NC_ScenicByways"),
    73: ("ND", "ND_ScenicByways"),
    75: ("OH", "OH_ScenicByways"),
    77: ("OR", "oregon_scenic_byways"),
    79: ("OK", "OK_ScenicByways"),
    81: ("PA", "PA_ScenicByways"),
    83: ("RI", "RI_ScenicByways"),
    85: ("SC", "SC_ScenicByways"),
    87: ("SD", "SD_ScenicByways"),
    89: ("TN", "TN_ScenicByways"),
    91: ("TX", "TX_ScenicByways"),
    93: ("UT", "Utah_Scenic_Byways"),
    95: ("VT", "VT_ScenicByways"),
    97: ("VA", "VA_ScenicByways"),
    99: ("WA", "WSDOT_-_Scenic_Byways"),
    101: ("WV", "WV_ScenicByways"),
    103: ("WI", "WI_ScenicByways"),
    105: ("WY", "WY_ScenicByways"),
}


class UsDotSource(Source):
    """
    U.S. DOT scenic byways MapServer (geo.dot.gov), one target per layer.

    Several layers can belong to one state; they all write `<ISO2>.json`,
    so the last layer processed for a state wins.  Ferry crossings are
    dropped and GIS names are expanded / title-cased.
    """

    ENDPOINT = "/server/rest/services/US_Scenic_Byways/MapServer/{layer}/query"

    def __init__(self, client: HttpClient, id: str = "us-dot", name: str = "U.S. DOT Scenic Byways"):
        super().__init__(id, name)
        self.client = client

    def _layer(self, target_id: str) -> Tuple[str, str]:
        try:
            return US_DOT_LAYERS[int(target_id)]
        except (KeyError, ValueError):
            raise SourceError(f"Unknown US DOT layer: {target_id}") from None

    def get_targets(self) -> List[str]:
        return [str(layer) for layer in US_DOT_LAYERS]

    def get_target_location(self, target_id: str) -> Location:
        iso2, _ = self._layer(target_id)
        return Location(country_iso2="US", state_iso2=iso2, state_name=state_name(iso2))

    def get_target_out_filename(self, target_id: str) -> str:
        return self._layer(target_id)[0]

    def fetch_raw_data(self, target_id: str) -> List[Dict[str, Any]]:
        self._layer(target_id)
        params = {
            "where": "1=1",
            "outFields": "*",
            "returnGeometry": "true",
            "f": "geojson",
        }
        data = self.client.get(self.ENDPOINT.format(layer=int(target_id)), params) or {}

        features = [
            f for f in data.get("features") or []
            if (f.get("properties") or {}).get("RouteType") != "Ferry Route"
        ]
        return merge_features_by_name(features, name_func=normalize_road_name)
