"""
pipeline.py – raw roads of ONE target → enriched JSON file

Per road:
  ⓪ (optional) let the AI tidy the raw GIS name,
  ① stitch the geometry into continuous chains,
  ② (optional) backfill + smooth elevation,
  ③ Wikipedia intro as description (AI-written if there is none),
     Wikidata length + photo,
  ④ download the photo next to the output data.
Network trouble in ⓪, ③ or ④ only costs that piece of metadata; a target that
fails as a whole is reported as "Failed" and the run moves on.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from text_unidecode import unidecode
from tqdm import tqdm

from .ai import AIService
from .elevation import ElevationLookup, enrich_elevation
from .geometry import optimize_geometry
from .http import ApiError
from .io import save_json
from .models import Location, RawRoadData, RoadRecord
from .sources import Source
from .wiki import MediaService, WikidataService, WikipediaService

logger = logging.getLogger("scenic.pipeline")

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")


def image_file_name(image_url: str, road_name: str) -> str:
    """Filesystem-safe ASCII file name (“Route 66 – Arizona” → “Route_66_-_Arizona.jpg”)."""
    safe_name = _UNSAFE_RE.sub("_", unidecode(road_name))
    extension = Path(urlparse(image_url).path).suffix.lstrip(".") or "jpg"
    return f"{safe_name}.{extension}"


class RoadEnricher:
    def __init__(
        self,
        output_dir: Path | str,
        elevation: Optional[ElevationLookup] = None,
        wikipedia: Optional[WikipediaService] = None,
        wikidata: Optional[WikidataService] = None,
        media: Optional[MediaService] = None,
        ai: Optional[AIService] = None,
        show_progress: bool = True,
    ):
        self.output_dir = Path(output_dir)
        self.elevation = elevation
        self.wikipedia = wikipedia
        self.wikidata = wikidata
        self.media = media
        self.ai = ai
        self.show_progress = show_progress

    # ------------------------------------------------------------------ #
    def output_path(self, source: Source, target_id: str) -> Path:
        return self.output_dir / "data" / source.id / f"{source.get_target_out_filename(target_id)}.json"

    def process(self, source: Source, target_id: str) -> Dict[str, Any]:
        """Enrich every road of `target_id` and write them to one JSON file."""
        try:
            location = source.get_target_location(target_id)
            logger.info("Fetching %s data from %s …", target_id, source.name)
            raw_roads = source.get_target_data(target_id)

            records = []
            for raw in tqdm(raw_roads, desc=target_id, unit="road", disable=not self.show_progress):
                records.append(self.process_road(raw, source.id, location).to_json_dict())

            path = save_json(records, self.output_path(source, target_id))
            return {"target": target_id, "count": len(records), "path": str(path), "status": "Success"}

        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to process %s: %s", target_id, exc)
            return {"target": target_id, "count": 0, "path": None, "status": "Failed", "error": str(exc)}

    def process_road(self, raw: RawRoadData, source_id: str, location: Location) -> RoadRecord:
        name = raw.name
        if self.ai is not None:
            name = self._clean_name(name, location)

        logger.debug("%s: sorting and stitching geometry segments", name)
        geometry = optimize_geometry(raw.geometry)

        if self.elevation is not None:
            logger.debug("%s: fetching elevation data", name)
            geometry = enrich_elevation(geometry, self.elevation)

        road = RoadRecord.from_location(location, name=name, geom=geometry, source=source_id, source_url="")

        wikidata_id = None
        if self.wikipedia is not None:
            wikidata_id = self._add_description(road)

        if road.description is None and self.ai is not None:
            self._add_ai_description(road)

        if wikidata_id and self.wikidata is not None:
            self._add_wikidata(road, wikidata_id)

        if self.media is not None and road.image and road.image.get("url"):
            self._download_image(road, source_id)

        return road

    # ------------------------------------------------------------------ #
    def _add_description(self, road: RoadRecord) -> Optional[str]:
        try:
            wiki = self.wikipedia.search(road.name)
        except ApiError as exc:
            logger.warning("%s: Wikipedia lookup failed – %s", road.name, exc)
            return None

        if wiki.get("description"):
            road.description = wiki["description"]
            road.description_source = "wiki"
            road.description_source_url = wiki.get("page_url")
        return wiki.get("wikidata_id")

    def _add_wikidata(self, road: RoadRecord, wikidata_id: str) -> None:
        try:
            data = self.wikidata.get_data(wikidata_id)
        except ApiError as exc:
            logger.warning("%s: Wikidata %s failed – %s", road.name, wikidata_id, exc)
            return
        road.length_km = data.get("length_km")
        road.image = data.get("image")

    def _download_image(self, road: RoadRecord, source_id: str) -> None:
        file_name = image_file_name(road.image["url"], road.name)
        road.image["filename"] = file_name
        try:
            self.media.download_image(road.image["url"], f"{source_id}/{file_name}")
        except ApiError as exc:
            logger.warning("%s: image download failed – %s", road.name, exc)

    def _clean_name(self, raw_name: str, location: Location) -> str:
        logger.debug("%s: normalising name via AI", raw_name)
        try:
            return self.ai.clean_name(raw_name, location.state_name, location.country_iso2)
        except ApiError as exc:
            logger.warning("%s: AI name cleanup failed – %s", raw_name, exc)
            return raw_name

    def _add_ai_description(self, road: RoadRecord) -> None:
        logger.debug("%s: generating AI description", road.name)
        try:
            description = self.ai.create_description(road)
        except ApiError as exc:
            logger.warning("%s: AI description failed – %s", road.name, exc)
            return
        if description:
            road.description = description
            road.description_source = "ai"
