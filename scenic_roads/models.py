"""Core records: raw source road, target location, and the enriched road."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class RawRoadData:
    """One named road as delivered by a source, geometry not yet stitched."""
    name: str
    geometry: Dict[str, Any]

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("road name must not be blank")
        if not isinstance(self.geometry, dict) or "coordinates" not in self.geometry:
            raise ValueError(f"geometry for {self.name!r} has no coordinates")


@dataclass(frozen=True)
class Location:
    country_iso2: str
    state_iso2: Optional[str] = None
    state_name: Optional[str] = None


class RoadRecord(BaseModel):
    """
    One enriched road, as written to the output JSON.

    Field names are snake_case in Python and camelCase on disk
    (`countryIso2`, `lengthKm`, …).
    """

    model_config = ConfigDict(alias_generator=to_camel, validate_by_name=True, validate_by_alias=True)

    country_iso2: str
    state_iso2: Optional[str] = None
    state_name: Optional[str] = None
    name: str = "Unnamed Route"
    description: Optional[str] = None
    image: Optional[Dict[str, Any]] = None
    geom: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    length_km: Optional[float] = Field(None, ge=0)
    source: Optional[str] = None
    source_url: Optional[str] = None
    description_source: Optional[str] = None
    description_source_url: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Unnamed Route"
        return v.strip() if isinstance(v, str) else v

    @classmethod
    def from_location(cls, location: Location, **data: Any) -> "RoadRecord":
        return cls(
            country_iso2=location.country_iso2,
            state_iso2=location.state_iso2,
            state_name=location.state_name,
            **data,
        )

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
