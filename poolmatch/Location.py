from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from poolmatch.errors import RepositoryError

LatLon = Tuple[float, float]  # (lat, lng)

_WKT_POINT = re.compile(r"^\s*POINT\s*\(\s*([^\s()]+)\s+([^\s()]+)\s*\)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    address: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"non-finite coordinate: ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")

    @property
    def latlon(self) -> LatLon:
        return (self.lat, self.lng)

    @classmethod
    def from_latlon(cls, p: Sequence[float], address: Optional[str] = None) -> "Location":
        return cls(lat=float(p[0]), lng=float(p[1]), address=address)

    def to_dict(self) -> dict:
        d = {"lat": self.lat, "lng": self.lng}
        if self.address is not None:
            d["address"] = self.address
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Location":
        return cls(lat=float(d["lat"]), lng=float(d["lng"]), address=d.get("address"))


# a driver's planned route; may be empty
Path = List[Location]


def to_wkt(location: Location) -> str:
    return f"POINT({location.lng} {location.lat})"


def from_wkt(text: str) -> Location:
    m = _WKT_POINT.match(text or "")
    if m is None:
        raise RepositoryError(f"not a WKT point: {text!r}")
    try:
        return Location(lat=float(m.group(2)), lng=float(m.group(1)))
    except ValueError as e:
        raise RepositoryError(f"invalid WKT point {text!r}: {e}") from e
