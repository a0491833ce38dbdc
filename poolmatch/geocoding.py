from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional, Protocol

import requests

from poolmatch.Location import Location
from poolmatch.errors import GeocodingError

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def resolve(self, address: str) -> Location:
        ...


class OrsGeocoder:
    """openrouteservice /geocode/search; results are cached per address."""

    def __init__(self, api_key: str, url: str, country: Optional[str] = None,
                 timeout: float = 5.0, cache_size: int = 1000,
                 session: Optional[requests.Session] = None):
        if not api_key:
            raise ValueError("openrouteservice API key is required")
        self.api_key = api_key
        self.url = url
        self.country = country
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cached = lru_cache(maxsize=cache_size)(self._fetch)

    def resolve(self, address: str) -> Location:
        address = address.strip()
        if not address:
            raise GeocodingError("empty address")
        return self._cached(address)

    def _fetch(self, address: str) -> Location:
        params = {"api_key": self.api_key, "text": address, "size": 1}
        if self.country:
            params["boundary.country"] = self.country
        try:
            r = self.session.get(self.url, params=params, timeout=self.timeout)
            r.raise_for_status()
            features = r.json().get("features") or []
        except (requests.RequestException, ValueError) as e:
            logger.warning("geocoding %r failed: %s", address, e)
            raise GeocodingError(f"geocoding failed for {address!r}: {e}") from e

        if not features:
            raise GeocodingError(f"no match for {address!r}")
        try:
            lon, lat = features[0]["geometry"]["coordinates"][:2]  # GeoJSON order
            return Location(lat=float(lat), lng=float(lon), address=address)
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"unexpected geocoder payload for {address!r}") from e


class StaticGeocoder:
    def __init__(self, table: Dict[str, Location]):
        self.table = {k.strip().lower(): v for k, v in table.items()}

    def resolve(self, address: str) -> Location:
        loc = self.table.get(address.strip().lower())
        if loc is None:
            raise GeocodingError(f"unknown address: {address!r}")
        return Location(lat=loc.lat, lng=loc.lng, address=address)
