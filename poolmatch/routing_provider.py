from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

import requests

from poolmatch.Location import Location
from poolmatch.errors import FailureReason, RoutingProviderError

logger = logging.getLogger(__name__)

ROUTES_FIELD_MASK = "routes.distanceMeters,routes.duration,routes.polyline.encodedPolyline"

_DURATION = re.compile(r"^(\d+(?:\.\d+)?)s$")


@dataclass(frozen=True)
class RouteCost:
    distance_meters: float
    duration_seconds: Optional[float] = None
    encoded_path: Optional[str] = None


class RoutingProvider(Protocol):
    def compute_route(self,
                      waypoints: Sequence[Location],
                      travel_mode: str,
                      routing_preference: str) -> RouteCost:
        ...


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RoutingProviderError(FailureReason.INVALID_RESPONSE, f"{what} is not a number: {value!r}")
    return float(value)


class _HttpProvider:
    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            logger.warning("routing request timed out after %ss: %s", self.timeout, url)
            raise RoutingProviderError(FailureReason.TIMEOUT, str(e)) from e
        except requests.RequestException as e:
            logger.warning("routing request failed: %s", e)
            raise RoutingProviderError(FailureReason.UNAVAILABLE, str(e)) from e

        if r.status_code >= 500 or r.status_code == 429:
            raise RoutingProviderError(FailureReason.UNAVAILABLE, r.text, status_code=r.status_code)
        if r.status_code >= 400:
            raise RoutingProviderError(FailureReason.NO_ROUTE, r.text, status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise RoutingProviderError(FailureReason.INVALID_RESPONSE, "response is not JSON",
                                       status_code=r.status_code) from e
        if not isinstance(data, dict):
            raise RoutingProviderError(FailureReason.INVALID_RESPONSE, "response is not a JSON object",
                                       status_code=r.status_code)
        return data


# -------------------------
# Routes API (computeRoutes)
# -------------------------
def _waypoint(p: Location) -> Dict[str, Any]:
    return {"location": {"latLng": {"latitude": p.lat, "longitude": p.lng}}}


def parse_duration(value: Any) -> Optional[float]:
    if value is None:
        return None
    m = _DURATION.match(str(value))
    if m is None:
        raise RoutingProviderError(FailureReason.INVALID_RESPONSE, f"bad duration: {value!r}")
    return float(m.group(1))


class RoutesApiProvider(_HttpProvider):
    def __init__(self, api_key: str, url: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key
        self.url = url

    def build_body(self, waypoints: Sequence[Location], travel_mode: str, routing_preference: str) -> dict:
        if len(waypoints) < 2:
            raise ValueError("need an origin and a destination")
        body = {
            "origin": _waypoint(waypoints[0]),
            "destination": _waypoint(waypoints[-1]),
            "travelMode": travel_mode,
            "routingPreference": routing_preference,
        }
        if len(waypoints) > 2:
            body["intermediates"] = [_waypoint(p) for p in waypoints[1:-1]]
        return body

    def compute_route(self, waypoints: Sequence[Location], travel_mode: str = "DRIVE",
                      routing_preference: str = "TRAFFIC_AWARE") -> RouteCost:
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": ROUTES_FIELD_MASK,
        }
        body = self.build_body(waypoints, travel_mode, routing_preference)
        logger.debug("computeRoutes with %d waypoints", len(waypoints))
        data = self._send("POST", self.url, json=body, headers=headers)

        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes:
            raise RoutingProviderError(FailureReason.NO_ROUTE, "provider returned no route")
        route = routes[0]
        if not isinstance(route, dict):
            raise RoutingProviderError(FailureReason.INVALID_RESPONSE, "route is not an object")

        # zero-valued fields are omitted from the payload, but a route through intermediates is never 0 m
        if "distanceMeters" not in route and len(waypoints) > 2:
            raise RoutingProviderError(FailureReason.INVALID_RESPONSE, "route has no distanceMeters")
        distance = _number(route.get("distanceMeters", 0), "distanceMeters")
        poly = route.get("polyline") or {}
        encoded = poly.get("encodedPolyline") if isinstance(poly, dict) else None
        return RouteCost(
            distance_meters=distance,
            duration_seconds=parse_duration(route.get("duration")),
            encoded_path=encoded,
        )


# -------------------------
# OSRM
# -------------------------
def get_profile(option: str) -> str:
    profiles = {
        "DRIVE": "driving",
        "TWO_WHEELER": "driving",
        "BICYCLE": "cycling",
        "WALK": "walking",
    }
    if option not in profiles:
        raise ValueError(f"Unknown travel mode: {option}")
    return profiles[option]


class OsrmProvider(_HttpProvider):
    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        super().__init__(timeout=timeout, session=session)
        self.base_url = base_url.rstrip("/")

    def build_url(self, waypoints: Sequence[Location], travel_mode: str) -> str:
        if len(waypoints) < 2:
            raise ValueError("need an origin and a destination")
        profile = get_profile(travel_mode)
        coords = ";".join(f"{p.lng},{p.lat}" for p in waypoints)
        return f"{self.base_url}/route/v1/{profile}/{coords}?overview=full&geometries=polyline&steps=false"

    def compute_route(self, waypoints: Sequence[Location], travel_mode: str = "DRIVE",
                      routing_preference: str = "TRAFFIC_AWARE") -> RouteCost:
        # OSRM has no routing preference; it is accepted so both providers are interchangeable
        url = self.build_url(waypoints, travel_mode)
        data = self._send("GET", url)

        code = data.get("code")
        if code != "Ok":
            reason = FailureReason.NO_ROUTE if code in ("NoRoute", "NoSegment") else FailureReason.INVALID_RESPONSE
            raise RoutingProviderError(reason, str(data.get("message") or code))

        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes:
            raise RoutingProviderError(FailureReason.NO_ROUTE, "provider returned no route")
        route = routes[0]
        if not isinstance(route, dict):
            raise RoutingProviderError(FailureReason.INVALID_RESPONSE, "route is not an object")
        return RouteCost(
            distance_meters=_number(route.get("distance"), "distance"),
            duration_seconds=_number(route.get("duration"), "duration") if "duration" in route else None,
            encoded_path=route.get("geometry"),
        )
