from typing import List, Optional, Sequence

from poolmatch import polyline_codec
from poolmatch.Location import Location
from poolmatch.Trip import Request, RequestStatus, Trip, TripStatus
from poolmatch.errors import RoutingProviderError
from poolmatch.geometry import path_length
from poolmatch.routing_provider import RouteCost


def loc(lat, lng):
    return Location(lat=lat, lng=lng)


def make_trip(trip_id="t1", start=(0.0, 0.0), end=(0.0, 0.1), route=None,
              status=TripStatus.ACTIVE, driver_id=None) -> Trip:
    return Trip(
        id=trip_id,
        driver_id=driver_id or f"driver-{trip_id}",
        start=loc(*start),
        end=loc(*end),
        route=[loc(*p) for p in route] if route is not None else None,
        status=status,
    )


def make_request(pickup, dropoff, request_id="r1") -> Request:
    return Request(id=request_id, rider_id="rider-1", pickup=loc(*pickup), dropoff=loc(*dropoff),
                   status=RequestStatus.PENDING)


class StraightLineProvider:
    """Costs a route as the great-circle length through its waypoints, so adding stops never shortens it."""

    def __init__(self, fail_on: Optional[Sequence[int]] = None, error: Optional[RoutingProviderError] = None):
        self.calls: List[tuple] = []
        self.fail_on = set(fail_on or ())
        self.error = error

    def compute_route(self, waypoints, travel_mode, routing_preference):
        self.calls.append((list(waypoints), travel_mode, routing_preference))
        if len(self.calls) in self.fail_on:
            raise self.error
        return RouteCost(
            distance_meters=path_length(waypoints),
            duration_seconds=path_length(waypoints) / 10.0,
            encoded_path=polyline_codec.encode(list(waypoints)),
        )


class FixedProvider:
    """Returns the queued RouteCosts in order."""

    def __init__(self, *costs):
        self.costs = list(costs)
        self.calls: List[tuple] = []

    def compute_route(self, waypoints, travel_mode, routing_preference):
        self.calls.append((list(waypoints), travel_mode, routing_preference))
        cost = self.costs.pop(0)
        if isinstance(cost, Exception):
            raise cost
        return cost
