from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from poolmatch import polyline_codec
from poolmatch.Location import Location
from poolmatch.errors import InvalidTransitionError


class TripStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (TripStatus.COMPLETED, TripStatus.CANCELLED)


class RequestStatus(Enum):
    PENDING = "pending"
    MATCHED = "matched"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.CANCELLED)


_TRIP_MOVES = {
    TripStatus.PENDING: {TripStatus.ACTIVE, TripStatus.COMPLETED, TripStatus.CANCELLED},
    TripStatus.ACTIVE: {TripStatus.COMPLETED, TripStatus.CANCELLED},
}

_REQUEST_MOVES = {
    RequestStatus.PENDING: {RequestStatus.MATCHED, RequestStatus.CANCELLED},
    RequestStatus.MATCHED: {RequestStatus.MATCHED, RequestStatus.ACCEPTED, RequestStatus.CANCELLED},
    RequestStatus.ACCEPTED: {RequestStatus.COMPLETED, RequestStatus.CANCELLED},
}


def _check_move(current, new, moves) -> None:
    if new not in moves.get(current, ()):
        raise InvalidTransitionError(f"cannot move from {current.value} to {new.value}")


@dataclass(frozen=True)
class Trip:
    """
    A driver's trip. Snapshots are immutable; status changes give a new Trip.
    route: the driver's planned path, None if no route was computed yet
    """
    id: str
    driver_id: str
    start: Location
    end: Location
    route: Optional[Tuple[Location, ...]] = None
    status: TripStatus = TripStatus.ACTIVE

    def __post_init__(self):
        if self.route is not None and not isinstance(self.route, tuple):
            object.__setattr__(self, "route", tuple(self.route))

    @classmethod
    def from_polyline(cls, id: str, driver_id: str, start: Location, end: Location,
                      route_polyline: Optional[str] = None,
                      status: TripStatus = TripStatus.ACTIVE) -> "Trip":
        route = polyline_codec.decode(route_polyline) if route_polyline else None
        return cls(id=id, driver_id=driver_id, start=start, end=end, route=route, status=status)

    @property
    def route_polyline(self) -> Optional[str]:
        if self.route is None:
            return None
        return polyline_codec.encode(self.route)

    def effective_path(self) -> Sequence[Location]:
        if self.route is not None and len(self.route) >= 2:
            return self.route
        return (self.start, self.end)

    def with_status(self, status: TripStatus) -> "Trip":
        _check_move(self.status, status, _TRIP_MOVES)
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "route_polyline": self.route_polyline,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Trip":
        return cls.from_polyline(
            id=str(d["id"]),
            driver_id=str(d["driver_id"]),
            start=Location.from_dict(d["start"]),
            end=Location.from_dict(d["end"]),
            route_polyline=d.get("route_polyline"),
            status=TripStatus(str(d.get("status", "active")).lower()),
        )


@dataclass(frozen=True)
class Request:
    id: str
    rider_id: str
    pickup: Location
    dropoff: Location
    status: RequestStatus = RequestStatus.PENDING

    def with_status(self, status: RequestStatus) -> "Request":
        _check_move(self.status, status, _REQUEST_MOVES)
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rider_id": self.rider_id,
            "pickup": self.pickup.to_dict(),
            "dropoff": self.dropoff.to_dict(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Request":
        return cls(
            id=str(d["id"]),
            rider_id=str(d["rider_id"]),
            pickup=Location.from_dict(d["pickup"]),
            dropoff=Location.from_dict(d["dropoff"]),
            status=RequestStatus(str(d.get("status", "pending")).lower()),
        )
