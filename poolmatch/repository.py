"""
In-memory store for profiles, trips and requests.

Rows are kept the way a geographic table would hold them: locations as
POINT(lng lat) text and routes as encoded polylines, and are parsed back into
Trip / Request snapshots on read.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Dict, List, Optional, Sequence

from poolmatch import polyline_codec
from poolmatch.Location import Location, from_wkt, to_wkt
from poolmatch.Trip import Request, RequestStatus, Trip, TripStatus
from poolmatch.errors import InvalidTransitionError, MalformedPolylineError, RepositoryError

logger = logging.getLogger(__name__)


def create_uuid() -> str:
    return str(uuid.uuid4())


class InMemoryRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self.profiles: Dict[str, dict] = {}
        self.trips: Dict[str, dict] = {}
        self.requests: Dict[str, dict] = {}

    # -------------------------
    # rows <-> snapshots
    # -------------------------
    @staticmethod
    def _trip_from_row(row: dict) -> Trip:
        try:
            route = polyline_codec.decode(row["route_polyline"]) if row["route_polyline"] else None
        except MalformedPolylineError as e:
            raise RepositoryError(f"trip {row['id']} has a corrupt route: {e}") from e
        return Trip(
            id=row["id"],
            driver_id=row["driver_id"],
            start=from_wkt(row["start_location"]),
            end=from_wkt(row["end_location"]),
            route=route,
            status=TripStatus(row["status"]),
        )

    @staticmethod
    def _request_from_row(row: dict) -> Request:
        return Request(
            id=row["id"],
            rider_id=row["rider_id"],
            pickup=from_wkt(row["pickup"]),
            dropoff=from_wkt(row["dropoff"]),
            status=RequestStatus(row["status"]),
        )

    # -------------------------
    # profiles
    # -------------------------
    def ensure_profile(self, user_id: str, role: str, full_name: str) -> dict:
        if role not in ("driver", "rider"):
            raise RepositoryError(f"unknown role: {role}")
        with self._lock:
            profile = self.profiles.get(user_id)
            if profile is None:
                profile = {"id": user_id, "role": role, "full_name": full_name}
                self.profiles[user_id] = profile
            return dict(profile)

    def get_profile(self, user_id: str) -> Optional[dict]:
        with self._lock:
            p = self.profiles.get(user_id)
            return dict(p) if p is not None else None

    # -------------------------
    # trips
    # -------------------------
    def create_trip(self, driver_id: str, start: Location, end: Location,
                    route: Optional[Sequence[Location]] = None) -> Trip:
        with self._lock:
            for row in self.trips.values():
                if row["driver_id"] == driver_id and not TripStatus(row["status"]).terminal:
                    raise RepositoryError(f"driver {driver_id} already has open trip {row['id']}")
            row = {
                "id": create_uuid(),
                "driver_id": driver_id,
                "start_location": to_wkt(start),
                "end_location": to_wkt(end),
                "route_polyline": polyline_codec.encode(route) if route else None,
                "status": TripStatus.ACTIVE.value,
            }
            self.trips[row["id"]] = row
        logger.info("trip %s created for driver %s", row["id"], driver_id)
        return self._trip_from_row(row)

    def get_trip(self, trip_id: str) -> Trip:
        with self._lock:
            row = self.trips.get(trip_id)
            if row is None:
                raise RepositoryError(f"no trip {trip_id}")
            row = dict(row)
        return self._trip_from_row(row)

    def active_trips(self) -> List[Trip]:
        with self._lock:
            rows = [dict(r) for r in self.trips.values() if r["status"] == TripStatus.ACTIVE.value]
        return [self._trip_from_row(r) for r in rows]

    def update_trip_status(self, trip_id: str, status: TripStatus,
                           expected: Optional[TripStatus] = None) -> Trip:
        """Conditional update: with `expected`, only applies if the stored status still matches."""
        with self._lock:
            row = self.trips.get(trip_id)
            if row is None:
                raise RepositoryError(f"no trip {trip_id}")
            current = self._trip_from_row(row)
            if expected is not None and current.status is not expected:
                raise RepositoryError(f"trip {trip_id} is {current.status.value}, expected {expected.value}")
            try:
                updated = current.with_status(status)
            except InvalidTransitionError as e:
                raise RepositoryError(str(e)) from e
            row["status"] = updated.status.value
        logger.info("trip %s -> %s", trip_id, status.value)
        return updated

    def cancel_trip(self, trip_id: str) -> Trip:
        return self.update_trip_status(trip_id, TripStatus.CANCELLED)

    # -------------------------
    # requests
    # -------------------------
    def create_request(self, rider_id: str, pickup: Location, dropoff: Location) -> Request:
        row = {
            "id": create_uuid(),
            "rider_id": rider_id,
            "pickup": to_wkt(pickup),
            "dropoff": to_wkt(dropoff),
            "status": RequestStatus.PENDING.value,
        }
        with self._lock:
            self.requests[row["id"]] = row
        return self._request_from_row(row)

    def get_request(self, request_id: str) -> Request:
        with self._lock:
            row = self.requests.get(request_id)
            if row is None:
                raise RepositoryError(f"no request {request_id}")
            row = dict(row)
        return self._request_from_row(row)

    def update_request_status(self, request_id: str, status: RequestStatus,
                              expected: Optional[RequestStatus] = None) -> Request:
        with self._lock:
            row = self.requests.get(request_id)
            if row is None:
                raise RepositoryError(f"no request {request_id}")
            current = self._request_from_row(row)
            if expected is not None and current.status is not expected:
                raise RepositoryError(f"request {request_id} is {current.status.value}, expected {expected.value}")
            try:
                updated = current.with_status(status)
            except InvalidTransitionError as e:
                raise RepositoryError(str(e)) from e
            row["status"] = updated.status.value
        return updated
