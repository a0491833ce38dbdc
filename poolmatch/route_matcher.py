from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from poolmatch.Match import MatchCandidate
from poolmatch.Trip import Request, Trip, TripStatus
from poolmatch.geometry import project_onto_path

logger = logging.getLogger(__name__)


def build_candidate(request: Request, trip: Trip, max_distance_meters: float) -> Optional[MatchCandidate]:
    """
    Place the request's pickup and dropoff on the trip's path.
    Returns None when either stop is further than max_distance_meters from it.
    Trips without a route use the straight start -> end chord.
    """
    path = trip.effective_path()
    pick = project_onto_path(request.pickup, path, trip.start, trip.end)
    if pick.distance > max_distance_meters:
        return None
    drop = project_onto_path(request.dropoff, path, trip.start, trip.end)
    if drop.distance > max_distance_meters:
        return None

    return MatchCandidate(
        trip_id=trip.id,
        driver_id=trip.driver_id,
        distance_to_route=max(pick.distance, drop.distance),
        pickup_fraction=pick.path_fraction,
        dropoff_fraction=drop.path_fraction,
        inverted=pick.path_fraction > drop.path_fraction,
    )


def rank_key(c: MatchCandidate):
    return (c.distance_to_route, c.trip_id)


def find_candidates(request: Request,
                    trips: Iterable[Trip],
                    max_distance_meters: float,
                    include_inversions: bool = False) -> List[MatchCandidate]:
    candidates: List[MatchCandidate] = []
    for trip in trips:
        if trip.status is not TripStatus.ACTIVE:
            continue
        c = build_candidate(request, trip, max_distance_meters)
        if c is None:
            continue
        if c.inverted:
            logger.debug("request %s: dropoff upstream of pickup on trip %s (%.3f > %.3f)",
                         request.id, trip.id, c.pickup_fraction, c.dropoff_fraction)
            if not include_inversions:
                continue
        candidates.append(c)

    candidates.sort(key=rank_key)
    return candidates
