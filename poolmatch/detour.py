from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Optional

from poolmatch import polyline_codec
from poolmatch.Location import Path
from poolmatch.Match import DetourResult
from poolmatch.Trip import Request, Trip
from poolmatch.errors import (
    DegenerateRouteError,
    FailureReason,
    MalformedPolylineError,
    RoutingProviderError,
)
from poolmatch.routing_provider import RoutingProvider

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = auto()
    BASELINE_REQUESTED = auto()
    BASELINE_RECEIVED = auto()
    DETOUR_REQUESTED = auto()
    COMPLETE = auto()
    FAILED = auto()


def detour_percentage(original_distance: float, new_distance: float) -> float:
    if original_distance == 0:
        raise DegenerateRouteError("original route has zero length")
    return round(100.0 * (new_distance - original_distance) / original_distance, 2)


def _enter(phase: Phase, trip: Trip, request: Request) -> Phase:
    logger.debug("trip %s / request %s: %s", trip.id, request.id, phase.name)
    return phase


def _decode(encoded: Optional[str]) -> Optional[Path]:
    if not encoded:
        return None
    try:
        return polyline_codec.decode(encoded)
    except MalformedPolylineError as e:
        raise RoutingProviderError(FailureReason.INVALID_RESPONSE, f"bad encoded path: {e}") from e


class DetourEvaluator:
    """
    Prices inserting a rider into a trip with two routing queries:
    start -> end, then start -> pickup -> dropoff -> end.
    Both queries use the evaluator's travel mode and routing preference so the
    distances are comparable. No retries: the first failure is raised with the
    phase it happened in.
    """

    def __init__(self, provider: RoutingProvider, travel_mode: str = "DRIVE",
                 routing_preference: str = "TRAFFIC_AWARE"):
        self.provider = provider
        self.travel_mode = travel_mode
        self.routing_preference = routing_preference

    def evaluate(self, trip: Trip, request: Request) -> DetourResult:
        if trip.start == trip.end:
            raise DegenerateRouteError(f"trip {trip.id} starts where it ends")

        phase = _enter(Phase.IDLE, trip, request)
        try:
            phase = _enter(Phase.BASELINE_REQUESTED, trip, request)
            baseline = self.provider.compute_route(
                [trip.start, trip.end], self.travel_mode, self.routing_preference)
            phase = _enter(Phase.BASELINE_RECEIVED, trip, request)
            if baseline.distance_meters == 0:
                raise DegenerateRouteError(f"trip {trip.id} has a zero-length baseline route")

            phase = _enter(Phase.DETOUR_REQUESTED, trip, request)
            augmented = self.provider.compute_route(
                [trip.start, request.pickup, request.dropoff, trip.end],
                self.travel_mode, self.routing_preference)
            # a route through two extra stops between distinct endpoints is never 0 m
            if augmented.distance_meters <= 0:
                raise RoutingProviderError(FailureReason.INVALID_RESPONSE,
                                           f"augmented route has distance {augmented.distance_meters}")

            original_path = _decode(baseline.encoded_path)
            new_path = _decode(augmented.encoded_path)
        except RoutingProviderError as e:
            e.phase = phase.name
            logger.warning("detour for trip %s / request %s failed in %s: %s",
                           trip.id, request.id, phase.name, e)
            _enter(Phase.FAILED, trip, request)
            raise

        result = DetourResult(
            original_distance=baseline.distance_meters,
            new_distance=augmented.distance_meters,
            detour_distance=augmented.distance_meters - baseline.distance_meters,
            detour_percentage=detour_percentage(baseline.distance_meters, augmented.distance_meters),
            original_path=original_path,
            new_path=new_path,
            original_duration=baseline.duration_seconds,
            new_duration=augmented.duration_seconds,
        )
        _enter(Phase.COMPLETE, trip, request)
        logger.debug("trip %s / request %s: detour %.1f m (%.2f%%)", trip.id, request.id,
                     result.detour_distance, result.detour_percentage)
        return result
