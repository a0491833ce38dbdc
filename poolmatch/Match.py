from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from poolmatch import polyline_codec
from poolmatch.Location import Path
from poolmatch.errors import FailureReason


@dataclass(frozen=True)
class MatchCandidate:
    trip_id: str
    driver_id: str

    # worse of the pickup / dropoff distances to the trip path
    distance_to_route: float
    pickup_fraction: float
    dropoff_fraction: float

    # dropoff projects upstream of pickup on the driver's path
    inverted: bool = False

    def to_dict(self) -> dict:
        return {
            "trip_id": self.trip_id,
            "driver_id": self.driver_id,
            "distance_to_route": self.distance_to_route,
            "pickup_fraction": self.pickup_fraction,
            "dropoff_fraction": self.dropoff_fraction,
            "inverted": self.inverted,
        }


@dataclass(frozen=True)
class DetourResult:
    original_distance: float
    new_distance: float
    detour_distance: float
    detour_percentage: float

    original_path: Optional[Path] = None
    new_path: Optional[Path] = None

    # seconds, when the provider reports them
    original_duration: Optional[float] = None
    new_duration: Optional[float] = None

    @property
    def detour_duration(self) -> Optional[float]:
        if self.original_duration is None or self.new_duration is None:
            return None
        return self.new_duration - self.original_duration

    def to_dict(self) -> dict:
        return {
            "original_distance": self.original_distance,
            "new_distance": self.new_distance,
            "detour_distance": self.detour_distance,
            "detour_percentage": self.detour_percentage,
            "detour_duration": self.detour_duration,
            "original_route_polyline": polyline_codec.encode(self.original_path) if self.original_path else None,
            "new_route_polyline": polyline_codec.encode(self.new_path) if self.new_path else None,
        }


@dataclass(frozen=True)
class MatchPolicy:
    max_distance_meters: float
    max_detour_percentage: float
    # how many ranked candidates get a full detour evaluation
    evaluate_top: int = 1
    include_inversions: bool = False

    def __post_init__(self):
        if self.max_distance_meters < 0:
            raise ValueError("max_distance_meters must be >= 0")
        if self.evaluate_top < 1:
            raise ValueError("evaluate_top must be >= 1")


@dataclass(frozen=True)
class CandidateEvaluation:
    candidate: MatchCandidate
    detour: Optional[DetourResult] = None
    # set when the detour could not be computed: geometric match only
    error: Optional[FailureReason] = None


@dataclass(frozen=True)
class MatchOutcome:
    request_id: str
    matches: List[MatchCandidate] = field(default_factory=list)
    best: Optional[Tuple[MatchCandidate, DetourResult]] = None
    evaluations: List[CandidateEvaluation] = field(default_factory=list)
    # near-route trips rejected because the dropoff comes before the pickup
    inversions: List[MatchCandidate] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return len(self.matches) > 0

    def to_dict(self) -> dict:
        best = None
        if self.best is not None:
            cand, detour = self.best
            best = {"candidate": cand.to_dict(), "detour": detour.to_dict()}
        return {
            "request_id": self.request_id,
            "matches": [m.to_dict() for m in self.matches],
            "best": best,
            "evaluations": [
                {
                    "trip_id": e.candidate.trip_id,
                    "detour": e.detour.to_dict() if e.detour is not None else None,
                    "error": e.error.value if e.error is not None else None,
                }
                for e in self.evaluations
            ],
            "inversions": [c.to_dict() for c in self.inversions],
        }
