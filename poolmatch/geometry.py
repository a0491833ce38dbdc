from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from poolmatch.Location import Location
from poolmatch.errors import EmptyPathError

EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class SegmentProjection:
    fraction: float  # 0 at segment start, 1 at segment end
    distance: float  # meters from the point to the clamped foot


@dataclass(frozen=True)
class PathProjection:
    segment_index: int
    fraction: float
    distance: float
    path_fraction: float  # arc length to the foot / total path length


# -------------------------
# small utils
# -------------------------
def cum_array(values: Sequence[float]) -> List[float]:
    cum = [0.0]
    s = 0.0
    for v in values:
        s += v
        cum.append(s)
    return cum


def _wrap_lng(dlng: float) -> float:
    while dlng > 180.0:
        dlng -= 360.0
    while dlng < -180.0:
        dlng += 360.0
    return dlng


def haversine_distance(a: Location, b: Location) -> float:
    lat1, lon1 = map(math.radians, a.latlon)
    lat2, lon2 = map(math.radians, b.latlon)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    x = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(x)))


def segment_lengths(path: Sequence[Location]) -> List[float]:
    return [haversine_distance(path[i], path[i + 1]) for i in range(len(path) - 1)]


def path_length(path: Sequence[Location]) -> float:
    return sum(segment_lengths(path))


# -------------------------
# projections
# -------------------------
def project_onto_segment(p: Location, a: Location, b: Location) -> SegmentProjection:
    if a == b:
        return SegmentProjection(fraction=0.0, distance=haversine_distance(p, a))

    # local equirectangular plane centred on a; fine for consecutive route vertices
    k = math.cos(math.radians((a.lat + b.lat) / 2.0))
    bx, by = _wrap_lng(b.lng - a.lng) * k, b.lat - a.lat
    px, py = _wrap_lng(p.lng - a.lng) * k, p.lat - a.lat

    denom = bx * bx + by * by
    t = (px * bx + py * by) / denom if denom > 0.0 else 0.0
    t = max(0.0, min(1.0, t))

    foot_lng = a.lng + t * _wrap_lng(b.lng - a.lng)
    if foot_lng > 180.0:
        foot_lng -= 360.0
    elif foot_lng < -180.0:
        foot_lng += 360.0
    foot = Location(lat=a.lat + t * (b.lat - a.lat), lng=foot_lng)
    return SegmentProjection(fraction=t, distance=haversine_distance(p, foot))


def project_onto_path(p: Location,
                      path: Sequence[Location],
                      start: Optional[Location] = None,
                      end: Optional[Location] = None) -> PathProjection:
    """
    Project p onto the closest segment of path.
    A path with fewer than two points falls back to the straight start -> end
    chord when both are given, otherwise EmptyPathError.
    """
    if len(path) < 2:
        if start is None or end is None:
            raise EmptyPathError(f"path has {len(path)} point(s), need at least 2")
        path = [start, end]

    seg_dist = segment_lengths(path)
    cum_dist = cum_array(seg_dist)
    total = cum_dist[-1]

    best_i = 0
    best: Optional[SegmentProjection] = None
    for i in range(len(path) - 1):
        proj = project_onto_segment(p, path[i], path[i + 1])
        if best is None or proj.distance < best.distance:
            best = proj
            best_i = i

    if total > 0.0:
        along = cum_dist[best_i] + best.fraction * seg_dist[best_i]
        path_fraction = max(0.0, min(1.0, along / total))
    else:
        path_fraction = 0.0

    return PathProjection(
        segment_index=best_i,
        fraction=best.fraction,
        distance=best.distance,
        path_fraction=path_fraction,
    )
