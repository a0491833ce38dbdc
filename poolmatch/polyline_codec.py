"""
Compact path encoding (the mapping-services "encoded polyline" format).

Coordinates are scaled by 1e5, delta-encoded against the previous point and
written 5 bits per printable character with a continuation bit. The bit
twiddling lives in the `polyline` package; this module pins the precision,
maps points to and from Location and rejects corrupt input with a typed error.
"""
from __future__ import annotations

from typing import List, Sequence

import polyline

from poolmatch.Location import Location, Path
from poolmatch.errors import MalformedPolylineError

PRECISION = 5

_MIN_CHAR = 63
_MAX_CHAR = 127
_CONTINUATION = 0x20


def encode(path: Sequence[Location]) -> str:
    if not path:
        return ""
    return polyline.encode([p.latlon for p in path], precision=PRECISION)


def _check_stream(s: str) -> None:
    for i, ch in enumerate(s):
        code = ord(ch)
        if code < _MIN_CHAR or code >= _MAX_CHAR:
            raise MalformedPolylineError(f"invalid character {ch!r} at offset {i}")
    if (ord(s[-1]) - _MIN_CHAR) & _CONTINUATION:
        raise MalformedPolylineError("continuation bit set on final character")


def decode(s: str) -> Path:
    if not s:
        return []
    _check_stream(s)
    try:
        points = polyline.decode(s, precision=PRECISION)
    except IndexError as e:
        # stream ended between the lat and lng of a point
        raise MalformedPolylineError("encoded path ends mid-coordinate") from e

    out: List[Location] = []
    for lat, lng in points:
        try:
            out.append(Location(lat=lat, lng=lng))
        except ValueError as e:
            raise MalformedPolylineError(str(e)) from e
    return out

