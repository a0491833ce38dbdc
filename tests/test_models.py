import pytest

from poolmatch.Location import Location, from_wkt, to_wkt
from poolmatch.Match import MatchPolicy
from poolmatch.Trip import Request, RequestStatus, Trip, TripStatus
from poolmatch.errors import InvalidTransitionError, MalformedPolylineError, RepositoryError
from helpers import loc, make_request, make_trip


class TestLocation:
    @pytest.mark.parametrize("lat,lng", [(91, 0), (-90.0001, 0), (0, 180.5), (0, -181), (float("nan"), 0)])
    def test_out_of_range(self, lat, lng):
        with pytest.raises(ValueError):
            Location(lat=lat, lng=lng)

    def test_bounds_are_inclusive(self):
        Location(lat=90, lng=180)
        Location(lat=-90, lng=-180)

    def test_equality_ignores_address(self):
        assert Location(1.0, 2.0, "here") == Location(1.0, 2.0)

    def test_wkt(self):
        p = Location(lat=37.7749, lng=-122.4194)
        assert to_wkt(p) == "POINT(-122.4194 37.7749)"
        assert from_wkt("POINT(-122.4194 37.7749)") == p
        assert from_wkt("point( -122.4194   37.7749 )") == p

    @pytest.mark.parametrize("text", ["", "POINT()", "POINT(1)", "POINT(a b)", "POINT(0 95)", "LINESTRING(0 0, 1 1)"])
    def test_bad_wkt(self, text):
        with pytest.raises(RepositoryError):
            from_wkt(text)

    def test_dict_round_trip(self):
        p = Location(1.5, 2.5, "Main St")
        assert Location.from_dict(p.to_dict()).address == "Main St"


class TestTrip:
    def test_route_is_frozen_as_tuple(self):
        trip = make_trip(route=[(0, 0), (0, 0.1)])
        assert isinstance(trip.route, tuple)

    def test_effective_path_falls_back_to_chord(self):
        trip = make_trip(start=(0, 0), end=(0, 0.1))
        assert list(trip.effective_path()) == [loc(0, 0), loc(0, 0.1)]

        single = make_trip(start=(0, 0), end=(0, 0.1), route=[(0, 0.05)])
        assert list(single.effective_path()) == [loc(0, 0), loc(0, 0.1)]

    def test_polyline_round_trip(self):
        trip = make_trip(route=[(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)])
        assert trip.route_polyline == "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
        again = Trip.from_polyline("t1", "d1", trip.start, trip.end, trip.route_polyline)
        assert again.route == trip.route

    def test_from_corrupt_polyline(self):
        with pytest.raises(MalformedPolylineError):
            Trip.from_polyline("t1", "d1", loc(0, 0), loc(0, 1), "_p~iF")

    def test_status_moves(self):
        trip = make_trip(status=TripStatus.PENDING)
        active = trip.with_status(TripStatus.ACTIVE)
        assert active.status is TripStatus.ACTIVE
        assert trip.status is TripStatus.PENDING
        assert active.with_status(TripStatus.COMPLETED).status is TripStatus.COMPLETED

    @pytest.mark.parametrize("terminal", [TripStatus.COMPLETED, TripStatus.CANCELLED])
    def test_terminal_is_immutable(self, terminal):
        trip = make_trip(status=terminal)
        for status in TripStatus:
            with pytest.raises(InvalidTransitionError):
                trip.with_status(status)

    def test_dict_round_trip(self):
        trip = make_trip(route=[(0, 0), (0, 0.05), (0, 0.1)])
        assert Trip.from_dict(trip.to_dict()) == trip


class TestRequest:
    def test_lifecycle(self):
        req = make_request((0, 0), (0, 1))
        matched = req.with_status(RequestStatus.MATCHED)
        accepted = matched.with_status(RequestStatus.ACCEPTED)
        assert accepted.with_status(RequestStatus.COMPLETED).status is RequestStatus.COMPLETED

    def test_cannot_accept_unmatched(self):
        with pytest.raises(InvalidTransitionError):
            make_request((0, 0), (0, 1)).with_status(RequestStatus.ACCEPTED)

    def test_cancelled_is_final(self):
        req = make_request((0, 0), (0, 1)).with_status(RequestStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            req.with_status(RequestStatus.MATCHED)

    def test_dict_round_trip(self):
        req = make_request((0, 0), (0, 1))
        assert Request.from_dict(req.to_dict()) == req


def test_policy_validation():
    with pytest.raises(ValueError):
        MatchPolicy(max_distance_meters=-1, max_detour_percentage=10)
    with pytest.raises(ValueError):
        MatchPolicy(max_distance_meters=100, max_detour_percentage=10, evaluate_top=0)
