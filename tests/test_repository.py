import pytest

from poolmatch.Trip import RequestStatus, TripStatus
from poolmatch.errors import RepositoryError
from poolmatch.repository import InMemoryRepository
from helpers import loc


@pytest.fixture
def repo():
    return InMemoryRepository()


def test_ensure_profile_is_idempotent(repo):
    first = repo.ensure_profile("u1", "driver", "Dana")
    second = repo.ensure_profile("u1", "driver", "Someone Else")
    assert first == second == {"id": "u1", "role": "driver", "full_name": "Dana"}


def test_ensure_profile_rejects_unknown_role(repo):
    with pytest.raises(RepositoryError):
        repo.ensure_profile("u1", "admin", "Dana")


def test_trip_rows_hold_wkt_and_polyline(repo):
    route = [loc(51.2562, 7.1508), loc(51.24, 7.0), loc(51.2277, 6.7735)]
    trip = repo.create_trip("d1", loc(51.2562, 7.1508), loc(51.2277, 6.7735), route=route)

    row = repo.trips[trip.id]
    assert row["start_location"] == "POINT(7.1508 51.2562)"
    assert row["end_location"] == "POINT(6.7735 51.2277)"
    assert isinstance(row["route_polyline"], str)
    assert row["status"] == "active"

    loaded = repo.get_trip(trip.id)
    assert loaded.status is TripStatus.ACTIVE
    assert loaded.start == loc(51.2562, 7.1508)
    assert list(loaded.route) == route


def test_one_open_trip_per_driver(repo):
    trip = repo.create_trip("d1", loc(0, 0), loc(0, 0.1))
    with pytest.raises(RepositoryError):
        repo.create_trip("d1", loc(0, 0), loc(0, 0.2))

    repo.cancel_trip(trip.id)
    assert repo.create_trip("d1", loc(0, 0), loc(0, 0.2)).status is TripStatus.ACTIVE


def test_active_trips(repo):
    t1 = repo.create_trip("d1", loc(0, 0), loc(0, 0.1))
    t2 = repo.create_trip("d2", loc(0, 0), loc(0, 0.1))
    repo.update_trip_status(t2.id, TripStatus.COMPLETED)
    assert [t.id for t in repo.active_trips()] == [t1.id]


def test_conditional_status_update(repo):
    trip = repo.create_trip("d1", loc(0, 0), loc(0, 0.1))
    with pytest.raises(RepositoryError):
        repo.update_trip_status(trip.id, TripStatus.COMPLETED, expected=TripStatus.PENDING)
    assert repo.get_trip(trip.id).status is TripStatus.ACTIVE

    done = repo.update_trip_status(trip.id, TripStatus.COMPLETED, expected=TripStatus.ACTIVE)
    assert done.status is TripStatus.COMPLETED


def test_terminal_trip_is_frozen(repo):
    trip = repo.create_trip("d1", loc(0, 0), loc(0, 0.1))
    repo.cancel_trip(trip.id)
    with pytest.raises(RepositoryError):
        repo.update_trip_status(trip.id, TripStatus.ACTIVE)


def test_missing_records(repo):
    with pytest.raises(RepositoryError):
        repo.get_trip("nope")
    with pytest.raises(RepositoryError):
        repo.get_request("nope")


def test_request_lifecycle(repo):
    req = repo.create_request("r1", loc(0, 0.02), loc(0, 0.08))
    assert req.status is RequestStatus.PENDING
    assert repo.requests[req.id]["pickup"] == "POINT(0.02 0)"

    repo.update_request_status(req.id, RequestStatus.MATCHED)
    repo.update_request_status(req.id, RequestStatus.ACCEPTED, expected=RequestStatus.MATCHED)
    assert repo.get_request(req.id).status is RequestStatus.ACCEPTED

    with pytest.raises(RepositoryError):
        repo.update_request_status(req.id, RequestStatus.PENDING)


def test_corrupt_row_surfaces_as_repository_error(repo):
    trip = repo.create_trip("d1", loc(0, 0), loc(0, 0.1))
    repo.trips[trip.id]["start_location"] = "LINESTRING(0 0, 1 1)"
    with pytest.raises(RepositoryError):
        repo.get_trip(trip.id)
