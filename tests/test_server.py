import asyncio

from aiohttp import test_utils

from poolmatch.coordinator import MatchCoordinator
from poolmatch.detour import DetourEvaluator
from poolmatch.errors import FailureReason, RoutingProviderError
from poolmatch.server import create_app
from helpers import FixedProvider, StraightLineProvider, make_request, make_trip

REQUEST = make_request(pickup=(0.0003, 0.02), dropoff=(-0.0004, 0.08))


def payload(trips=None, policy=None):
    return {
        "request": REQUEST.to_dict(),
        "trips": [t.to_dict() for t in (trips if trips is not None else [make_trip("t1")])],
        "policy": policy or {"max_distance_meters": 100, "max_detour_percentage": 25},
    }


def client_for(provider):
    app = create_app(MatchCoordinator(DetourEvaluator(provider)))
    return test_utils.TestClient(test_utils.TestServer(app))


async def _test_health():
    async with client_for(StraightLineProvider()) as client:
        r = await client.get("/health")
        assert r.status == 200
        assert await r.json() == {"status": "ok"}


async def _test_match():
    async with client_for(StraightLineProvider()) as client:
        r = await client.post("/match", json=payload())
        assert r.status == 200
        body = await r.json()
        assert body["request_id"] == "r1"
        assert body["matches"][0]["trip_id"] == "t1"
        assert body["best"]["candidate"]["trip_id"] == "t1"
        assert body["best"]["detour"]["detour_percentage"] >= 0


async def _test_no_candidates():
    async with client_for(StraightLineProvider()) as client:
        r = await client.post("/match", json=payload(trips=[]))
        assert r.status == 200
        body = await r.json()
        assert body["matches"] == []
        assert body["best"] is None


async def _test_provider_failure():
    provider = FixedProvider(RoutingProviderError(FailureReason.UNAVAILABLE, "down", status_code=503))
    async with client_for(provider) as client:
        r = await client.post("/match", json=payload())
        assert r.status == 502
        body = await r.json()
        assert body["reason"] == "Unavailable"
        assert body["phase"] == "BASELINE_REQUESTED"


async def _test_bad_input():
    async with client_for(StraightLineProvider()) as client:
        r = await client.post("/match", json={"trips": []})
        assert r.status == 400
        r = await client.post("/match", json={"request": {"id": "r1", "rider_id": "x",
                                                          "pickup": {"lat": 100, "lng": 0},
                                                          "dropoff": {"lat": 0, "lng": 0}}})
        assert r.status == 400
        r = await client.post("/match", data="not json")
        assert r.status == 400


async def _test_polyline_endpoints():
    async with client_for(StraightLineProvider()) as client:
        path = [{"lat": 38.5, "lng": -120.2}, {"lat": 40.7, "lng": -120.95}, {"lat": 43.252, "lng": -126.453}]
        r = await client.post("/polyline/encode", json={"path": path})
        assert (await r.json()) == {"polyline": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"}

        r = await client.post("/polyline/decode", json={"polyline": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"})
        assert (await r.json()) == {"path": path}

        r = await client.post("/polyline/decode", json={"polyline": "_p~iF"})
        assert r.status == 400


async def _test_rider_and_driver_get_events():
    async with client_for(StraightLineProvider()) as client:
        rider = await client.ws_connect("/ws")
        driver = await client.ws_connect("/ws")
        await rider.send_json({"type": "subscribe", "channel": "request:r1"})
        assert (await rider.receive_json(timeout=5))["type"] == "subscribed"
        await driver.send_json({"type": "subscribe", "channel": "trip:t1"})
        assert (await driver.receive_json(timeout=5))["type"] == "subscribed"

        r = await client.post("/match", json=payload())
        assert r.status == 200

        status = await rider.receive_json(timeout=5)
        assert status["type"] == "status"
        assert status["status"] == "matched"
        assert status["best_trip_id"] == "t1"

        event = await driver.receive_json(timeout=5)
        assert event["type"] == "match"
        assert event["request_id"] == "r1"

        await rider.close()
        await driver.close()


async def _test_ws_rejects_bad_messages():
    async with client_for(StraightLineProvider()) as client:
        ws = await client.ws_connect("/ws")
        await ws.send_str("{nope")
        assert (await ws.receive_json(timeout=5))["type"] == "error"
        await ws.send_json({"type": "subscribe"})
        assert (await ws.receive_json(timeout=5))["type"] == "error"
        await ws.close()


def test_health():
    asyncio.run(_test_health())


def test_match():
    asyncio.run(_test_match())


def test_no_candidates():
    asyncio.run(_test_no_candidates())


def test_provider_failure():
    asyncio.run(_test_provider_failure())


def test_bad_input():
    asyncio.run(_test_bad_input())


def test_polyline_endpoints():
    asyncio.run(_test_polyline_endpoints())


def test_rider_and_driver_get_events():
    asyncio.run(_test_rider_and_driver_get_events())


def test_ws_rejects_bad_messages():
    asyncio.run(_test_ws_rejects_bad_messages())
