import asyncio
import json
import logging
from typing import Any, Dict

from aiohttp import WSMsgType, web

from poolmatch import config
from poolmatch import ws_bus
from poolmatch.Location import Location
from poolmatch.Match import MatchPolicy
from poolmatch.Trip import Request, Trip
from poolmatch.coordinator import MatchCoordinator, decode_path, encode_path
from poolmatch.errors import DegenerateRouteError, MalformedPolylineError, PoolMatchError, RoutingProviderError

logger = logging.getLogger(__name__)


def error_response(status: int, message: str, **extra) -> web.Response:
    body: Dict[str, Any] = {"error": message}
    body.update(extra)
    return web.json_response(body, status=status)


def parse_policy(d: Dict[str, Any]) -> MatchPolicy:
    return MatchPolicy(
        max_distance_meters=float(d.get("max_distance_meters", config.DEFAULT_MAX_DISTANCE_M)),
        max_detour_percentage=float(d.get("max_detour_percentage", config.DEFAULT_MAX_DETOUR_PCT)),
        evaluate_top=int(d.get("evaluate_top", 1)),
        include_inversions=bool(d.get("include_inversions", False)),
    )


async def read_json(request: web.Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except json.JSONDecodeError as e:
        raise web.HTTPBadRequest(text=json.dumps({"error": f"invalid JSON: {e}"}),
                                 content_type="application/json")
    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(text=json.dumps({"error": "expected a JSON object"}),
                                 content_type="application/json")
    return payload


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def match(request: web.Request) -> web.Response:
    payload = await read_json(request)
    try:
        ride_request = Request.from_dict(payload["request"])
        trips = [Trip.from_dict(t) for t in payload.get("trips", [])]
        policy = parse_policy(payload.get("policy") or {})
    except (KeyError, TypeError, ValueError) as e:
        return error_response(400, f"invalid match input: {e}")

    coordinator: MatchCoordinator = request.app["coordinator"]
    loop = asyncio.get_running_loop()
    try:
        outcome = await loop.run_in_executor(None, coordinator.match, ride_request, trips, policy)
    except RoutingProviderError as e:
        await ws_bus.send_status(request.app, ride_request.id, "failed", reason=e.reason.value)
        return error_response(502, str(e), reason=e.reason.value, phase=e.phase)
    except DegenerateRouteError as e:
        return error_response(422, str(e))

    await ws_bus.publish_outcome(request.app, outcome)
    return web.json_response(outcome.to_dict())


async def encode(request: web.Request) -> web.Response:
    payload = await read_json(request)
    try:
        path = [Location.from_dict(p) for p in payload["path"]]
    except (KeyError, TypeError, ValueError) as e:
        return error_response(400, f"invalid path: {e}")
    return web.json_response({"polyline": encode_path(path)})


async def decode(request: web.Request) -> web.Response:
    payload = await read_json(request)
    s = payload.get("polyline")
    if not isinstance(s, str):
        return error_response(400, "polyline must be a string")
    try:
        path = decode_path(s)
    except MalformedPolylineError as e:
        return error_response(400, str(e))
    return web.json_response({"path": [p.to_dict() for p in path]})


async def ws_handler(request: web.Request) -> web.WebSocketResponse:
    app = request.app
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    try:
        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            try:
                data = json.loads(msg.data)
                kind, channel = data.get("type"), data.get("channel")
            except (ValueError, AttributeError):
                await ws.send_json({"type": "error", "error": "bad message"})
                continue
            if not isinstance(channel, str) or not channel:
                await ws.send_json({"type": "error", "error": "missing channel"})
                continue
            if kind == "subscribe":
                ws_bus.subscribe(app, channel, ws)
                await ws.send_json({"type": "subscribed", "channel": channel})
            elif kind == "unsubscribe":
                ws_bus.unsubscribe(app, channel, ws)
                await ws.send_json({"type": "unsubscribed", "channel": channel})
            else:
                await ws.send_json({"type": "error", "error": f"unknown type {kind!r}"})
    finally:
        ws_bus.unsubscribe_all(app, ws)
    return ws


async def _start_pump(app: web.Application) -> None:
    app["pump_task"] = asyncio.create_task(ws_bus.pump(app))


async def _stop_pump(app: web.Application) -> None:
    task = app.get("pump_task")
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


@web.middleware
async def engine_errors(request: web.Request, handler):
    try:
        return await handler(request)
    except PoolMatchError as e:
        logger.exception("unhandled engine error on %s", request.path)
        return error_response(500, str(e))


def create_app(coordinator: MatchCoordinator) -> web.Application:
    app = web.Application(middlewares=[engine_errors])
    app["coordinator"] = coordinator
    ws_bus.setup_bus(app)
    app.router.add_get("/health", health)
    app.router.add_post("/match", match)
    app.router.add_post("/polyline/encode", encode)
    app.router.add_post("/polyline/decode", decode)
    app.router.add_get("/ws", ws_handler)
    app.on_startup.append(_start_pump)
    app.on_cleanup.append(_stop_pump)
    return app
