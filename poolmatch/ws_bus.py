import asyncio
import logging
from typing import Any, Dict, Set

from aiohttp import web

from poolmatch.Match import MatchOutcome

logger = logging.getLogger(__name__)


def trip_channel(trip_id: str) -> str:
    return f"trip:{trip_id}"


def request_channel(request_id: str) -> str:
    return f"request:{request_id}"


def setup_bus(app: web.Application, maxsize: int = 1000) -> None:
    app["subscribers"] = {}
    app["pub_q_by_id"] = asyncio.Queue(maxsize=maxsize)


def subscribe(app: web.Application, channel: str, ws: web.WebSocketResponse) -> None:
    subs: Dict[str, Set[web.WebSocketResponse]] = app["subscribers"]
    subs.setdefault(channel, set()).add(ws)


def unsubscribe(app: web.Application, channel: str, ws: web.WebSocketResponse) -> None:
    subs: Dict[str, Set[web.WebSocketResponse]] = app["subscribers"]
    group = subs.get(channel)
    if group is None:
        return
    group.discard(ws)
    if not group:
        del subs[channel]


def unsubscribe_all(app: web.Application, ws: web.WebSocketResponse) -> None:
    for channel in list(app["subscribers"]):
        unsubscribe(app, channel, ws)


def _drop_oldest(q: asyncio.Queue) -> None:
    try:
        channel, _ = q.get_nowait()
    except asyncio.QueueEmpty:
        return
    q.task_done()
    logger.debug("bus full, dropped a pending event for %s", channel)


async def publish_by_id(app: web.Application, channel: str, event: Dict[str, Any]) -> None:
    """Queue an event for the subscribers of one channel. A full queue loses its oldest event."""
    if not app["subscribers"].get(channel):
        return
    q: asyncio.Queue = app["pub_q_by_id"]
    if q.full():
        _drop_oldest(q)
    q.put_nowait((channel, event))


async def send_status(app: web.Application, request_id: str, status: str, **extra) -> None:
    event = {"type": "status", "status": status, "request_id": request_id}
    event.update(extra)
    await publish_by_id(app, request_channel(request_id), event)


async def publish_outcome(app: web.Application, outcome: MatchOutcome) -> None:
    """Tell the rider how their match went and the chosen driver that a rider is waiting."""
    if outcome.best is not None:
        cand, detour = outcome.best
        await publish_by_id(app, trip_channel(cand.trip_id), {
            "type": "match",
            "request_id": outcome.request_id,
            "candidate": cand.to_dict(),
            "detour": detour.to_dict(),
        })
    status = "matched" if outcome.matched else "no_match"
    best_trip = outcome.best[0].trip_id if outcome.best is not None else None
    await send_status(app, outcome.request_id, status, best_trip_id=best_trip)


async def pump(app: web.Application) -> None:
    subs: Dict[str, Set[web.WebSocketResponse]] = app["subscribers"]
    q: asyncio.Queue = app["pub_q_by_id"]
    while True:
        channel, event = await q.get()
        try:
            for ws in list(subs.get(channel, ())):
                if ws.closed:
                    unsubscribe(app, channel, ws)
                    continue
                try:
                    await ws.send_json(event)
                except ConnectionResetError:
                    logger.debug("dropping closed subscriber on %s", channel)
                    unsubscribe(app, channel, ws)
        finally:
            q.task_done()
