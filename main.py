import logging

from aiohttp import web

from poolmatch import config
from poolmatch.coordinator import MatchCoordinator
from poolmatch.detour import DetourEvaluator
from poolmatch.server import create_app


def start():
    logging.basicConfig(level=config.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    evaluator = DetourEvaluator(config.make_provider(),
                                travel_mode=config.TRAVEL_MODE,
                                routing_preference=config.ROUTING_PREFERENCE)
    app = create_app(MatchCoordinator(evaluator))
    web.run_app(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    start()
