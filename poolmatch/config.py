import os

from poolmatch.geocoding import OrsGeocoder
from poolmatch.routing_provider import OsrmProvider, RoutesApiProvider


def _read_key_file(filename: str = "key.txt") -> str:
    if not os.path.exists(filename):
        return ""
    with open(filename, "r") as f:
        return f.read().strip()


# routing provider
ROUTING_BACKEND = os.environ.get("POOLMATCH_ROUTING_BACKEND", "routes")  # routes | osrm
ROUTES_API_URL = os.environ.get("POOLMATCH_ROUTES_API_URL",
                                "https://routes.googleapis.com/directions/v2:computeRoutes")
GOOGLE_MAPS_API_KEY = os.environ.get("GOOGLE_MAPS_API_KEY") or _read_key_file()
OSRM_URL = os.environ.get("POOLMATCH_OSRM_URL", "http://localhost:5000")
TRAVEL_MODE = os.environ.get("POOLMATCH_TRAVEL_MODE", "DRIVE")
ROUTING_PREFERENCE = os.environ.get("POOLMATCH_ROUTING_PREFERENCE", "TRAFFIC_AWARE")
REQUEST_TIMEOUT_S = float(os.environ.get("POOLMATCH_REQUEST_TIMEOUT_S", "10"))

# geocoding
ORS_API_KEY = os.environ.get("ORS_API_KEY", "")
ORS_GEOCODE_URL = os.environ.get("POOLMATCH_ORS_GEOCODE_URL",
                                 "https://api.openrouteservice.org/geocode/search")

# match policy defaults
DEFAULT_MAX_DISTANCE_M = float(os.environ.get("POOLMATCH_MAX_DISTANCE_M", "500"))
DEFAULT_MAX_DETOUR_PCT = float(os.environ.get("POOLMATCH_MAX_DETOUR_PCT", "25"))

# server
HOST = os.environ.get("POOLMATCH_HOST", "127.0.0.1")
PORT = int(os.environ.get("POOLMATCH_PORT", "8000"))
LOG_LEVEL = os.environ.get("POOLMATCH_LOG_LEVEL", "INFO")


def make_provider():
    if ROUTING_BACKEND == "osrm":
        return OsrmProvider(base_url=OSRM_URL, timeout=REQUEST_TIMEOUT_S)
    if ROUTING_BACKEND == "routes":
        return RoutesApiProvider(api_key=GOOGLE_MAPS_API_KEY, url=ROUTES_API_URL, timeout=REQUEST_TIMEOUT_S)
    raise ValueError(f"Unknown routing backend: {ROUTING_BACKEND}")


def make_geocoder(country=None):
    return OrsGeocoder(api_key=ORS_API_KEY, url=ORS_GEOCODE_URL, country=country, timeout=REQUEST_TIMEOUT_S)
