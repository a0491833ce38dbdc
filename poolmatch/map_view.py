from typing import Optional, Sequence

import folium

from poolmatch.Match import MatchOutcome
from poolmatch.Trip import Request, Trip


def render_outcome(trips: Sequence[Trip], request: Request, outcome: Optional[MatchOutcome] = None,
                   zoom_start: int = 12) -> folium.Map:
    m = folium.Map(location=request.pickup.latlon, zoom_start=zoom_start)

    folium.Marker(request.pickup.latlon, tooltip="Pickup", icon=folium.Icon(color="purple")).add_to(m)
    folium.Marker(request.dropoff.latlon, tooltip="Dropoff", icon=folium.Icon(color="black")).add_to(m)

    for trip in trips:
        path = [p.latlon for p in trip.effective_path()]
        folium.PolyLine(path, color="red", weight=3, opacity=1, tooltip=f"Trip {trip.id}").add_to(m)
        folium.Marker(trip.start.latlon, tooltip=f"Start {trip.id}", icon=folium.Icon(color="green")).add_to(m)
        folium.Marker(trip.end.latlon, tooltip=f"End {trip.id}", icon=folium.Icon(color="red")).add_to(m)

    if outcome is not None and outcome.best is not None:
        cand, detour = outcome.best
        if detour.new_path:
            folium.PolyLine([p.latlon for p in detour.new_path], color="blue", weight=5, opacity=0.8,
                            tooltip=f"Trip {cand.trip_id} with rider (+{detour.detour_percentage:.2f}%)").add_to(m)
        if detour.original_path:
            folium.PolyLine([p.latlon for p in detour.original_path], color="cyan", weight=3, opacity=0.7,
                            dash_array="6", tooltip=f"Trip {cand.trip_id} original").add_to(m)
    return m


def save_map(m: folium.Map, filename: str = "map.html") -> str:
    m.save(filename)
    return filename
