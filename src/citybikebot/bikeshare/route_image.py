from __future__ import annotations

import logging
from typing import Sequence

from citybikebot.clients.google_maps import GoogleMapsClient
from citybikebot.errors import InvalidArgument, RouteUnavailable
from citybikebot.schemas.core import LabelledStation, Station
from citybikebot.utils.cache import MemoryCache


logger = logging.getLogger(__name__)

DIRECTIONS_NAMESPACE = "directions"


class RouteImageComposer:
    """
    Builds a static map URL with the user's position, the labelled stations, and the
    walking route to the nearest one.

    Only the nearest station gets a drawn route; the other stations are markers.
    """

    def __init__(self, *, maps: GoogleMapsClient, cache: MemoryCache, max_results: int) -> None:
        self._maps = maps
        self._cache = cache
        self._max_results = max_results

    def compose_image_url(self, origin: str, labelled: Sequence[LabelledStation]) -> str:
        if not origin or not origin.strip():
            raise InvalidArgument("origin must not be empty")
        if not labelled or len(labelled) > self._max_results:
            raise InvalidArgument(
                f"Number of bike sharing stations must be between 1 and {self._max_results}"
            )

        nearest = labelled[0].station
        key = self._cache.make_key(DIRECTIONS_NAMESPACE, origin)
        polyline = self._cache.get_or_set(key, lambda: self._find_detailed_route(origin, nearest))

        markers = [f"color:green|label:U|{origin}"]
        markers.extend(f"color:red|label:{ls.label}|{ls.station.coordinates}" for ls in labelled)
        return self._maps.static_map_url(markers, f"weight:5|color:blue|enc:{polyline}")

    def _find_detailed_route(self, origin: str, station: Station) -> str:
        payload = self._maps.directions(origin, station.coordinates)
        routes = payload.get("routes") or []
        points = None
        if payload.get("status") == "OK" and routes:
            overview = routes[0].get("overview_polyline") or {}
            points = overview.get("points")
        if not points:
            raise RouteUnavailable(f"Could not find a route from {origin} to {station.name}, {station.address}.")
        logger.info("Fetched walking route from %r to %s", origin, station.name)
        return str(points)
