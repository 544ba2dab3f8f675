from __future__ import annotations

from dataclasses import asdict
import logging
from typing import Any, Mapping, Sequence
from urllib.parse import quote_plus

import pandas as pd

from citybikebot.clients.google_maps import GoogleMapsClient
from citybikebot.errors import ExternalServiceFailure, InvalidArgument, NoReachableStations, NoRouteFound
from citybikebot.schemas.core import DistanceElement, RankedStation, StationSnapshot
from citybikebot.utils.cache import MemoryCache


logger = logging.getLogger(__name__)

DISTANCE_NAMESPACE = "distance"


def parse_distance_elements(payload: Mapping[str, Any], snapshot: StationSnapshot, *, origin: str) -> tuple[DistanceElement, ...]:
    """
    Re-key a distance-matrix response by station id.

    The service answers in destination order, so the pairing with `snapshot.stations`
    happens exactly once, here.
    """

    rows = payload.get("rows") or []
    if not rows:
        raise NoRouteFound(f"Could not find any routes from {origin} to any bike sharing stations.")

    raw_elements = rows[0].get("elements") if isinstance(rows[0], Mapping) else None
    if not isinstance(raw_elements, list) or len(raw_elements) != len(snapshot.stations):
        got = len(raw_elements) if isinstance(raw_elements, list) else 0
        raise ExternalServiceFailure(
            f"Distance matrix returned {got} elements for {len(snapshot.stations)} stations"
        )

    elements: list[DistanceElement] = []
    for station, raw in zip(snapshot.stations, raw_elements):
        status = str(raw.get("status", "UNKNOWN"))
        duration = raw.get("duration")
        duration_s = None
        if isinstance(duration, Mapping) and duration.get("value") is not None:
            duration_s = int(duration["value"])
        elements.append(DistanceElement(station_id=station.station_id, status=status, duration_s=duration_s))
    return tuple(elements)


def rank_reachable(elements: Sequence[DistanceElement], snapshot: StationSnapshot) -> list[RankedStation]:
    """
    Keep stations with an "OK" walking route and sort them by walking duration.

    Ties keep the snapshot's station order. Elements for stations missing from the
    snapshot are dropped.
    """

    position = {s.station_id: i for i, s in enumerate(snapshot.stations)}
    frame = pd.DataFrame([asdict(e) for e in elements], columns=["station_id", "status", "duration_s"])
    frame["position"] = frame["station_id"].map(position)

    reachable = frame[(frame["status"] == "OK") & frame["duration_s"].notna() & frame["position"].notna()]
    if reachable.empty:
        raise NoReachableStations("None of the bike sharing stations can be reached on foot.")

    reachable = reachable.sort_values(["duration_s", "position"], kind="mergesort")
    return [
        RankedStation(station=snapshot.stations[int(pos)], walking_duration_s=int(duration))
        for pos, duration in zip(reachable["position"], reachable["duration_s"])
    ]


class DistanceResolver:
    """Walking durations from one address to every station, cached per address."""

    def __init__(self, *, maps: GoogleMapsClient, cache: MemoryCache) -> None:
        self._maps = maps
        self._cache = cache

    def resolve(self, address: str, snapshot: StationSnapshot) -> list[RankedStation]:
        if not address or not address.strip():
            raise InvalidArgument("address must not be empty")

        encoded_address = quote_plus(address)
        key = self._cache.make_key(DISTANCE_NAMESPACE, encoded_address)

        def find_routes_to_all_stations() -> tuple[DistanceElement, ...]:
            payload = self._maps.distance_matrix(encoded_address, snapshot.piped_coordinates)
            return parse_distance_elements(payload, snapshot, origin=address)

        elements = self._cache.get_or_set(key, find_routes_to_all_stations)
        ranked = rank_reachable(elements, snapshot)
        logger.info("%s of %s stations reachable from %r", len(ranked), len(snapshot.stations), address)
        return ranked
