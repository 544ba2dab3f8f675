from __future__ import annotations

# `logging` is used to record feed inconsistencies without failing the whole lookup.
import logging
# Typing helpers keep our parsing rules explicit while we still consume raw JSON dicts from GBFS.
from typing import Any, Mapping

from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.config.models import BikeShareSettings
from citybikebot.errors import ExternalServiceFailure
from citybikebot.schemas.core import Station, StationSnapshot, StationStatus


logger = logging.getLogger(__name__)


# `BikeShareClient` reads the public GBFS feeds of a city bike operator and returns a `StationSnapshot`.
# Station metadata and live status come from two separate feeds; they are joined by station id,
# never by position.
class BikeShareClient:
    def __init__(self, *, http: HttpJsonClient, settings: BikeShareSettings) -> None:
        self._http = http
        self._settings = settings
        # Urban Sharing feeds reject requests without an identifying header.
        self._headers = {"Client-Identifier": settings.client_identifier}

    def get_all_bike_sharing_stations(self) -> StationSnapshot:
        """Fetch a fresh snapshot of every station and its current availability."""

        info = self._fetch_stations_block(self._settings.station_information_url, what="station information")
        stations = [self.parse_station(item) for item in info]

        known_ids = {s.station_id for s in stations}
        statuses: list[StationStatus] = []
        seen: set[str] = set()
        for item in self._fetch_stations_block(self._settings.station_status_url, what="station status"):
            status = self.parse_status(item)
            # The status feed can briefly list stations that were just added or removed.
            if status.station_id not in known_ids or status.station_id in seen:
                logger.warning("Ignoring status for unknown or duplicate station %s", status.station_id)
                continue
            seen.add(status.station_id)
            statuses.append(status)

        logger.info("Fetched %s stations (%s with status)", len(stations), len(statuses))
        try:
            return StationSnapshot(stations=tuple(stations), statuses=tuple(statuses))
        except ValueError as exc:
            raise ExternalServiceFailure(f"Inconsistent station feed: {exc}") from exc

    def _fetch_stations_block(self, url: str, *, what: str) -> list[Mapping[str, Any]]:
        payload = HttpJsonClient.require_mapping(self._http.get_json(url, headers=self._headers), what=what)
        data = payload.get("data")
        stations = data.get("stations") if isinstance(data, Mapping) else None
        if not isinstance(stations, list):
            raise ExternalServiceFailure(f"Unexpected {what} feed shape: missing data.stations")
        return stations

    @staticmethod
    def parse_station(item: Mapping[str, Any]) -> Station:
        station_id = item.get("station_id")
        if not station_id:
            raise ExternalServiceFailure(f"Missing station id in record: {item}")
        try:
            lat = float(item["lat"])
            lon = float(item["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ExternalServiceFailure(f"Missing coordinates for station {station_id}") from exc

        name = str(item.get("name") or station_id)
        # `address` is optional in GBFS; the name is the best human-readable fallback.
        address = str(item.get("address") or name)
        return Station(station_id=str(station_id), name=name, address=address, lat=lat, lon=lon)

    @staticmethod
    def parse_status(item: Mapping[str, Any]) -> StationStatus:
        station_id = item.get("station_id")
        if not station_id:
            raise ExternalServiceFailure(f"Missing station id in status record: {item}")
        return StationStatus(
            station_id=str(station_id),
            bikes_available=int(item.get("num_bikes_available") or 0),
            docks_available=int(item.get("num_docks_available") or 0),
        )
