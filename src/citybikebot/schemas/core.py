from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Station:
    station_id: str
    name: str
    address: str
    lat: float
    lon: float

    @property
    def coordinates(self) -> str:
        return f"{self.lat},{self.lon}"


@dataclass(frozen=True)
class StationStatus:
    station_id: str
    bikes_available: int
    docks_available: int


@dataclass(frozen=True)
class StationSnapshot:
    """
    Point-in-time view of every station in the service area plus their live status.

    `piped_coordinates` lists the stations in `stations` order and is sent verbatim
    as the destinations of a distance query.
    """

    stations: tuple[Station, ...]
    statuses: tuple[StationStatus, ...] = ()
    piped_coordinates: str = field(init=False)
    _stations_by_id: dict[str, Station] = field(init=False, repr=False, compare=False)
    _statuses_by_id: dict[str, StationStatus] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        stations_by_id: dict[str, Station] = {}
        for station in self.stations:
            if station.station_id in stations_by_id:
                raise ValueError(f"Duplicate station id in snapshot: {station.station_id}")
            stations_by_id[station.station_id] = station

        statuses_by_id: dict[str, StationStatus] = {}
        for status in self.statuses:
            if status.station_id not in stations_by_id:
                raise ValueError(f"Status refers to unknown station id: {status.station_id}")
            if status.station_id in statuses_by_id:
                raise ValueError(f"Duplicate status for station id: {status.station_id}")
            statuses_by_id[status.station_id] = status

        # Frozen dataclass: derived fields are set through object.__setattr__.
        object.__setattr__(self, "stations", tuple(self.stations))
        object.__setattr__(self, "statuses", tuple(self.statuses))
        object.__setattr__(self, "piped_coordinates", "|".join(s.coordinates for s in self.stations))
        object.__setattr__(self, "_stations_by_id", stations_by_id)
        object.__setattr__(self, "_statuses_by_id", statuses_by_id)

    def station_by_id(self, station_id: str) -> Optional[Station]:
        return self._stations_by_id.get(station_id)

    def status_for(self, station_id: str) -> Optional[StationStatus]:
        return self._statuses_by_id.get(station_id)


@dataclass(frozen=True)
class DistanceElement:
    station_id: str
    status: str
    duration_s: Optional[int] = None

    @property
    def is_reachable(self) -> bool:
        return self.status == "OK" and self.duration_s is not None


@dataclass(frozen=True)
class RankedStation:
    station: Station
    walking_duration_s: int


@dataclass(frozen=True)
class LabelledStation:
    label: str
    ranked: RankedStation

    @property
    def station(self) -> Station:
        return self.ranked.station

    @property
    def walking_duration_s(self) -> int:
        return self.ranked.walking_duration_s


@dataclass(frozen=True)
class ChatMessage:
    text: str
    channel: str
    user: str
    raw_text: Optional[str] = None
    is_direct: bool = False

    @property
    def original_text(self) -> str:
        return self.text if self.raw_text is None else self.raw_text


@dataclass(frozen=True)
class Attachment:
    image_url: str
    title: Optional[str] = None
