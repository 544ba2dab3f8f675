from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import pytest


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


class FakeHttp:
    """
    Stands in for `HttpJsonClient`: answers by the first route whose key is a substring of the URL.

    A route value may be a payload or a callable `(url, params_or_body) -> payload`.
    """

    def __init__(self, routes: Optional[Mapping[str, Any]] = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, str, Any]] = []

    def _answer(self, method: str, url: str, payload: Any) -> Any:
        self.calls.append((method, url, payload))
        for key, value in self.routes.items():
            if key in url:
                return value(url, payload) if callable(value) else value
        raise AssertionError(f"Unexpected {method} {url}")

    def get_json(self, url: str, *, params=None, headers=None) -> Any:  # type: ignore[no-untyped-def]
        return self._answer("GET", url, params)

    def post_json(self, url: str, *, data=None, json_body=None, headers=None) -> Any:  # type: ignore[no-untyped-def]
        return self._answer("POST", url, json_body if json_body is not None else data)

    def calls_to(self, fragment: str) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if fragment in c[1]]


class FakeChat:
    def __init__(self, *, fail: bool = False) -> None:
        self.messages: list[tuple[str, str, Any]] = []
        self.direct_messages: list[tuple[str, str]] = []
        self._fail = fail

    def send_message_to_channel(self, channel: str, text: str, attachment=None) -> None:  # type: ignore[no-untyped-def]
        if self._fail:
            raise RuntimeError("chat is down")
        self.messages.append((channel, text, attachment))

    def send_direct_message(self, user: str, text: str) -> None:
        self.direct_messages.append((user, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text, _ in self.messages]


class FakeStationDirectory:
    def __init__(self, snapshot: Any = None, *, error: Optional[Exception] = None) -> None:
        self.snapshot = snapshot
        self.error = error
        self.calls = 0

    def get_all_bike_sharing_stations(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot


class FakeImageHost:
    def __init__(self, link: str = "https://i.imgur.com/directions.png") -> None:
        self.link = link
        self.uploads: list[str] = []

    def upload_image(self, image_url: str) -> str:
        self.uploads.append(image_url)
        return self.link


def distance_payload(*elements: tuple[str, Optional[int]]) -> dict[str, Any]:
    rows = []
    for status, duration in elements:
        element: dict[str, Any] = {"status": status}
        if duration is not None:
            element["duration"] = {"value": duration, "text": f"{duration // 60} mins"}
        rows.append(element)
    return {"status": "OK", "rows": [{"elements": rows}]}


def directions_payload(points: str = "abc~def") -> dict[str, Any]:
    return {"status": "OK", "routes": [{"overview_polyline": {"points": points}}]}


@pytest.fixture
def snapshot():
    from citybikebot.schemas.core import Station, StationSnapshot, StationStatus

    stations = (
        Station("1", "Torvet", "Kongens gate 1", 63.4305, 10.3951),
        Station("2", "Solsiden", "Beddingen 10", 63.4342, 10.4132),
        Station("3", "Munkegata", "Munkegata 20", 63.4290, 10.3946),
        Station("4", "Gloshaugen", "Hogskoleringen 1", 63.4177, 10.4040),
        Station("5", "Bakklandet", "Nedre Bakklandet 5", 63.4281, 10.4030),
    )
    statuses = (
        StationStatus("3", bikes_available=4, docks_available=8),
        StationStatus("1", bikes_available=0, docks_available=12),
        StationStatus("5", bikes_available=7, docks_available=1),
    )
    return StationSnapshot(stations=stations, statuses=statuses)


@pytest.fixture
def reachable_three() -> dict[str, Any]:
    # Stations 1, 3 and 5 are reachable; 3 is the closest.
    return distance_payload(("OK", 600), ("NOT_FOUND", None), ("OK", 120), ("ZERO_RESULTS", None), ("OK", 900))


@pytest.fixture
def cache():
    from citybikebot.config.models import CacheSettings
    from citybikebot.utils.cache import MemoryCache

    return MemoryCache(CacheSettings(ttl_seconds=0))


@pytest.fixture
def maps_factory() -> Callable[[FakeHttp], Any]:
    from citybikebot.clients.google_maps import GoogleMapsClient
    from citybikebot.config.models import GoogleMapsSettings

    def build(http: FakeHttp, *, region: Optional[str] = "no") -> GoogleMapsClient:
        return GoogleMapsClient(http=http, settings=GoogleMapsSettings(api_key="test-key", region=region))  # type: ignore[arg-type]

    return build


class MatchAll:
    """Catch-all predicate for router tests."""

    command_text: Optional[str] = None

    def matches(self, message: Any) -> bool:
        return True
