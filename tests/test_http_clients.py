from __future__ import annotations

from typing import Any

import pytest
import requests

from citybikebot.clients.bikeshare import BikeShareClient
from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.clients.imgur import ImgurClient
from citybikebot.clients.slack import SlackIntegration
from citybikebot.config.models import BikeShareSettings, HttpSettings, ImgurSettings, SlackSettings
from citybikebot.errors import ExternalServiceFailure
from citybikebot.schemas.core import Attachment, Station, StationSnapshot, StationStatus
from conftest import FakeHttp


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


def _client_returning(outcome: Any) -> HttpJsonClient:
    client = HttpJsonClient(HttpSettings(timeout_s=1.0, max_retries=0))

    def fake_request(method, url, **kwargs):  # type: ignore[no-untyped-def]
        assert kwargs["timeout"] == 1.0
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client._session.request = fake_request  # type: ignore[method-assign]
    return client


def test_get_json_returns_payload() -> None:
    client = _client_returning(_FakeResponse(200, {"ok": True}))
    assert client.get_json("https://example.com/x") == {"ok": True}


def test_timeout_becomes_external_failure() -> None:
    client = _client_returning(requests.Timeout("slow"))
    with pytest.raises(ExternalServiceFailure, match="timed out"):
        client.get_json("https://example.com/x")


def test_http_error_keeps_status_and_hides_key() -> None:
    client = _client_returning(_FakeResponse(500, text="oops"))
    with pytest.raises(ExternalServiceFailure) as excinfo:
        client.get_json("https://maps.example.com/json?origins=a&key=secret")
    assert excinfo.value.status_code == 500
    assert "secret" not in str(excinfo.value)


def test_error_text_is_short_and_names_only_the_host() -> None:
    client = _client_returning(_FakeResponse(503, text="<html>" + "upstream exploded " * 40 + "</html>"))
    with pytest.raises(ExternalServiceFailure) as excinfo:
        client.get_json("https://maps.example.com/maps/api/distancematrix/json?origins=Torvet&key=secret")
    assert str(excinfo.value) == "maps.example.com answered with HTTP 503"


def test_connection_error_names_the_host() -> None:
    client = _client_returning(requests.ConnectionError("Max retries exceeded with url: /very/long/path"))
    with pytest.raises(ExternalServiceFailure) as excinfo:
        client.get_json("https://api.imgur.example/3/image")
    assert str(excinfo.value) == "api.imgur.example could not be reached"


def test_non_json_body_is_rejected() -> None:
    client = _client_returning(_FakeResponse(200, None, text="<html>"))
    with pytest.raises(ExternalServiceFailure):
        client.get_json("https://example.com/x")


def _gbfs_settings() -> BikeShareSettings:
    return BikeShareSettings(
        station_information_url="https://gbfs.test/station_information.json",
        station_status_url="https://gbfs.test/station_status.json",
        client_identifier="test-bot",
    )


def test_station_directory_joins_status_by_id() -> None:
    http = FakeHttp(
        {
            "station_information": {
                "data": {
                    "stations": [
                        {"station_id": "10", "name": "Torvet", "address": "Kongens gate 1", "lat": 63.43, "lon": 10.39},
                        {"station_id": "11", "name": "Solsiden", "lat": "63.434", "lon": "10.413"},
                    ]
                }
            },
            "station_status": {
                "data": {
                    "stations": [
                        {"station_id": "11", "num_bikes_available": 3, "num_docks_available": 9},
                        {"station_id": "99", "num_bikes_available": 1, "num_docks_available": 1},
                        {"station_id": "10", "num_bikes_available": 0, "num_docks_available": 20},
                    ]
                }
            },
        }
    )
    snapshot = BikeShareClient(http=http, settings=_gbfs_settings()).get_all_bike_sharing_stations()  # type: ignore[arg-type]

    assert [s.station_id for s in snapshot.stations] == ["10", "11"]
    assert snapshot.piped_coordinates == "63.43,10.39|63.434,10.413"
    assert snapshot.station_by_id("11").address == "Solsiden"
    assert snapshot.status_for("10") == StationStatus("10", bikes_available=0, docks_available=20)
    assert snapshot.status_for("99") is None


def test_station_directory_rejects_unexpected_feed() -> None:
    http = FakeHttp({"station_information": {"data": {}}})
    with pytest.raises(ExternalServiceFailure):
        BikeShareClient(http=http, settings=_gbfs_settings()).get_all_bike_sharing_stations()  # type: ignore[arg-type]


def test_snapshot_enforces_status_invariant() -> None:
    station = Station("1", "Torvet", "Kongens gate 1", 63.43, 10.39)
    with pytest.raises(ValueError):
        StationSnapshot(stations=(station,), statuses=(StationStatus("2", 1, 1),))
    with pytest.raises(ValueError):
        StationSnapshot(stations=(station, station))


def test_imgur_upload_returns_public_link() -> None:
    http = FakeHttp({"imgur": {"success": True, "status": 200, "data": {"link": "https://i.imgur.com/x.png"}}})
    client = ImgurClient(http=http, settings=ImgurSettings(client_id="cid", upload_url="https://api.imgur.com/3/image"))  # type: ignore[arg-type]

    assert client.upload_image("https://maps.example.com/staticmap?x") == "https://i.imgur.com/x.png"
    (_, _, body), = http.calls
    assert body == {"image": "https://maps.example.com/staticmap?x", "type": "url"}


def test_imgur_failure_is_external_failure() -> None:
    http = FakeHttp({"imgur": {"success": False, "status": 400, "data": {"error": "bad"}}})
    client = ImgurClient(http=http, settings=ImgurSettings(client_id="cid"))  # type: ignore[arg-type]
    with pytest.raises(ExternalServiceFailure):
        client.upload_image("https://maps.example.com/staticmap?x")


def _slack(http: FakeHttp) -> SlackIntegration:
    return SlackIntegration(http=http, settings=SlackSettings(api_base_url="https://slack.test/api", bot_token="xoxb"))  # type: ignore[arg-type]


def test_slack_channel_message_with_attachment() -> None:
    http = FakeHttp({"chat.postMessage": {"ok": True}})
    _slack(http).send_message_to_channel("C1", "Here's how you get there", Attachment(image_url="https://i/x.png"))

    (_, url, body), = http.calls
    assert url == "https://slack.test/api/chat.postMessage"
    assert body == {"channel": "C1", "text": "Here's how you get there", "attachments": [{"image_url": "https://i/x.png"}]}


def test_slack_direct_message_opens_conversation() -> None:
    http = FakeHttp({"conversations.open": {"ok": True, "channel": {"id": "D9"}}, "chat.postMessage": {"ok": True}})
    _slack(http).send_direct_message("U1", "*Available commands*\n")

    assert [c[1].rsplit("/", 1)[-1] for c in http.calls] == ["conversations.open", "chat.postMessage"]
    assert http.calls[1][2]["channel"] == "D9"


def test_slack_not_ok_is_external_failure() -> None:
    http = FakeHttp({"chat.postMessage": {"ok": False, "error": "channel_not_found"}})
    with pytest.raises(ExternalServiceFailure, match="channel_not_found"):
        _slack(http).send_message_to_channel("C404", "hi")
