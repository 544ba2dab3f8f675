from __future__ import annotations

from enum import Enum
import logging
from typing import Iterable, Optional, Protocol, Sequence

import requests

from citybikebot.bikeshare.address import DEFAULT_TRIGGER_KEYWORDS, extract_address
from citybikebot.bikeshare.distance import DistanceResolver
from citybikebot.bikeshare.ranking import format_walking_time, top_k
from citybikebot.bikeshare.route_image import RouteImageComposer
from citybikebot.errors import AddressNotFound, BikeShareError
from citybikebot.schemas.core import Attachment, ChatMessage, LabelledStation, StationSnapshot


logger = logging.getLogger(__name__)


class ChatIntegration(Protocol):
    def send_message_to_channel(self, channel: str, text: str, attachment: Optional[Attachment] = None) -> None: ...

    def send_direct_message(self, user: str, text: str) -> None: ...


class StationDirectory(Protocol):
    def get_all_bike_sharing_stations(self) -> StationSnapshot: ...


class ImageHost(Protocol):
    def upload_image(self, image_url: str) -> str: ...


class PipelineState(str, Enum):
    AWAITING_ADDRESS = "awaiting_address"
    RESOLVING_STATIONS = "resolving_stations"
    RANKING = "ranking"
    COMPOSING_IMAGE = "composing_image"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


def format_station_summary(origin: str, labelled: Sequence[LabelledStation], snapshot: StationSnapshot) -> str:
    lines = []
    for item in labelled:
        station = item.station
        status = snapshot.status_for(station.station_id)
        bikes = "?" if status is None else str(status.bikes_available)
        docks = "?" if status is None else str(status.docks_available)
        lines.append(
            f"{station.name} ({item.label}), {station.address}, {bikes} free bikes / {docks} free locks. "
            f"Estimated walking time from {origin} is {format_walking_time(item.walking_duration_s)}."
        )
    return "\n".join(lines)


class BikeShareAction:
    """
    Answers "where is the nearest bike?" with the closest stations and a map.

    `execute` never raises: every failure ends in a single chat message to the
    conversation the request came from and the `FAILED` state.
    """

    def __init__(
        self,
        *,
        chat: ChatIntegration,
        station_directory: StationDirectory,
        distance_resolver: DistanceResolver,
        image_composer: RouteImageComposer,
        image_host: ImageHost,
        max_results: int = 3,
        keywords: Iterable[str] = DEFAULT_TRIGGER_KEYWORDS,
    ) -> None:
        self._chat = chat
        self._stations = station_directory
        self._resolver = distance_resolver
        self._composer = image_composer
        self._image_host = image_host
        self._max_results = max_results
        self._keywords = tuple(keywords)

    def execute(self, message: ChatMessage) -> PipelineState:
        channel = message.channel
        state = PipelineState.AWAITING_ADDRESS
        try:
            try:
                address = extract_address(message.original_text, message.text, keywords=self._keywords)
            except AddressNotFound as exc:
                logger.info("No address in message from %s: %s", message.user, exc)
                self._report(channel, "Cannot find near bike stations to an empty address.")
                return PipelineState.FAILED

            self._chat.send_message_to_channel(channel, f"I'll find the bike stations nearest to {address}...")

            state = PipelineState.RESOLVING_STATIONS
            snapshot = self._stations.get_all_bike_sharing_stations()
            ranked = self._resolver.resolve(address, snapshot)

            state = PipelineState.RANKING
            labelled = top_k(ranked, self._max_results)
            self._chat.send_message_to_channel(channel, format_station_summary(address, labelled, snapshot))

            state = PipelineState.COMPOSING_IMAGE
            image_url = self._composer.compose_image_url(address, labelled)
            public_image_url = self._image_host.upload_image(image_url)

            state = PipelineState.DELIVERING
            self._chat.send_message_to_channel(
                channel, "Here's how you get there", Attachment(image_url=public_image_url)
            )
        except (BikeShareError, requests.RequestException) as exc:
            logger.warning("Bike share lookup failed while %s: %s", state.value, exc)
            self._report(channel, f"Could not route to any bike station: {exc}")
            return PipelineState.FAILED
        except Exception as exc:
            # Contain programming errors to this one request.
            logger.exception("Unexpected error while %s", state.value)
            self._report(channel, f"Could not route to any bike station: {exc}")
            return PipelineState.FAILED

        return PipelineState.DONE

    def _report(self, channel: str, text: str) -> None:
        try:
            self._chat.send_message_to_channel(channel, text)
        except Exception:
            logger.exception("Could not deliver failure message to %s", channel)
