from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence
from urllib.parse import quote, urlencode

from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.config.models import GoogleMapsSettings


logger = logging.getLogger(__name__)


class GoogleMapsClient:
    """
    Thin wrapper over the Google Maps web services the bot uses.

    The client only knows URLs and query parameters; parsing and ranking live in
    `citybikebot.bikeshare`. Region and API key are passed through unmodified.
    """

    def __init__(self, *, http: HttpJsonClient, settings: GoogleMapsSettings) -> None:
        self._http = http
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")

    def _common_params(self) -> list[tuple[str, str]]:
        params = [("mode", "walking"), ("units", "metric")]
        if self._settings.region:
            params.append(("region", self._settings.region))
        params.append(("key", self._settings.api_key))
        return params

    def distance_matrix(self, encoded_origin: str, piped_destinations: str) -> Mapping[str, Any]:
        # The origin is already URL-encoded (it doubles as the cache key), so the query string is
        # assembled by hand instead of letting `requests` encode it a second time.
        query = f"origins={encoded_origin}&destinations={quote(piped_destinations, safe=',|')}"
        url = f"{self._base_url}/distancematrix/json?{query}&{urlencode(self._common_params())}"
        logger.info("Distance matrix query for %s destinations", piped_destinations.count("|") + 1)
        return HttpJsonClient.require_mapping(self._http.get_json(url), what="distance matrix")

    def directions(self, origin: str, destination: str) -> Mapping[str, Any]:
        params = [("origin", origin), ("destination", destination), *self._common_params()]
        url = f"{self._base_url}/directions/json"
        return HttpJsonClient.require_mapping(self._http.get_json(url, params=params), what="directions")

    def static_map_url(
        self,
        markers: Sequence[str],
        path: str,
        *,
        size: str = "600x600",
        scale: int = 2,
        maptype: str = "roadmap",
    ) -> str:
        params: list[tuple[str, str]] = [("size", size), ("scale", str(scale)), ("maptype", maptype)]
        if self._settings.region:
            params.append(("region", self._settings.region))
        params.extend(("markers", marker) for marker in markers)
        params.append(("path", path))
        params.append(("key", self._settings.api_key))
        # `|` separators become %7C; commas and colons stay readable.
        return f"{self._base_url}/staticmap?{urlencode(params, quote_via=quote, safe=',:')}"
