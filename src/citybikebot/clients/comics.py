from __future__ import annotations

import logging
import random
from typing import Any, Mapping, Optional

from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.config.models import ComicsSettings
from citybikebot.errors import ExternalServiceFailure


logger = logging.getLogger(__name__)


class ComicsClient:
    """
    Picks a random strip from an xkcd-style JSON feed.

    The feed exposes the latest strip (with its number `num`) at one URL and every older strip
    at a numbered URL; each record carries the image link in `img`.
    """

    def __init__(
        self,
        *,
        http: HttpJsonClient,
        settings: ComicsSettings,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._rng = rng or random.Random()

    def _fetch(self, url: str) -> Mapping[str, Any]:
        return HttpJsonClient.require_mapping(self._http.get_json(url), what="comic")

    @staticmethod
    def image_url(comic: Mapping[str, Any]) -> str:
        img = comic.get("img")
        if not isinstance(img, str) or not img:
            raise ExternalServiceFailure("Comic record has no image")
        return img

    def get_random_comic(self) -> str:
        latest = self._fetch(self._settings.latest_url)
        try:
            newest = int(latest["num"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ExternalServiceFailure("Comic feed did not say how many comics exist") from exc
        if newest < 1:
            raise ExternalServiceFailure("Comic feed is empty")

        number = self._rng.randint(1, newest)
        if number == newest:
            return self.image_url(latest)

        try:
            comic = self._fetch(self._settings.comic_url_template.format(num=number))
        except ExternalServiceFailure as exc:
            # Numbered feeds have gaps; a missing strip is not worth failing the request for.
            if exc.status_code != 404:
                raise
            logger.info("Comic %s does not exist, using the latest one", number)
            comic = latest
        return self.image_url(comic)
