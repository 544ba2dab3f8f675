from __future__ import annotations

import logging

from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.config.models import ImgurSettings
from citybikebot.errors import ExternalServiceFailure


logger = logging.getLogger(__name__)


class ImgurClient:
    """Re-hosts an image on Imgur so chat clients can render it without our API key in the URL."""

    def __init__(self, *, http: HttpJsonClient, settings: ImgurSettings) -> None:
        self._http = http
        self._settings = settings

    def upload_image(self, image_url: str) -> str:
        payload = self._http.post_json(
            self._settings.upload_url,
            data={"image": image_url, "type": "url"},
            headers={"Authorization": f"Client-ID {self._settings.client_id}"},
        )
        payload = HttpJsonClient.require_mapping(payload, what="image upload")
        data = payload.get("data")
        link = data.get("link") if isinstance(data, dict) else None
        if not payload.get("success") or not link:
            raise ExternalServiceFailure(f"Image upload failed with status {payload.get('status')}")
        logger.info("Uploaded directions image to %s", link)
        return str(link)
