from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Mapping, Optional

from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.config.models import SlackSettings
from citybikebot.errors import ExternalServiceFailure
from citybikebot.schemas.core import Attachment


logger = logging.getLogger(__name__)


class SlackIntegration:
    """
    Outgoing side of the chat integration (Slack Web API).

    Slack answers HTTP 200 with `{"ok": false, "error": ...}` for application-level
    errors, so those are converted to `ExternalServiceFailure` as well.
    """

    def __init__(self, *, http: HttpJsonClient, settings: SlackSettings) -> None:
        self._http = http
        self._base_url = settings.api_base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {settings.bot_token}"}

    def _call(self, method: str, body: Mapping[str, Any]) -> Mapping[str, Any]:
        payload = self._http.post_json(f"{self._base_url}/{method}", json_body=dict(body), headers=self._headers)
        payload = HttpJsonClient.require_mapping(payload, what=method)
        if not payload.get("ok"):
            raise ExternalServiceFailure(f"Slack {method} failed: {payload.get('error', 'unknown_error')}")
        return payload

    def send_message_to_channel(self, channel: str, text: str, attachment: Optional[Attachment] = None) -> None:
        body: dict[str, Any] = {"channel": channel, "text": text}
        if attachment is not None:
            body["attachments"] = [{k: v for k, v in asdict(attachment).items() if v is not None}]
        self._call("chat.postMessage", body)

    def send_direct_message(self, user: str, text: str) -> None:
        opened = self._call("conversations.open", {"users": user})
        channel = opened.get("channel")
        channel_id = channel.get("id") if isinstance(channel, Mapping) else None
        if not channel_id:
            raise ExternalServiceFailure(f"Slack conversations.open returned no channel for {user}")
        self.send_message_to_channel(str(channel_id), text)
