from __future__ import annotations

import logging
from typing import Protocol

import requests

from citybikebot.bikeshare.action import ChatIntegration
from citybikebot.errors import ExternalServiceFailure
from citybikebot.schemas.core import ChatMessage


logger = logging.getLogger(__name__)

COMIC_LINK_LABEL = "Awesome tegneserie \U0001F603 "


class ComicSource(Protocol):
    def get_random_comic(self) -> str: ...


def format_comic_link(url: str) -> str:
    return f"<{url}|{COMIC_LINK_LABEL}>"


class ComicsAction:
    """Posts a link to a random comic in the conversation the request came from."""

    def __init__(self, *, chat: ChatIntegration, comics: ComicSource) -> None:
        self._chat = chat
        self._comics = comics

    def execute(self, message: ChatMessage) -> bool:
        try:
            url = self._comics.get_random_comic()
        except (ExternalServiceFailure, requests.RequestException) as exc:
            logger.warning("Comic lookup for %s failed: %s", message.user, exc)
            try:
                self._chat.send_message_to_channel(message.channel, f"Could not find a comic: {exc}")
            except Exception:
                logger.exception("Could not deliver failure message to %s", message.channel)
            return False

        self._chat.send_message_to_channel(message.channel, format_comic_link(url))
        return True
