from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
from typing import Optional

from citybikebot.bikeshare.action import PipelineState
from citybikebot.bot.wiring import build_bike_share_action
from citybikebot.clients.bikeshare import BikeShareClient
from citybikebot.clients.google_maps import GoogleMapsClient
from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.clients.imgur import ImgurClient
from citybikebot.config.loader import load_config
from citybikebot.schemas.core import Attachment, ChatMessage
from citybikebot.utils.cache import MemoryCache
from citybikebot.utils.logging import configure_logging


class ConsoleChat:
    """Prints what the bot would post to Slack."""

    def send_message_to_channel(self, channel: str, text: str, attachment: Optional[Attachment] = None) -> None:
        print(text)
        if attachment is not None:
            print(f"[image] {attachment.image_url}")

    def send_direct_message(self, user: str, text: str) -> None:
        print(f"@{user}: {text}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Find the city bike stations nearest to an address.")
    parser.add_argument("message", help='Chat-style request, e.g. "bike Munkegata 1".')
    parser.add_argument("--config", default=None, help="Config JSON path.")
    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.logging)

    with HttpJsonClient(config.http) as http:
        action = build_bike_share_action(
            config,
            chat=ConsoleChat(),
            station_directory=BikeShareClient(http=http, settings=config.bikeshare),
            maps=GoogleMapsClient(http=http, settings=config.google_maps),
            image_host=ImgurClient(http=http, settings=config.imgur),
            cache=MemoryCache(config.cache),
        )
        state = action.execute(ChatMessage(text=args.message, channel="console", user="console"))
    return 0 if state is PipelineState.DONE else 1


if __name__ == "__main__":
    raise SystemExit(main())
