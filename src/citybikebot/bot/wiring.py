from __future__ import annotations

from typing import Callable, Optional

from citybikebot.bikeshare.action import BikeShareAction, ChatIntegration, ImageHost, StationDirectory
from citybikebot.bikeshare.distance import DistanceResolver
from citybikebot.bikeshare.route_image import RouteImageComposer
from citybikebot.bot.host import BotHost, FatalHandler
from citybikebot.bot.router import (
    AllOf,
    CommandRouter,
    DirectMentionPredicate,
    ExactPredicate,
    KeywordPredicate,
    ListCommandsAction,
)
from citybikebot.clients.bikeshare import BikeShareClient
from citybikebot.clients.comics import ComicsClient
from citybikebot.clients.google_maps import GoogleMapsClient
from citybikebot.clients.http_base import HttpJsonClient
from citybikebot.clients.imgur import ImgurClient
from citybikebot.clients.slack import SlackIntegration
from citybikebot.comics.action import ComicsAction
from citybikebot.config.models import AppConfig
from citybikebot.utils.cache import MemoryCache


HELP_PHRASES = ("help", "commands", "hjelp")


def build_bike_share_action(
    config: AppConfig,
    *,
    chat: ChatIntegration,
    station_directory: StationDirectory,
    maps: GoogleMapsClient,
    image_host: ImageHost,
    cache: MemoryCache,
) -> BikeShareAction:
    return BikeShareAction(
        chat=chat,
        station_directory=station_directory,
        distance_resolver=DistanceResolver(maps=maps, cache=cache),
        image_composer=RouteImageComposer(maps=maps, cache=cache, max_results=config.bikeshare.max_results),
        image_host=image_host,
        max_results=config.bikeshare.max_results,
        keywords=config.bikeshare.trigger_keywords,
    )


def build_router(
    config: AppConfig,
    *,
    chat: ChatIntegration,
    bike_share: BikeShareAction,
    comics: ComicsAction,
) -> CommandRouter:
    # Channel chatter that merely contains a keyword is ignored; the bot must be addressed.
    addressed = DirectMentionPredicate(bot_user_id=config.slack.bot_user_id)
    bike_keywords = config.bikeshare.trigger_keywords
    comic_keywords = config.comics.trigger_keywords

    router = CommandRouter()
    router.register(
        AllOf((addressed, ExactPredicate(HELP_PHRASES)), command_text="help: list the available commands"),
        ListCommandsAction(chat=chat, router=router),
    )
    router.register(
        AllOf(
            (addressed, KeywordPredicate(bike_keywords)),
            command_text=f"{bike_keywords[0]} <address>: the nearest city bike stations",
        ),
        bike_share,
    )
    router.register(
        AllOf((addressed, KeywordPredicate(comic_keywords)), command_text=f"{comic_keywords[0]}: a random comic"),
        comics,
    )
    return router


def build_host_factory(config: AppConfig, *, cache: Optional[MemoryCache] = None) -> Callable[[FatalHandler], BotHost]:
    # The cache outlives restarts; everything else is rebuilt per instance.
    shared_cache = cache or MemoryCache(config.cache)

    def factory(on_fatal: FatalHandler) -> BotHost:
        http = HttpJsonClient(config.http)
        chat = SlackIntegration(http=http, settings=config.slack)
        maps = GoogleMapsClient(http=http, settings=config.google_maps)
        bike_share = build_bike_share_action(
            config,
            chat=chat,
            station_directory=BikeShareClient(http=http, settings=config.bikeshare),
            maps=maps,
            image_host=ImgurClient(http=http, settings=config.imgur),
            cache=shared_cache,
        )
        return BotHost(
            build_router(
                config,
                chat=chat,
                bike_share=bike_share,
                comics=ComicsAction(chat=chat, comics=ComicsClient(http=http, settings=config.comics)),
            ),
            max_workers=config.bot.max_workers,
            bot_user_id=config.slack.bot_user_id,
            on_fatal=on_fatal,
            resources=[http],
        )

    return factory
