from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


MAX_LABELLED_RESULTS = 26


@dataclass(frozen=True)
class AppSettings:
    name: str = "citybikebot"


@dataclass(frozen=True)
class SlackSettings:
    api_base_url: str
    bot_token: str
    bot_user_id: Optional[str] = None


@dataclass(frozen=True)
class BikeShareSettings:
    station_information_url: str
    station_status_url: str
    client_identifier: str
    max_results: int = 3
    trigger_keywords: tuple[str, ...] = ("bike", "sykkel")


@dataclass(frozen=True)
class GoogleMapsSettings:
    api_key: str
    region: Optional[str] = None
    base_url: str = "https://maps.googleapis.com/maps/api"


@dataclass(frozen=True)
class ImgurSettings:
    client_id: str
    upload_url: str = "https://api.imgur.com/3/image"


@dataclass(frozen=True)
class ComicsSettings:
    latest_url: str = "https://xkcd.com/info.0.json"
    # `{num}` is replaced by the comic number.
    comic_url_template: str = "https://xkcd.com/{num}/info.0.json"
    trigger_keywords: tuple[str, ...] = ("comic", "tegneserie")


@dataclass(frozen=True)
class HttpSettings:
    timeout_s: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.5
    user_agent: str = "citybikebot/0.1.0"


@dataclass(frozen=True)
class CacheSettings:
    ttl_seconds: int
    max_entries: int = 1024


@dataclass(frozen=True)
class BotSettings:
    max_workers: int = 4
    max_restarts: int = 0


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    slack: SlackSettings
    bikeshare: BikeShareSettings
    google_maps: GoogleMapsSettings
    imgur: ImgurSettings
    comics: ComicsSettings
    http: HttpSettings
    cache: CacheSettings
    bot: BotSettings
    logging: LoggingSettings
