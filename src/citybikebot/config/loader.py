from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from citybikebot.config.models import (
    MAX_LABELLED_RESULTS,
    AppConfig,
    AppSettings,
    BikeShareSettings,
    BotSettings,
    CacheSettings,
    ComicsSettings,
    GoogleMapsSettings,
    HttpSettings,
    ImgurSettings,
    LoggingSettings,
    SlackSettings,
)


DEFAULT_STATION_INFORMATION_URL = "https://gbfs.urbansharing.com/trondheimbysykkel.no/station_information.json"
DEFAULT_STATION_STATUS_URL = "https://gbfs.urbansharing.com/trondheimbysykkel.no/station_status.json"


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def _env_or(name: str, value: Any) -> str:
    # Secrets are usually injected via env; an empty env var does not clobber the file value.
    raw = os.getenv(name)
    if raw is not None and raw.strip():
        return raw.strip()
    return "" if value is None else str(value)


def load_config(path: Optional[str | Path] = None, *, base_dir: Optional[Path] = None) -> AppConfig:
    """
    Load typed bot config from JSON.

    - Path resolution is relative to `base_dir` (defaults to current working directory).
    - `.env` is loaded first so API credentials can stay out of the JSON file.
    - Credentials are overridden by `SLACK_BOT_TOKEN`, `GOOGLE_MAPS_API_KEY`, `IMGUR_CLIENT_ID`.
    """

    load_dotenv(".env")

    config_path = Path(
        path
        or os.getenv("CITYBIKEBOT_CONFIG_PATH", "config/default.json")
    ).resolve()
    base_dir = (base_dir or Path.cwd()).resolve()

    raw = json.loads(config_path.read_text(encoding="utf-8"))

    app_raw: Mapping[str, Any] = raw.get("app", {})
    app = AppSettings(name=str(app_raw.get("name", "citybikebot")))

    slack_raw: Mapping[str, Any] = raw.get("slack", {})
    slack = SlackSettings(
        api_base_url=str(slack_raw.get("api_base_url", "https://slack.com/api")),
        bot_token=_env_or("SLACK_BOT_TOKEN", slack_raw.get("bot_token")),
        bot_user_id=_env_or("SLACK_BOT_USER_ID", slack_raw.get("bot_user_id")) or None,
    )

    bikeshare_raw: Mapping[str, Any] = raw.get("bikeshare", {})
    keywords = tuple(str(k).strip().lower() for k in bikeshare_raw.get("trigger_keywords", ["bike", "sykkel"]))
    bikeshare = BikeShareSettings(
        station_information_url=str(
            bikeshare_raw.get("station_information_url", DEFAULT_STATION_INFORMATION_URL)
        ),
        station_status_url=str(bikeshare_raw.get("station_status_url", DEFAULT_STATION_STATUS_URL)),
        client_identifier=str(bikeshare_raw.get("client_identifier", "citybikebot")),
        max_results=int(bikeshare_raw.get("max_results", 3)),
        trigger_keywords=tuple(k for k in keywords if k),
    )
    if not 1 <= bikeshare.max_results <= MAX_LABELLED_RESULTS:
        raise ValueError(
            f"bikeshare.max_results must be between 1 and {MAX_LABELLED_RESULTS}: {bikeshare.max_results}"
        )
    if not bikeshare.trigger_keywords:
        raise ValueError("Config missing required field: bikeshare.trigger_keywords")

    maps_raw: Mapping[str, Any] = raw.get("google_maps", {})
    google_maps = GoogleMapsSettings(
        api_key=_env_or("GOOGLE_MAPS_API_KEY", maps_raw.get("api_key")),
        region=(maps_raw.get("region") or None),
        base_url=str(maps_raw.get("base_url", "https://maps.googleapis.com/maps/api")),
    )

    imgur_raw: Mapping[str, Any] = raw.get("imgur", {})
    imgur = ImgurSettings(
        client_id=_env_or("IMGUR_CLIENT_ID", imgur_raw.get("client_id")),
        upload_url=str(imgur_raw.get("upload_url", "https://api.imgur.com/3/image")),
    )

    comics_raw: Mapping[str, Any] = raw.get("comics", {})
    comic_keywords = tuple(str(k).strip().lower() for k in comics_raw.get("trigger_keywords", ["comic", "tegneserie"]))
    comics = ComicsSettings(
        latest_url=str(comics_raw.get("latest_url", "https://xkcd.com/info.0.json")),
        comic_url_template=str(comics_raw.get("comic_url_template", "https://xkcd.com/{num}/info.0.json")),
        trigger_keywords=tuple(k for k in comic_keywords if k),
    )
    if "{num}" not in comics.comic_url_template:
        raise ValueError(f"comics.comic_url_template must contain {{num}}: {comics.comic_url_template}")
    if not comics.trigger_keywords:
        raise ValueError("Config missing required field: comics.trigger_keywords")

    http_raw: Mapping[str, Any] = raw.get("http", {})
    http = HttpSettings(
        timeout_s=float(http_raw.get("timeout_s", 10.0)),
        max_retries=int(http_raw.get("max_retries", 2)),
        backoff_factor=float(http_raw.get("backoff_factor", 0.5)),
        user_agent=str(http_raw.get("user_agent", "citybikebot/0.1.0")),
    )
    if http.timeout_s <= 0:
        raise ValueError(f"http.timeout_s must be positive: {http.timeout_s}")

    cache_raw: Mapping[str, Any] = raw.get("cache", {})
    cache = CacheSettings(
        ttl_seconds=int(cache_raw.get("ttl_seconds", 3600)),
        max_entries=int(cache_raw.get("max_entries", 1024)),
    )

    bot_raw: Mapping[str, Any] = raw.get("bot", {})
    bot = BotSettings(
        max_workers=int(bot_raw.get("max_workers", 4)),
        max_restarts=int(bot_raw.get("max_restarts", 0)),
    )
    if bot.max_workers < 1:
        raise ValueError(f"bot.max_workers must be >= 1: {bot.max_workers}")

    logging_raw: Mapping[str, Any] = raw.get("logging", {})
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    logging_settings = LoggingSettings(
        level=_env_or("CITYBIKEBOT_LOG_LEVEL", logging_raw.get("level", "INFO")),
        format=str(logging_raw.get("format", "%(asctime)s %(levelname)s %(name)s - %(message)s")),
        file=log_file,
    )

    return AppConfig(
        app=app,
        slack=slack,
        bikeshare=bikeshare,
        google_maps=google_maps,
        imgur=imgur,
        comics=comics,
        http=http,
        cache=cache,
        bot=bot,
        logging=logging_settings,
    )
