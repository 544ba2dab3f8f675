from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
import os

# Uvicorn serves the Slack Events webhook; the bot supervisor starts with the app lifespan.
import uvicorn

from citybikebot.api.app import create_app
from citybikebot.config.loader import load_config


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the city bike Slack bot (Events API webhook).")
    parser.add_argument("--config", default=None, help="Config JSON path.")
    parser.add_argument("--host", default=os.getenv("CITYBIKEBOT_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("CITYBIKEBOT_PORT", "8000")))
    args = parser.parse_args()

    config = load_config(args.config)
    app = create_app(config)

    proxy_headers = os.getenv("CITYBIKEBOT_PROXY_HEADERS", "false").strip().lower() in {"1", "true", "yes", "on"}
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        proxy_headers=proxy_headers,
        forwarded_allow_ips=os.getenv("CITYBIKEBOT_FORWARDED_ALLOW_IPS", "127.0.0.1"),
        timeout_graceful_shutdown=int(os.getenv("CITYBIKEBOT_TIMEOUT_GRACEFUL_SHUTDOWN", "30")),
    )


if __name__ == "__main__":
    main()
