# Use postponed evaluation of annotations so type hints stay as strings at runtime.
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import threading
from typing import Any, Optional

# `FastAPI` receives the Slack Events API callbacks; Slack posts every subscribed event here.
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict

from citybikebot.bot.host import BotSupervisor
from citybikebot.bot.wiring import build_host_factory
from citybikebot.config.models import AppConfig
from citybikebot.utils.logging import configure_logging


logger = logging.getLogger(__name__)

router = APIRouter()


class SlackEnvelope(BaseModel):
    # Slack adds fields over time; unknown ones are kept rather than rejected.
    model_config = ConfigDict(extra="allow")

    type: str
    challenge: Optional[str] = None
    event: Optional[dict[str, Any]] = None


def get_supervisor(request: Request) -> BotSupervisor:
    return request.app.state.supervisor  # type: ignore[attr-defined]


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    supervisor = get_supervisor(request)
    return {
        "status": "ok",
        "running": supervisor.current_host(timeout=0) is not None,
        "restarts": supervisor.restarts,
    }


@router.post("/slack/events")
def slack_events(envelope: SlackEnvelope, request: Request) -> dict[str, Any]:
    if envelope.type == "url_verification":
        return {"challenge": envelope.challenge}

    # Slack re-delivers events it thinks timed out; the first delivery is already being handled.
    if request.headers.get("X-Slack-Retry-Num"):
        return {"ok": True, "ignored": "retry"}

    if envelope.type != "event_callback" or envelope.event is None:
        return {"ok": True, "ignored": envelope.type}

    host = get_supervisor(request).current_host(timeout=5.0)
    if host is None:
        raise HTTPException(status_code=503, detail="Bot is restarting")
    # Work happens on the host's worker pool so Slack gets its 200 well within 3 seconds.
    host.handle_event(envelope.event)
    return {"ok": True}


# App factory: config in, app out, so tests can inject a supervisor with fake collaborators.
def create_app(config: AppConfig, *, supervisor: Optional[BotSupervisor] = None) -> FastAPI:
    configure_logging(config.logging)

    supervisor = supervisor or BotSupervisor(build_host_factory(config), max_restarts=config.bot.max_restarts)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        thread = threading.Thread(target=supervisor.run, name="citybikebot-supervisor", daemon=True)
        thread.start()
        try:
            yield
        finally:
            supervisor.stop()
            thread.join(timeout=30)

    app = FastAPI(title=config.app.name, lifespan=lifespan)
    app.state.supervisor = supervisor
    app.include_router(router)
    return app
