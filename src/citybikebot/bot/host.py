from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import html
import logging
import threading
from typing import Any, Callable, Iterable, Mapping, Optional

from citybikebot.bot.router import CommandRouter
from citybikebot.schemas.core import ChatMessage


logger = logging.getLogger(__name__)

FatalHandler = Callable[[BaseException], None]


def message_from_event(event: Mapping[str, Any], *, bot_user_id: Optional[str] = None) -> Optional[ChatMessage]:
    """
    Convert a Slack `message` event into a `ChatMessage`.

    Edits, joins, bot posts (including our own) and empty messages return None.
    """

    if event.get("type") != "message" or event.get("subtype") or event.get("bot_id"):
        return None
    text = event.get("text")
    channel = event.get("channel")
    user = event.get("user")
    if not text or not channel or not user or user == bot_user_id:
        return None
    # Slack escapes `&`, `<` and `>` in message text; actions match on the decoded form.
    return ChatMessage(
        text=html.unescape(str(text)),
        raw_text=str(text),
        channel=str(channel),
        user=str(user),
        is_direct=event.get("channel_type") == "im",
    )


class BotHost:
    """One running bot instance: turns incoming events into routed actions on a worker pool."""

    def __init__(
        self,
        router: CommandRouter,
        *,
        max_workers: int = 4,
        bot_user_id: Optional[str] = None,
        on_fatal: Optional[FatalHandler] = None,
        resources: Iterable[Any] = (),
    ) -> None:
        self._router = router
        self._bot_user_id = bot_user_id
        self._on_fatal = on_fatal
        self._resources = list(resources)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="citybikebot")

    @property
    def router(self) -> CommandRouter:
        return self._router

    def handle_event(self, event: Mapping[str, Any]) -> Optional[Future]:
        message = message_from_event(event, bot_user_id=self._bot_user_id)
        if message is None:
            return None
        try:
            return self._executor.submit(self._process, message)
        except RuntimeError as exc:
            # The pool is gone: this instance can no longer serve messages.
            self._fatal(exc)
            return None

    def _process(self, message: ChatMessage) -> None:
        try:
            self._router.dispatch(message)
        except Exception:
            logger.exception("Action failed for message in %s", message.channel)

    def _fatal(self, exc: BaseException) -> None:
        if self._on_fatal is None:
            raise exc
        self._on_fatal(exc)

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)
        for resource in self._resources:
            resource.close()


class BotSupervisor:
    """
    Keeps a bot instance running.

    A fatal error reported through `report_fatal` tears the current instance down and
    builds a fresh one from `host_factory`; nothing but what the factory closes over
    (the shared cache) survives a restart.
    """

    def __init__(self, host_factory: Callable[[FatalHandler], BotHost], *, max_restarts: int = 0) -> None:
        self._factory = host_factory
        self._max_restarts = max_restarts
        self._restart = threading.Event()
        self._stopping = threading.Event()
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._host: Optional[BotHost] = None
        self.restarts = 0

    def current_host(self, timeout: Optional[float] = None) -> Optional[BotHost]:
        self._ready.wait(timeout)
        with self._lock:
            return self._host

    def report_fatal(self, exc: BaseException) -> None:
        logger.error("citybikebot crashed: %s", exc, exc_info=exc)
        self._restart.set()

    def stop(self) -> None:
        self._stopping.set()
        self._restart.set()

    def run(self) -> None:
        while not self._stopping.is_set():
            logger.info("Starting citybikebot...")
            host = self._factory(self.report_fatal)
            with self._lock:
                self._host = host
            self._ready.set()
            logger.info("citybikebot started.")

            self._restart.wait()
            self._restart.clear()

            logger.info("Stopping citybikebot...")
            self._ready.clear()
            with self._lock:
                self._host = None
            host.close()

            if self._stopping.is_set():
                break
            self.restarts += 1
            if self._max_restarts and self.restarts > self._max_restarts:
                logger.error("Giving up after %s restarts", self._max_restarts)
                break
        logger.info("citybikebot stopped.")
