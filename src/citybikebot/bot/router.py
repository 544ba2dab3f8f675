from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Iterable, Optional, Protocol, Sequence

from citybikebot.schemas.core import ChatMessage


logger = logging.getLogger(__name__)


class Predicate(Protocol):
    """Decides whether a message belongs to an action. `command_text` is shown in the command listing."""

    command_text: Optional[str]

    def matches(self, message: ChatMessage) -> bool: ...


class Action(Protocol):
    def execute(self, message: ChatMessage) -> Any: ...


@dataclass(frozen=True)
class KeywordPredicate:
    keywords: tuple[str, ...]
    command_text: Optional[str] = None

    def matches(self, message: ChatMessage) -> bool:
        text = message.text.lower()
        return any(k.lower() in text for k in self.keywords)


@dataclass(frozen=True)
class ExactPredicate:
    """Whole-message match, ignoring case and surrounding whitespace and mentions."""

    phrases: tuple[str, ...]
    command_text: Optional[str] = None

    def matches(self, message: ChatMessage) -> bool:
        text = re.sub(r"<@[^>]+>", "", message.text).strip().lower()
        return text in {p.lower() for p in self.phrases}


@dataclass(frozen=True)
class DirectMentionPredicate:
    """Direct messages, or channel messages that mention the bot user."""

    bot_user_id: Optional[str] = None
    command_text: Optional[str] = None

    def matches(self, message: ChatMessage) -> bool:
        if message.is_direct:
            return True
        return bool(self.bot_user_id) and f"<@{self.bot_user_id}>" in message.text


@dataclass(frozen=True)
class AllOf:
    predicates: tuple[Predicate, ...]
    command_text: Optional[str] = None

    def matches(self, message: ChatMessage) -> bool:
        return all(p.matches(message) for p in self.predicates)


@dataclass(frozen=True)
class Route:
    predicate: Predicate
    action: Action


class CommandRouter:
    """
    Ordered predicate/action table.

    Only the first matching route runs; a message nothing matches is ignored.
    """

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: list[Route] = list(routes)

    def register(self, predicate: Predicate, action: Action) -> "CommandRouter":
        self._routes.append(Route(predicate=predicate, action=action))
        return self

    @property
    def predicates(self) -> Sequence[Predicate]:
        return [r.predicate for r in self._routes]

    def dispatch(self, message: ChatMessage) -> Optional[Action]:
        for route in self._routes:
            if route.predicate.matches(message):
                logger.info("Dispatching message in %s to %s", message.channel, type(route.action).__name__)
                route.action.execute(message)
                return route.action
        return None

    def command_listing(self) -> str:
        commands = "".join(
            f"- {p.command_text}\n" for p in self.predicates if getattr(p, "command_text", None)
        )
        return "*Available commands*\n" + commands


class ListCommandsAction:
    """Sends the available commands to the requesting user as a direct message."""

    def __init__(self, *, chat, router: CommandRouter) -> None:
        self._chat = chat
        self._router = router

    def execute(self, message: ChatMessage) -> None:
        self._chat.send_direct_message(message.user, self._router.command_listing())
