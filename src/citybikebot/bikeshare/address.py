from __future__ import annotations

import html
import re
from typing import Iterable

from citybikebot.errors import AddressNotFound


DEFAULT_TRIGGER_KEYWORDS = ("bike", "sykkel")


def strip_markup(text: str) -> str:
    """
    Remove `<...>` spans (chat links, user mentions) from `text`.

    An unterminated `<` stops the stripping and the rest of the text is kept as-is.
    """

    cleaned = text
    while True:
        start = cleaned.find("<")
        if start == -1:
            return cleaned
        end = cleaned.find(">", start)
        if end == -1:
            return cleaned
        cleaned = cleaned[:start] + cleaned[end + 1 :]


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern[str]:
    # Longest first so a keyword that contains another one is matched whole.
    ordered = sorted({k for k in keywords if k}, key=len, reverse=True)
    if not ordered:
        raise ValueError("At least one trigger keyword is required")
    return re.compile("|".join(re.escape(k) for k in ordered), re.IGNORECASE)


def extract_address(
    raw_text: str,
    display_text: str,
    *,
    keywords: Iterable[str] = DEFAULT_TRIGGER_KEYWORDS,
) -> str:
    """
    Find the address a user asked about, e.g. "bike Munkegata 1" -> "Munkegata 1".

    The phrase is located in the markup-free display text, then cut out of `raw_text` at the
    same offsets so characters the chat client normalized come back exactly as typed. Raw text
    that still carries HTML entities cannot be sliced that way, so the decoded phrase is used.
    When the phrase occurs more than once, the first occurrence wins.
    """

    pattern = _keyword_pattern(keywords)
    cleaned = strip_markup(display_text)

    trigger = pattern.search(cleaned)
    if trigger is None:
        raise AddressNotFound("No bike keyword found in message")

    candidate = pattern.sub("", cleaned[trigger.start() :]).strip()
    if not candidate:
        raise AddressNotFound("Message contains no address after the bike keyword")

    start = display_text.find(candidate)
    end = start + len(candidate)
    # Entities such as `&amp;` make raw offsets drift from display offsets; the candidate is already decoded.
    if start == -1 or end > len(raw_text) or html.unescape(raw_text) != raw_text:
        return candidate
    address = raw_text[start:end].strip()
    return address or candidate
