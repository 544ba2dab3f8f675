from __future__ import annotations

import pytest

from citybikebot.bikeshare.address import extract_address, strip_markup
from citybikebot.errors import AddressNotFound


def test_address_follows_bike_keyword() -> None:
    text = "bike Munkegata 1"
    assert extract_address(text, text) == "Munkegata 1"


def test_everything_after_the_keyword_is_kept() -> None:
    text = "where can I find a bike near Munkegata 1"
    assert extract_address(text, text) == "near Munkegata 1"


def test_norwegian_keyword_is_case_insensitive() -> None:
    text = "Ledig SYKKEL Olav Tryggvasons gate 5?"
    assert extract_address(text, text) == "Olav Tryggvasons gate 5?"


def test_earliest_keyword_wins_and_both_are_stripped() -> None:
    text = "sykkel Prinsens gate 1 bike"
    assert extract_address(text, text) == "Prinsens gate 1"


def test_mentions_and_links_are_removed() -> None:
    text = "<@U123ABC> bike <https://example.com|here> Kongens gate 4"
    address = extract_address(text, text)
    assert address == "Kongens gate 4"
    assert "<" not in address and ">" not in address


def test_address_is_sliced_from_the_raw_text() -> None:
    # The display text lost the accent; the raw payload still has it at the same offsets.
    display = "bike Bakklandet Skydsstasjon Ovre"
    raw = "bike Bakklandet Skydsstasjon Øvre"
    assert extract_address(raw, display) == "Bakklandet Skydsstasjon Øvre"


def test_first_occurrence_of_the_phrase_is_used() -> None:
    display = "Torvet and bike Torvet"
    raw = "TORVET and bike Torvet"
    # The cleaned phrase "Torvet" is first found at offset 0 of the display text.
    assert extract_address(raw, display) == "TORVET"


def test_missing_keyword_fails() -> None:
    with pytest.raises(AddressNotFound):
        extract_address("hello there", "hello there")


def test_keyword_without_address_fails() -> None:
    with pytest.raises(AddressNotFound):
        extract_address("<@U1> bike  ", "<@U1> bike  ")


def test_unterminated_markup_keeps_the_remainder() -> None:
    text = "<@U1> bike Munkegata <1"
    assert strip_markup(text) == " bike Munkegata <1"
    assert extract_address(text, text) == "Munkegata <1"


@pytest.mark.parametrize(
    "text",
    ["<<<<", "bike <", "<bike", "> bike Elgeseter gate <", "<a><b<c> bike"],
)
def test_malformed_markup_never_hangs(text: str) -> None:
    try:
        address = extract_address(text, text)
    except AddressNotFound:
        return
    assert address


def test_custom_keywords() -> None:
    text = "bysykkel Torvet"
    assert extract_address(text, text, keywords=("bysykkel",)) == "Torvet"


def test_entity_escaped_raw_text_yields_the_decoded_address() -> None:
    raw = "<@U123ABC> bike Fjordgata 1 &amp; 3"
    display = "<@U123ABC> bike Fjordgata 1 & 3"
    assert extract_address(raw, display) == "Fjordgata 1 & 3"
