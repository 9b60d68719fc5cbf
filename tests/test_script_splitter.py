from __future__ import annotations

import pytest

from mangaforge.planning import split_script

SCRIPT = (
    "Kaito wakes up late and sprints to the station.\n\n"
    "He misses the train by a second.\n\n"
    "A stray cat leads him down an alley.\n\n"
    "The alley opens onto a hidden shrine."
)


@pytest.mark.parametrize("page_count", [1, 2, 3, 4])
def test_split_returns_exact_page_count(page_count):
    segments = split_script(SCRIPT, page_count)

    assert len(segments) == page_count
    assert all(segment.strip() for segment in segments)


def test_split_preserves_order_and_text():
    segments = split_script(SCRIPT, 3)

    joined = " ".join(" ".join(segments).split())
    assert joined == " ".join(SCRIPT.split())


def test_split_is_deterministic():
    assert split_script(SCRIPT, 3) == split_script(SCRIPT, 3)


def test_split_prefers_paragraph_boundaries():
    segments = split_script(SCRIPT, 4)

    assert segments[0] == "Kaito wakes up late and sprints to the station."
    assert segments[3] == "The alley opens onto a hidden shrine."


def test_split_falls_back_to_sentences():
    text = "One. Two is here. Three arrives! Four ends?"

    segments = split_script(text, 4)

    assert segments == ["One.", "Two is here.", "Three arrives!", "Four ends?"]


def test_split_falls_back_to_words():
    assert split_script("alpha beta gamma", 3) == ["alpha", "beta", "gamma"]


def test_split_rejects_scripts_shorter_than_page_count():
    with pytest.raises(ValueError):
        split_script("too short", 3)


@pytest.mark.parametrize("text,count", [("", 1), ("   ", 2), ("story", 0)])
def test_split_rejects_invalid_input(text, count):
    with pytest.raises(ValueError):
        split_script(text, count)
