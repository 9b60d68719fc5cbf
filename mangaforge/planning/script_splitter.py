"""
Deterministic splitting of a script into contiguous page segments.
"""

from __future__ import annotations

import re
from typing import Sequence

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+|(?<=[。！？])\s*")


def _paragraphs(text: str) -> list[str]:
    return [chunk.strip() for chunk in _PARAGRAPH_BREAK.split(text) if chunk.strip()]


def _sentences(text: str) -> list[str]:
    flattened = " ".join(line.strip() for line in text.splitlines() if line.strip())
    return [chunk.strip() for chunk in _SENTENCE_BREAK.split(flattened) if chunk and chunk.strip()]


def _partition(units: Sequence[str], count: int) -> list[list[str]]:
    """
    Group ``units`` into ``count`` contiguous, non-empty runs of similar length.

    A unit joins the current group while its midpoint stays within the group's
    share of the total length.
    """
    total = sum(len(unit) for unit in units)
    groups: list[list[str]] = []
    start = 0
    consumed = 0.0
    for index in range(count):
        remaining_groups = count - index - 1
        if remaining_groups == 0:
            groups.append(list(units[start:]))
            break

        target = total * (index + 1) / count
        end = start + 1
        consumed += len(units[start])
        max_end = len(units) - remaining_groups
        while end < max_end and consumed + len(units[end]) / 2 <= target:
            consumed += len(units[end])
            end += 1
        groups.append(list(units[start:end]))
        start = end
    return groups


def split_script(script: str, page_count: int) -> list[str]:
    """
    Split ``script`` into exactly ``page_count`` order-preserving segments.

    Paragraphs are preferred as split points, then sentences, then words. Raises
    ``ValueError`` when the script has fewer words than requested pages.
    """
    if page_count < 1:
        raise ValueError(f"page_count must be at least 1, received {page_count}.")

    text = script.strip()
    if not text:
        raise ValueError("Script text must be a non-empty string.")

    if page_count == 1:
        return [text]

    paragraphs = _paragraphs(text)
    if len(paragraphs) >= page_count:
        return ["\n\n".join(group) for group in _partition(paragraphs, page_count)]

    sentences = _sentences(text)
    if len(sentences) >= page_count:
        return [" ".join(group) for group in _partition(sentences, page_count)]

    words = text.split()
    if len(words) >= page_count:
        return [" ".join(group) for group in _partition(words, page_count)]

    raise ValueError(
        f"Script is too short to split into {page_count} pages ({len(words)} words)."
    )
