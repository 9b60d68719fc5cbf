"""
Closed option sets shared by requests, settings, and provider adapters.
"""

from __future__ import annotations

from enum import Enum


class ProviderKind(str, Enum):
    """Image generation backends a request can target."""

    GEMINI = "gemini"
    VERTEX = "vertex"
    REPLICATE = "replicate"


class InputMode(str, Enum):
    """How the story text should be turned into page prompts."""

    IDEA = "idea"
    SCRIPT = "script"


class AspectRatio(str, Enum):
    """Logical page aspect ratios offered to the user."""

    SQUARE = "1:1"
    PORTRAIT_2_3 = "2:3"
    LANDSCAPE_3_2 = "3:2"
    PORTRAIT_3_4 = "3:4"
    LANDSCAPE_4_3 = "4:3"
    PORTRAIT_9_16 = "9:16"
    LANDSCAPE_16_9 = "16:9"

    @property
    def ratio(self) -> float:
        return ratio_value(self.value)


class PageFailurePolicy(str, Enum):
    """What the orchestrator does after a page fails to render."""

    ABORT = "abort"
    CONTINUE = "continue"


DEFAULT_ASPECT_RATIO = AspectRatio.PORTRAIT_2_3


def ratio_value(ratio: str) -> float:
    """Convert a ``W:H`` string into width divided by height."""
    width, _, height = ratio.partition(":")
    try:
        return float(width) / float(height)
    except (ValueError, ZeroDivisionError) as exc:
        raise ValueError(f"Invalid aspect ratio {ratio!r}; expected 'W:H'.") from exc
