"""
Capability contracts shared by every generation backend.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import ClassVar, Sequence

from mangaforge.common import AspectRatio, ImagePayload, ProviderKind, ReferenceImage
from mangaforge.common.types import ratio_value


def nearest_supported_ratio(ratio: AspectRatio | str, supported: Sequence[str]) -> str:
    """
    Round ``ratio`` to the closest entry in ``supported``.

    Distance is measured on the log scale so that portrait and landscape ratios
    round symmetrically. Ties resolve to the earlier entry in ``supported``.
    """
    if not supported:
        raise ValueError("At least one supported aspect ratio is required.")

    value = AspectRatio(ratio).value
    if value in supported:
        return value

    target = math.log(ratio_value(value))
    # Rounded so mirrored ratios (2:3 vs 3:2) compare as exact ties.
    return min(
        supported,
        key=lambda candidate: round(abs(math.log(ratio_value(candidate)) - target), 9),
    )


class ImageProvider(ABC):
    """
    Image generation capability every provider adapter implements.

    Adapters receive the orchestrator's final prompt and may add their own
    vendor-specific augmentation. They always return an :class:`ImagePayload` or
    raise :class:`~mangaforge.common.ProviderFailure`.
    """

    kind: ClassVar[ProviderKind]
    supported_aspect_ratios: ClassVar[tuple[str, ...]] = tuple(item.value for item in AspectRatio)

    @property
    def supports_reference_images(self) -> bool:
        """Whether raw reference image bytes reach the underlying model."""
        return False

    def map_aspect_ratio(self, aspect_ratio: AspectRatio | str) -> str:
        return nearest_supported_ratio(aspect_ratio, self.supported_aspect_ratios)

    @abstractmethod
    def generate_image(
        self,
        prompt: str,
        images: Sequence[ReferenceImage],
        aspect_ratio: AspectRatio | str,
    ) -> ImagePayload:
        raise NotImplementedError


class TextProvider(ABC):
    """
    Text (and vision) generation capability used for prompt planning.
    """

    @abstractmethod
    def generate_text(
        self,
        prompt: str,
        images: Sequence[ReferenceImage] = (),
        *,
        system: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        raise NotImplementedError
