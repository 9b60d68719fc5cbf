"""
Translate reference images into dense visual-trait descriptions for text-only image models.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from mangaforge.common import ProviderFailure, ReferenceImage
from mangaforge.providers.base import TextProvider
from mangaforge.settings import DEFAULT_DESCRIBER_MODELS

logger = logging.getLogger(__name__)

DESCRIBE_PROMPT = (
    "Analyze this character image and provide a highly detailed visual description suitable "
    "for an image generation AI.\n"
    "Focus strictly on visual traits:\n"
    "- Hair (style, color)\n"
    "- Eyes (shape, color)\n"
    "- Clothing (specific items, colors, style)\n"
    "- Accessories\n"
    "- Art style (e.g. thick lines, sketch, anime)\n\n"
    "Output format: A dense string of descriptive keywords and phrases.\n"
    'Example: "young man, spiky silver hair, sharp red eyes, wearing a black trench coat with '
    'high collar, futuristic cyberpunk aesthetic, cel shaded"'
)

_WHITESPACE = re.compile(r"\s+")


class ReferenceDescriber:
    """
    Describe reference images with a vision-capable text provider.

    Parameters
    ----------
    text_provider:
        Provider used for the vision call.
    models:
        Model identifiers tried in order until one succeeds. An empty sequence uses
        the provider's default model only.
    """

    def __init__(
        self,
        text_provider: TextProvider,
        *,
        models: Sequence[str] = DEFAULT_DESCRIBER_MODELS,
        temperature: float = 0.2,
        max_tokens: int = 450,
    ) -> None:
        self._text_provider = text_provider
        self._models: tuple[str | None, ...] = tuple(models) or (None,)
        self._temperature = temperature
        self._max_tokens = max_tokens

    def describe(self, image: ReferenceImage) -> str:
        """
        Return a one-line description of ``image``.

        Raises the last :class:`ProviderFailure` when every candidate model fails.
        """
        last_error: ProviderFailure | None = None
        for model in self._models:
            try:
                text = self._text_provider.generate_text(
                    DESCRIBE_PROMPT,
                    [image],
                    model=model,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                )
            except ProviderFailure as exc:
                logger.warning("Analysis model %s failed. Trying next...", model or "default")
                last_error = exc
                continue

            description = _WHITESPACE.sub(" ", text).strip().strip('"')
            if description:
                return description
            last_error = ProviderFailure(f"Analysis model {model or 'default'} returned no text.")

        raise last_error or ProviderFailure("All analysis models failed.")

    def describe_all(self, images: Sequence[ReferenceImage]) -> list[str]:
        return [self.describe(image) for image in images]
