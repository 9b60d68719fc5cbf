"""
Vertex AI adapter: Imagen image generation inside a Google Cloud project.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from mangaforge.common import (
    AspectRatio,
    CompletionCallable,
    ConfigurationError,
    ImagePayload,
    ProviderFailure,
    ProviderKind,
    ReferenceImage,
)

from .base import ImageProvider
from .llm_text import LiteLLMTextProvider

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "imagen-3.0-generate-002"
DEFAULT_TEXT_MODEL = "vertex_ai/gemini-2.5-flash"

COLOR_MODES = ("monochrome", "color")


def build_imagen_prompt(prompt: str, color_mode: str) -> str:
    """Wrap the page prompt with Imagen colour-mode and quality directives."""
    if color_mode == "monochrome":
        text = (
            "[STRICT: BLACK AND WHITE ONLY. NO COLORS.] "
            + prompt.rstrip()
            + "\nStyle: Black and White Manga, greyscale, monochrome, no color, "
            "high contrast ink drawing, screen tones."
        )
    elif color_mode == "color":
        text = prompt.rstrip() + "\nStyle: Full Color Manga, vibrant, anime style."
    else:
        raise ValueError(f"Unsupported color mode: {color_mode!r}.")
    return text + "\nQuality: Masterpiece, High Definition, 2K resolution."


def extract_generated_image(response: Any) -> ImagePayload:
    generated = getattr(response, "generated_images", None) or []
    if not generated:
        raise ProviderFailure("Vertex AI returned no predictions.")

    first = generated[0]
    image = getattr(first, "image", None)
    if image is None or not image.image_bytes:
        reason = getattr(first, "rai_filtered_reason", None)
        raise ProviderFailure(
            "No image bytes in Vertex AI response" + (f": {reason}" if reason else ".")
        )
    return ImagePayload(data=image.image_bytes, mime_type=image.mime_type or "image/png")


class VertexImagenProvider(ImageProvider, LiteLLMTextProvider):
    """
    Imagen on Vertex AI. Text-only: reference images never reach the image model,
    so the planner must describe them in words.

    Parameters
    ----------
    project / location:
        Google Cloud project and region. Credentials come from Application Default
        Credentials.
    image_model:
        Imagen publisher model name.
    color_mode:
        ``monochrome`` (default) or ``color``.
    client:
        Optional pre-configured :class:`google.genai.Client`. Mainly useful for testing.
    """

    kind = ProviderKind.VERTEX
    supported_aspect_ratios = ("1:1", "3:4", "4:3", "9:16", "16:9")

    def __init__(
        self,
        *,
        project: str | None = None,
        location: str | None = None,
        image_model: str = DEFAULT_IMAGE_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
        color_mode: str = "monochrome",
        timeout: float | None = None,
        client: genai.Client | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        if client is None and not (project and location):
            raise ConfigurationError(
                "Project ID and location are required for the Vertex AI provider."
            )
        if color_mode not in COLOR_MODES:
            raise ConfigurationError(f"color_mode must be one of {COLOR_MODES}, got {color_mode!r}.")

        LiteLLMTextProvider.__init__(
            self,
            text_model=text_model,
            completion_fn=completion_fn,
            timeout=timeout,
            completion_kwargs={"vertex_project": project, "vertex_location": location},
        )
        self._image_model = image_model
        self._color_mode = color_mode
        if client is None:
            http_options = (
                types.HttpOptions(timeout=int(timeout * 1000)) if timeout is not None else None
            )
            client = genai.Client(
                vertexai=True,
                project=project,
                location=location,
                http_options=http_options,
            )
        self._client = client

    @property
    def image_model(self) -> str:
        return self._image_model

    @property
    def color_mode(self) -> str:
        return self._color_mode

    def generate_image(
        self,
        prompt: str,
        images: Sequence[ReferenceImage],
        aspect_ratio: AspectRatio | str,
    ) -> ImagePayload:
        mapped_ratio = self.map_aspect_ratio(aspect_ratio)
        logger.info(
            "[Vertex] Mapping aspect ratio: %s -> %s", AspectRatio(aspect_ratio).value, mapped_ratio
        )
        if images:
            logger.debug("Imagen does not accept reference images; %d ignored.", len(images))

        try:
            response = self._client.models.generate_images(
                model=self._image_model,
                prompt=build_imagen_prompt(prompt, self._color_mode),
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    aspect_ratio=mapped_ratio,
                    add_watermark=False,
                ),
            )
        except genai_errors.APIError as exc:
            raise ProviderFailure(
                f"Vertex AI image generation failed: {exc.message or exc}",
                status_code=exc.code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(f"Vertex AI image request did not complete: {exc}") from exc

        return extract_generated_image(response)
