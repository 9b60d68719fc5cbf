"""
Google AI Studio Gemini adapter: native multimodal image generation.
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

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_TEXT_MODEL = "gemini/gemini-3-flash-preview"

# Roughly 2K renders for the two print-oriented ratios.
_TARGET_DIMENSIONS = {
    "2:3": "1696x2528",
    "3:2": "2528x1696",
}


def build_gemini_prompt(prompt: str, aspect_ratio: str) -> str:
    """Append Gemini-specific resolution hints to the page prompt."""
    lines = [prompt.rstrip()]
    dimensions = _TARGET_DIMENSIONS.get(aspect_ratio)
    if dimensions:
        lines.append(f"Target Dimensions: {dimensions} pixels")
    lines.append("Output Resolution: 2K")
    lines.append("Image Quality: HD, High Definition")
    return "\n".join(lines)


def extract_inline_image(response: Any) -> ImagePayload:
    """
    Return the first inline image part of a ``generate_content`` response.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise ProviderFailure("Gemini response contained no candidates.")

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is None or not inline.data:
            continue
        mime_type = inline.mime_type or ""
        if mime_type.startswith("image/"):
            return ImagePayload(data=inline.data, mime_type=mime_type)

    finish_reason = getattr(candidates[0], "finish_reason", None)
    raise ProviderFailure(
        "No image data found in Gemini response"
        + (f" (finish reason: {finish_reason})." if finish_reason else ".")
    )


class GeminiProvider(ImageProvider, LiteLLMTextProvider):
    """
    Image and text generation through a Google AI Studio API key.

    Parameters
    ----------
    api_key:
        Google AI Studio key.
    image_model:
        Gemini model able to return inline images.
    text_model:
        LiteLLM model string used for prompt planning and reference descriptions.
    timeout:
        Request timeout in seconds for both image and text calls.
    client:
        Optional pre-configured :class:`google.genai.Client`. Mainly useful for testing.
    completion_fn:
        Optional replacement for the LiteLLM chat helper.
    """

    kind = ProviderKind.GEMINI

    def __init__(
        self,
        *,
        api_key: str | None = None,
        image_model: str = DEFAULT_IMAGE_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
        timeout: float | None = None,
        client: genai.Client | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ConfigurationError("Gemini API key is required for the Gemini provider.")

        LiteLLMTextProvider.__init__(
            self,
            text_model=text_model,
            api_key=api_key,
            completion_fn=completion_fn,
            timeout=timeout,
        )
        self._image_model = image_model
        if client is None:
            http_options = (
                types.HttpOptions(timeout=int(timeout * 1000)) if timeout is not None else None
            )
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client

    @property
    def image_model(self) -> str:
        return self._image_model

    @property
    def supports_reference_images(self) -> bool:
        return True

    def generate_image(
        self,
        prompt: str,
        images: Sequence[ReferenceImage],
        aspect_ratio: AspectRatio | str,
    ) -> ImagePayload:
        mapped_ratio = self.map_aspect_ratio(aspect_ratio)
        parts = [types.Part.from_text(text=build_gemini_prompt(prompt, mapped_ratio))]
        parts.extend(
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type) for image in images
        )

        logger.debug(
            "Requesting Gemini image (model=%s, ratio=%s, references=%d)",
            self._image_model,
            mapped_ratio,
            len(images),
        )
        try:
            response = self._client.models.generate_content(
                model=self._image_model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(
                    candidate_count=1,
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=mapped_ratio),
                ),
            )
        except genai_errors.APIError as exc:
            raise ProviderFailure(
                f"Gemini image generation failed: {exc.message or exc}",
                status_code=exc.code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(f"Gemini image request did not complete: {exc}") from exc

        return extract_inline_image(response)

    def list_models(self) -> list[dict[str, Any]]:
        """
        Return the models visible to the configured key.
        """
        try:
            models = list(self._client.models.list())
        except genai_errors.APIError as exc:
            raise ProviderFailure(
                f"Failed to fetch models: {exc.message or exc}", status_code=exc.code
            ) from exc

        return [
            {
                "name": model.name,
                "display_name": model.display_name,
                "description": model.description,
                "supported_actions": list(model.supported_actions or []),
            }
            for model in models
        ]
