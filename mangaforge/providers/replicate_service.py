"""
Integration with Replicate-hosted FLUX models for manga page generation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable as IterableABC
from typing import Any, Callable, Iterator, Sequence

import httpx
import replicate
import requests
from replicate.exceptions import ReplicateError

from mangaforge.common import (
    AspectRatio,
    ConfigurationError,
    ImagePayload,
    ProviderFailure,
    ProviderKind,
    ReferenceImage,
)
from mangaforge.common.media import decode_data_uri, guess_mime_type

from .base import ImageProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "black-forest-labs/flux-dev"


def _build_flux_dev_input(
    *,
    prompt: str,
    aspect_ratio: str,
    images: Sequence[ReferenceImage],
) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "num_outputs": 1,
        "output_format": "png",
        "disable_safety_checker": True,
    }


def _build_flux_schnell_input(
    *,
    prompt: str,
    aspect_ratio: str,
    images: Sequence[ReferenceImage],
) -> dict[str, Any]:
    payload = _build_flux_dev_input(prompt=prompt, aspect_ratio=aspect_ratio, images=images)
    payload["num_inference_steps"] = 4
    return payload


def _build_flux_pro_input(
    *,
    prompt: str,
    aspect_ratio: str,
    images: Sequence[ReferenceImage],
) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": True,
    }


def _build_flux_kontext_input(
    *,
    prompt: str,
    aspect_ratio: str,
    images: Sequence[ReferenceImage],
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": True,
        "aspect_ratio": aspect_ratio,
    }
    if images:
        # Kontext takes a single conditioning image; the first reference wins.
        payload["input_image"] = images[0].to_data_uri()
    return payload


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-dev": _build_flux_dev_input,
    "black-forest-labs/flux-schnell": _build_flux_schnell_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_pro_input,
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
    "black-forest-labs/flux-kontext-max": _build_flux_kontext_input,
}

_REFERENCE_CAPABLE_BUILDERS = {_build_flux_kontext_input}


def _resolve_input_builder(model_identifier: str) -> Callable[..., dict[str, Any]]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ConfigurationError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )
    return builder


def iter_image_outputs(raw: Any) -> Iterator[Any]:
    """
    Flatten the output returned by ``replicate.run`` into individual items.

    Items are file objects exposing ``read()``, URL or data URI strings, or raw bytes.
    """
    if raw is None:
        return

    if isinstance(raw, (str, bytes)) or hasattr(raw, "read"):
        yield raw
        return

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if collected and all(isinstance(item, str) and len(item) == 1 for item in collected):
            # Some models stream a single URL one character at a time.
            yield "".join(collected)
            return
        for item in collected:
            yield from iter_image_outputs(item)
        return

    yield str(raw)


class ReplicateImageProvider(ImageProvider):
    """
    Convenience wrapper around the Replicate client for manga page generation.

    Parameters
    ----------
    api_token:
        Replicate API token.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Must
        have a registered input builder.
    timeout:
        Timeout in seconds for the prediction call and the follow-up image download.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    http_session:
        Optional :class:`requests.Session` used to download URL outputs.
    """

    kind = ProviderKind.REPLICATE

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str = DEFAULT_MODEL,
        timeout: float | None = None,
        client: replicate.Client | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        if not api_token and client is None:
            raise ConfigurationError("Replicate API token is required for the replicate provider.")

        self._model_identifier = model_identifier
        self._input_builder = _resolve_input_builder(model_identifier)
        self._timeout = timeout
        self._client = client or replicate.Client(api_token=api_token, timeout=timeout)
        self._http = http_session or requests.Session()

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    @property
    def supports_reference_images(self) -> bool:
        return self._input_builder in _REFERENCE_CAPABLE_BUILDERS

    def generate_image(
        self,
        prompt: str,
        images: Sequence[ReferenceImage],
        aspect_ratio: AspectRatio | str,
    ) -> ImagePayload:
        replicate_input = self._input_builder(
            prompt=prompt,
            aspect_ratio=self.map_aspect_ratio(aspect_ratio),
            images=images,
        )

        try:
            output = self._client.run(self._model_identifier, input=replicate_input)
        except ReplicateError as exc:
            raise ProviderFailure(
                f"Replicate prediction failed: {exc}",
                status_code=getattr(exc, "status", None),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(f"Replicate request did not complete: {exc}") from exc

        for item in iter_image_outputs(output):
            return self._read_output_item(item)

        raise ProviderFailure("No image returned from Replicate.")

    def _read_output_item(self, item: Any) -> ImagePayload:
        if hasattr(item, "read"):
            url = str(getattr(item, "url", "") or "")
            try:
                data = item.read()
            except httpx.HTTPError as exc:
                response = getattr(exc, "response", None)
                raise ProviderFailure(
                    f"Failed to download Replicate output: {exc}",
                    status_code=getattr(response, "status_code", None),
                ) from exc
            mime_type = guess_mime_type(url.split("?", 1)[0]) if url else "image/png"
            return self._payload(data, mime_type)

        if isinstance(item, bytes):
            return self._payload(item, "image/png")

        text = str(item).strip()
        if text.startswith("data:"):
            try:
                return decode_data_uri(text)
            except ValueError as exc:
                raise ProviderFailure(f"Malformed data URI in Replicate output: {exc}") from exc

        if text.lower().startswith(("http://", "https://")):
            return self._download(text)

        raise ProviderFailure(f"Unrecognized Replicate output: {text[:80]!r}.")

    def _download(self, url: str) -> ImagePayload:
        logger.debug("Fetching Replicate output %s", url)
        try:
            response = self._http.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ProviderFailure(f"Failed to download Replicate output: {exc}") from exc

        if not response.ok:
            raise ProviderFailure(
                f"Failed to download Replicate output: {response.reason}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip()
        mime_type = content_type or guess_mime_type(url.split("?", 1)[0])
        return self._payload(response.content, mime_type)

    @staticmethod
    def _payload(data: bytes, mime_type: str) -> ImagePayload:
        if not data:
            raise ProviderFailure("Replicate returned an empty image.")
        if not mime_type.startswith("image/"):
            raise ProviderFailure(f"Replicate returned a non-image payload ({mime_type}).")
        return ImagePayload(data=data, mime_type=mime_type)
