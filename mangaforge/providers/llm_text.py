"""
Text generation through LiteLLM, shared by the Google-backed adapters.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from mangaforge.common import (
    ChatResult,
    CompletionCallable,
    ProviderFailure,
    ReferenceImage,
    complete_chat,
)

from .base import TextProvider

logger = logging.getLogger(__name__)


class LiteLLMTextProvider(TextProvider):
    """
    :class:`TextProvider` backed by LiteLLM chat completions.

    Parameters
    ----------
    text_model:
        LiteLLM model string, e.g. ``gemini/gemini-3-flash-preview``.
    api_key:
        Optional key forwarded to LiteLLM. Vertex models authenticate through
        Application Default Credentials instead.
    completion_fn:
        Replacement for :func:`complete_chat`. Mainly useful for testing.
    timeout:
        Request timeout in seconds.
    completion_kwargs:
        Extra keyword arguments sent with every call (``vertex_project`` etc.).
    """

    def __init__(
        self,
        *,
        text_model: str,
        api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        timeout: float | None = None,
        completion_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self._text_model = text_model
        self._text_api_key = api_key
        self._completion_fn: CompletionCallable = completion_fn or complete_chat
        self._text_timeout = timeout
        self._completion_kwargs = dict(completion_kwargs or {})

    @property
    def text_model(self) -> str:
        return self._text_model

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
        resolved_model = model or self._text_model
        call_kwargs: dict[str, Any] = dict(self._completion_kwargs)
        if self._text_timeout is not None:
            call_kwargs["timeout"] = self._text_timeout

        try:
            result: ChatResult = self._completion_fn(
                prompt,
                images,
                model=resolved_model,
                system=system,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=self._text_api_key,
                **call_kwargs,
            )
        except ProviderFailure:
            raise
        except Exception as exc:
            logger.exception("Text generation with %s failed.", resolved_model)
            raise ProviderFailure(
                f"Text generation with {resolved_model} failed: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc

        if not result.text:
            raise ProviderFailure(f"Text generation with {resolved_model} returned no content.")
        return result.text
