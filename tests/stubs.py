"""
In-memory stand-ins for planners, providers, and the LiteLLM helper.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from mangaforge.common import ChatResult, ImagePayload, ProviderKind
from mangaforge.providers.base import ImageProvider, TextProvider

TEN_BYTES = b"0123456789"


class StubTextProvider(TextProvider):
    """Returns queued replies and records every call."""

    def __init__(self, replies: Sequence[str | Exception] = ()) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def generate_text(
        self,
        prompt,
        images=(),
        *,
        system=None,
        model=None,
        temperature=None,
        max_tokens=None,
    ):
        self.calls.append(
            {
                "prompt": prompt,
                "images": list(images),
                "system": system,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class StubImageProvider(ImageProvider):
    """Echoes a fixed payload, optionally failing on chosen call numbers (1-based)."""

    kind = ProviderKind.GEMINI

    def __init__(
        self,
        payload: bytes = TEN_BYTES,
        *,
        failures: dict[int, Exception] | None = None,
        references: bool = True,
    ) -> None:
        self.payload = payload
        self.failures = failures or {}
        self.references = references
        self.calls: list[dict[str, Any]] = []

    @property
    def supports_reference_images(self) -> bool:
        return self.references

    def generate_image(self, prompt, images, aspect_ratio):
        self.calls.append({"prompt": prompt, "images": list(images), "aspect_ratio": aspect_ratio})
        failure = self.failures.get(len(self.calls))
        if failure is not None:
            raise failure
        return ImagePayload(data=self.payload, mime_type="image/png")


@dataclass
class StubPlanner:
    """Stands in for PromptPlanner with canned prompts."""

    prompts: list[str]
    calls: list[dict[str, Any]] = field(default_factory=list)

    def plan(self, story_text, page_count, mode, reference_images=(), *, describe_references=False):
        self.calls.append(
            {
                "story_text": story_text,
                "page_count": page_count,
                "mode": mode,
                "reference_images": list(reference_images),
                "describe_references": describe_references,
            }
        )
        return list(self.prompts)


@dataclass
class RecordingCompletion:
    """Replacement for complete_chat."""

    text: str = "ok"
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def __call__(self, prompt: str, images: Sequence[Any] = (), **kwargs: Any) -> ChatResult:
        self.calls.append({"prompt": prompt, "images": list(images), **kwargs})
        if self.error is not None:
            raise self.error
        return ChatResult(text=self.text, raw={})


def prompt_reply(count: int, prefix: str = "Panel layout for page") -> str:
    return json.dumps([f"{prefix} {index}" for index in range(1, count + 1)])
