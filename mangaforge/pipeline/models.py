"""
Request and result types exchanged with the generation orchestrator.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Sequence

import yaml

from mangaforge.common import (
    AspectRatio,
    InputMode,
    ProviderFailure,
    ProviderKind,
    ReferenceImage,
)
from mangaforge.common.types import DEFAULT_ASPECT_RATIO


@dataclass(frozen=True)
class GenerationRequest:
    """
    Everything needed for one generation run. Immutable once submitted.
    """

    story_text: str
    input_mode: InputMode = InputMode.IDEA
    page_count: int = 1
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    reference_images: tuple[ReferenceImage, ...] = ()
    provider: ProviderKind = ProviderKind.GEMINI

    def __post_init__(self) -> None:
        if not self.story_text or not self.story_text.strip():
            raise ValueError("story_text must be a non-empty string.")
        if isinstance(self.page_count, bool) or not isinstance(self.page_count, int):
            raise ValueError(f"page_count must be an integer, got {self.page_count!r}.")
        if self.page_count < 1:
            raise ValueError(f"page_count must be at least 1, received {self.page_count}.")

        object.__setattr__(self, "input_mode", InputMode(self.input_mode))
        object.__setattr__(self, "aspect_ratio", AspectRatio(self.aspect_ratio))
        object.__setattr__(self, "provider", ProviderKind(self.provider))
        object.__setattr__(self, "reference_images", tuple(self.reference_images))

    @classmethod
    def from_mapping(
        cls,
        payload: Mapping[str, Any],
        *,
        reference_images: Sequence[ReferenceImage] = (),
    ) -> "GenerationRequest":
        """
        Build a request from form-style data (string values are accepted).
        """
        if "story_text" not in payload:
            raise ValueError("Generation payload must include 'story_text'.")

        try:
            page_count = int(payload.get("page_count", 1))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid page_count: {payload.get('page_count')!r}") from exc

        return cls(
            story_text=str(payload["story_text"]),
            input_mode=payload.get("input_mode", InputMode.IDEA),
            page_count=page_count,
            aspect_ratio=payload.get("aspect_ratio", DEFAULT_ASPECT_RATIO),
            reference_images=tuple(reference_images),
            provider=payload.get("provider", ProviderKind.GEMINI),
        )


class PageStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class PageImage:
    """Outcome of one page dispatch."""

    index: int
    status: PageStatus
    encoded_image: str = ""
    mime_type: str | None = None
    prompt: str = ""
    error: str | None = None
    status_code: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is PageStatus.SUCCESS

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.encoded_image) if self.encoded_image else b""

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "status": self.status.value,
            "mime_type": self.mime_type,
            "prompt": self.prompt,
            "error": self.error,
            "status_code": self.status_code,
        }


@dataclass
class GenerationResult:
    """
    Append-only collection of the pages produced by one run.
    """

    request: GenerationRequest
    pages: list[PageImage] = field(default_factory=list)
    failure: ProviderFailure | None = None

    def __len__(self) -> int:
        return len(self.pages)

    def __iter__(self) -> Iterator[PageImage]:
        return iter(self.pages)

    def append(self, page: PageImage) -> None:
        if len(self.pages) >= self.request.page_count:
            raise ValueError(
                f"Result already holds {self.request.page_count} page(s); cannot append more."
            )
        self.pages.append(page)

    @property
    def completed_pages(self) -> list[PageImage]:
        return [page for page in self.pages if page.succeeded]

    @property
    def failed_pages(self) -> list[PageImage]:
        return [page for page in self.pages if not page.succeeded]

    @property
    def aborted(self) -> bool:
        return self.failure is not None and len(self.pages) < self.request.page_count

    @property
    def is_complete(self) -> bool:
        return len(self.pages) == self.request.page_count and not self.failed_pages

    def to_dict(self, *, filenames: Mapping[int, str] | None = None) -> dict[str, Any]:
        pages_payload = []
        for page in self.pages:
            entry = page.to_dict()
            if filenames and page.index in filenames:
                entry["file"] = filenames[page.index]
            pages_payload.append(entry)

        return {
            "request": {
                "story_text": self.request.story_text,
                "input_mode": self.request.input_mode.value,
                "page_count": self.request.page_count,
                "aspect_ratio": self.request.aspect_ratio.value,
                "provider": self.request.provider.value,
                "reference_images": len(self.request.reference_images),
            },
            "completed": len(self.completed_pages),
            "aborted": self.aborted,
            "failure": str(self.failure) if self.failure is not None else None,
            "pages": pages_payload,
        }

    def to_yaml(self, *, filenames: Mapping[int, str] | None = None) -> str:
        return yaml.safe_dump(self.to_dict(filenames=filenames), sort_keys=False, allow_unicode=True)
