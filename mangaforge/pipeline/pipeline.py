"""
Orchestrates manga generation from story text to rendered pages.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping

from mangaforge.common import (
    ConfigurationError,
    PageFailurePolicy,
    PlanningFailure,
    ProviderFailure,
    ProviderKind,
)
from mangaforge.planning import PromptPlanner, ReferenceDescriber
from mangaforge.providers import ImageProvider, build_image_provider, build_text_provider
from mangaforge.settings import MangaSettings

from .models import GenerationRequest, GenerationResult, PageImage, PageStatus
from .prompting import build_page_prompt

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None]


class MangaOrchestrator:
    """
    High-level coordinator that chains prompt planning and per-page image generation.

    Parameters
    ----------
    settings:
        Credentials and model choices. Used to build the planner and any image
        provider that was not injected.
    planner:
        Optional pre-built :class:`PromptPlanner`. Mainly useful for testing.
    image_providers:
        Optional mapping of provider tags to pre-built adapters.
    failure_policy:
        What to do after a page fails. Defaults to the settings value, or ``ABORT``.
    """

    def __init__(
        self,
        settings: MangaSettings | None = None,
        *,
        planner: PromptPlanner | None = None,
        image_providers: Mapping[ProviderKind, ImageProvider] | None = None,
        failure_policy: PageFailurePolicy | str | None = None,
    ) -> None:
        if planner is None:
            if settings is None:
                raise ConfigurationError("Either settings or a planner must be provided.")
            planner = _build_planner(settings)

        self._settings = settings
        self._planner = planner
        self._image_providers = {
            ProviderKind(kind): provider for kind, provider in (image_providers or {}).items()
        }
        if failure_policy is None:
            failure_policy = settings.failure_policy if settings else PageFailurePolicy.ABORT
        self._failure_policy = PageFailurePolicy(failure_policy)

    @property
    def failure_policy(self) -> PageFailurePolicy:
        return self._failure_policy

    def submit(
        self,
        request: GenerationRequest,
        progress_callback: ProgressCallback | None = None,
    ) -> Iterator[PageImage]:
        """
        Start a run and return a lazy iterator of pages, emitted as each completes.

        The image provider is resolved immediately, so a ``ConfigurationError``
        surfaces here before any network call. Planning happens on the first
        ``next()``. Closing the iterator stops the run before the next dispatch.
        """
        image_provider = self._resolve_image_provider(request.provider)
        return self._run(request, image_provider, progress_callback)

    def run(
        self,
        request: GenerationRequest,
        progress_callback: ProgressCallback | None = None,
    ) -> Iterator[PageImage]:
        """Alias of :meth:`submit`."""
        return self.submit(request, progress_callback)

    def generate(
        self,
        request: GenerationRequest,
        progress_callback: ProgressCallback | None = None,
    ) -> GenerationResult:
        """
        Run to completion and collect the pages, keeping pages produced before a failure.
        """
        result = GenerationResult(request=request)
        for page in self.submit(request, progress_callback):
            result.append(page)
            if not page.succeeded and result.failure is None:
                result.failure = ProviderFailure(
                    page.error or f"Page {page.index} failed.",
                    status_code=page.status_code,
                    page_index=page.index,
                )
        return result

    def _resolve_image_provider(self, kind: ProviderKind) -> ImageProvider:
        provider = self._image_providers.get(kind)
        if provider is not None:
            return provider
        if self._settings is None:
            raise ConfigurationError(f"No image provider configured for '{kind.value}'.")
        return build_image_provider(kind, self._settings)

    def _run(
        self,
        request: GenerationRequest,
        image_provider: ImageProvider,
        progress_callback: ProgressCallback | None,
    ) -> Iterator[PageImage]:
        total_pages = request.page_count
        has_references = bool(request.reference_images)
        describe_references = has_references and not image_provider.supports_reference_images

        self._notify(
            progress_callback,
            "planning:started",
            message="Planning pages...",
            total_pages=total_pages,
            input_mode=request.input_mode.value,
            describe_references=describe_references,
        )
        try:
            prompts = list(
                self._planner.plan(
                    request.story_text,
                    total_pages,
                    request.input_mode,
                    request.reference_images,
                    describe_references=describe_references,
                )
            )
            if len(prompts) != total_pages:
                raise PlanningFailure(
                    f"Expected exactly {total_pages} page prompts, received {len(prompts)}."
                )
        except PlanningFailure as exc:
            logger.error("Planning failed: %s", exc)
            self._notify(progress_callback, "run:aborted", message=str(exc), completed_pages=0)
            raise

        self._notify(
            progress_callback,
            "planning:ready",
            message=f"Planned {total_pages} page(s).",
            total_pages=total_pages,
        )

        completed_pages = 0
        try:
            for index, planned_prompt in enumerate(prompts, start=1):
                self._notify(
                    progress_callback,
                    "page:rendering",
                    message=f"Rendering page {index}/{total_pages}...",
                    page_index=index,
                    total_pages=total_pages,
                )
                page_prompt = planned_prompt
                failure: ProviderFailure | None = None
                try:
                    page_prompt = build_page_prompt(
                        planned_prompt,
                        request.aspect_ratio,
                        has_references=has_references,
                    )
                    payload = image_provider.generate_image(
                        page_prompt,
                        request.reference_images,
                        request.aspect_ratio,
                    )
                except ProviderFailure as exc:
                    failure = exc
                except Exception as exc:
                    logger.exception("Page %d/%d raised an unexpected error.", index, total_pages)
                    failure = ProviderFailure(str(exc) or type(exc).__name__)
                    failure.__cause__ = exc

                if failure is not None:
                    failure.page_index = index
                    logger.warning("Page %d/%d failed: %s", index, total_pages, failure)
                    self._notify(
                        progress_callback,
                        "page:failed",
                        message=f"Page {index}/{total_pages} failed: {failure}",
                        page_index=index,
                        total_pages=total_pages,
                        status_code=failure.status_code,
                    )
                    yield PageImage(
                        index=index,
                        status=PageStatus.FAILED,
                        prompt=page_prompt,
                        error=failure.message,
                        status_code=failure.status_code,
                    )
                    if self._failure_policy is PageFailurePolicy.ABORT:
                        self._notify(
                            progress_callback,
                            "run:aborted",
                            message=f"Stopped after page {index}/{total_pages}: {failure}",
                            completed_pages=completed_pages,
                            total_pages=total_pages,
                        )
                        return
                    continue

                completed_pages += 1
                page = PageImage(
                    index=index,
                    status=PageStatus.SUCCESS,
                    encoded_image=payload.to_base64(),
                    mime_type=payload.mime_type,
                    prompt=page_prompt,
                )
                logger.info("Rendered page %d/%d (%s)", index, total_pages, payload.mime_type)
                self._notify(
                    progress_callback,
                    "page:done",
                    message=f"Rendered page {index}/{total_pages}.",
                    page_index=index,
                    total_pages=total_pages,
                )
                yield page
        except GeneratorExit:
            logger.info("Run cancelled after %d/%d page(s).", completed_pages, total_pages)
            self._notify(
                progress_callback,
                "run:cancelled",
                message="Generation cancelled.",
                completed_pages=completed_pages,
                total_pages=total_pages,
            )
            raise

        self._notify(
            progress_callback,
            "run:complete",
            message=f"Finished {completed_pages}/{total_pages} page(s).",
            completed_pages=completed_pages,
            total_pages=total_pages,
        )

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)


def _build_planner(settings: MangaSettings) -> PromptPlanner:
    text_provider = build_text_provider(settings)
    describer_models = (
        settings.describer_models if settings.planner_provider is ProviderKind.GEMINI else ()
    )
    return PromptPlanner(
        text_provider,
        describer=ReferenceDescriber(text_provider, models=describer_models),
    )
