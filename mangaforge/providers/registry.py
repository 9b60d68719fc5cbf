"""
Resolve provider tags into configured adapters.
"""

from __future__ import annotations

from typing import Callable

from mangaforge.common import ProviderKind
from mangaforge.settings import DEFAULT_PLANNER_MODELS, MangaSettings

from .base import ImageProvider, TextProvider
from .gemini import GeminiProvider
from .replicate_service import ReplicateImageProvider
from .vertex import VertexImagenProvider


def _text_model_for(kind: ProviderKind, settings: MangaSettings) -> str:
    if settings.planner_provider is kind:
        return settings.resolved_planner_model
    return DEFAULT_PLANNER_MODELS[kind]


def _build_gemini(settings: MangaSettings) -> GeminiProvider:
    return GeminiProvider(
        api_key=settings.gemini_api_key,
        image_model=settings.gemini_image_model,
        text_model=_text_model_for(ProviderKind.GEMINI, settings),
        timeout=settings.request_timeout,
    )


def _build_vertex(settings: MangaSettings) -> VertexImagenProvider:
    return VertexImagenProvider(
        project=settings.vertex_project,
        location=settings.vertex_location,
        image_model=settings.vertex_image_model,
        text_model=_text_model_for(ProviderKind.VERTEX, settings),
        color_mode=settings.vertex_color_mode,
        timeout=settings.request_timeout,
    )


def _build_replicate(settings: MangaSettings) -> ReplicateImageProvider:
    return ReplicateImageProvider(
        api_token=settings.replicate_api_token,
        model_identifier=settings.replicate_model,
        timeout=settings.request_timeout,
    )


_IMAGE_PROVIDER_FACTORIES: dict[ProviderKind, Callable[[MangaSettings], ImageProvider]] = {
    ProviderKind.GEMINI: _build_gemini,
    ProviderKind.VERTEX: _build_vertex,
    ProviderKind.REPLICATE: _build_replicate,
}

_TEXT_PROVIDER_FACTORIES: dict[ProviderKind, Callable[[MangaSettings], TextProvider]] = {
    ProviderKind.GEMINI: _build_gemini,
    ProviderKind.VERTEX: _build_vertex,
}


def build_image_provider(kind: ProviderKind | str, settings: MangaSettings) -> ImageProvider:
    """
    Build the image adapter for ``kind``, raising ``ConfigurationError`` when
    credentials are missing.
    """
    kind = ProviderKind(kind)
    settings.require(kind)
    return _IMAGE_PROVIDER_FACTORIES[kind](settings)


def build_text_provider(settings: MangaSettings) -> TextProvider:
    """
    Build the text adapter used for prompt planning.
    """
    settings.require(settings.planner_provider)
    return _TEXT_PROVIDER_FACTORIES[settings.planner_provider](settings)
