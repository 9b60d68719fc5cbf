from __future__ import annotations

from unittest.mock import patch

import pytest

from mangaforge.common import ConfigurationError, ProviderKind
from mangaforge.providers import (
    GeminiProvider,
    ReplicateImageProvider,
    VertexImagenProvider,
    build_image_provider,
    build_text_provider,
)
from mangaforge.settings import MangaSettings


@pytest.fixture
def genai_client():
    with patch("google.genai.Client") as client_cls:
        yield client_cls


def test_build_image_provider_per_kind(settings, genai_client):
    assert isinstance(build_image_provider("gemini", settings), GeminiProvider)
    assert isinstance(build_image_provider(ProviderKind.VERTEX, settings), VertexImagenProvider)
    assert isinstance(build_image_provider("replicate", settings), ReplicateImageProvider)


def test_vertex_client_uses_project_and_location(settings, genai_client):
    build_image_provider(ProviderKind.VERTEX, settings)

    kwargs = genai_client.call_args.kwargs
    assert kwargs["vertexai"] is True
    assert kwargs["project"] == "demo-project"
    assert kwargs["location"] == "us-central1"


def test_gemini_text_model_ignores_vertex_planner(settings, genai_client):
    vertex_planning = settings.with_overrides(
        planner_provider=ProviderKind.VERTEX,
        planner_model="vertex_ai/gemini-2.5-pro",
    )

    gemini = build_image_provider(ProviderKind.GEMINI, vertex_planning)
    planner = build_text_provider(vertex_planning)

    assert gemini.text_model == "gemini/gemini-3-flash-preview"
    assert isinstance(planner, VertexImagenProvider)
    assert planner.text_model == "vertex_ai/gemini-2.5-pro"


def test_missing_credentials_raise_configuration_error():
    with pytest.raises(ConfigurationError):
        build_image_provider(ProviderKind.GEMINI, MangaSettings())
    with pytest.raises(ConfigurationError):
        build_text_provider(MangaSettings())
