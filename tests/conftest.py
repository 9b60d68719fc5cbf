from __future__ import annotations

import pytest

from mangaforge.common import ReferenceImage
from mangaforge.settings import MangaSettings


@pytest.fixture
def reference_image() -> ReferenceImage:
    return ReferenceImage(data=b"\x89PNG-reference", mime_type="image/png")


@pytest.fixture
def settings() -> MangaSettings:
    return MangaSettings(
        gemini_api_key="gemini-test-key",
        vertex_project="demo-project",
        vertex_location="us-central1",
        replicate_api_token="r8_test",
    )


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
        "GOOGLE_CLOUD_PROJECT",
        "GOOGLE_CLOUD_LOCATION",
        "REPLICATE_API_TOKEN",
        "REPLICATE_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
