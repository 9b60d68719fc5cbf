from __future__ import annotations

import pytest

from mangaforge.common import ConfigurationError, PageFailurePolicy, ProviderKind
from mangaforge.settings import DEFAULT_DESCRIBER_MODELS, MangaSettings


def test_from_env_reads_credentials_and_overrides():
    settings = MangaSettings.from_env(
        {
            "GOOGLE_API_KEY": "google-key",
            "GOOGLE_CLOUD_PROJECT": "demo",
            "GOOGLE_CLOUD_LOCATION": "",
            "REPLICATE_API_TOKEN": "r8",
            "REPLICATE_MODEL": "black-forest-labs/flux-schnell",
            "MANGAFORGE_PLANNER_PROVIDER": "vertex",
            "MANGAFORGE_DESCRIBER_MODELS": "a, b ,",
            "MANGAFORGE_REQUEST_TIMEOUT": "45",
        }
    )

    assert settings.gemini_api_key == "google-key"
    assert settings.vertex_project == "demo"
    assert settings.vertex_location == "us-central1"
    assert settings.replicate_model == "black-forest-labs/flux-schnell"
    assert settings.planner_provider is ProviderKind.VERTEX
    assert settings.resolved_planner_model == "vertex_ai/gemini-2.5-flash"
    assert settings.describer_models == ("a", "b")
    assert settings.request_timeout == 45.0


def test_gemini_api_key_takes_precedence():
    settings = MangaSettings.from_env({"GEMINI_API_KEY": "gemini", "GOOGLE_API_KEY": "google"})

    assert settings.gemini_api_key == "gemini"


def test_defaults():
    settings = MangaSettings()

    assert settings.resolved_planner_model == "gemini/gemini-3-flash-preview"
    assert settings.describer_models == DEFAULT_DESCRIBER_MODELS
    assert settings.failure_policy is PageFailurePolicy.ABORT


def test_from_yaml_collects_unknown_keys(tmp_path):
    config = tmp_path / "settings.yaml"
    config.write_text(
        "gemini_api_key: key\n"
        "failure_policy: continue\n"
        "describer_models: [gemini/gemini-2.5-flash]\n"
        "theme: dark\n",
        encoding="utf-8",
    )

    settings = MangaSettings.from_yaml(config)

    assert settings.gemini_api_key == "key"
    assert settings.failure_policy is PageFailurePolicy.CONTINUE
    assert settings.describer_models == ("gemini/gemini-2.5-flash",)
    assert settings.extra == {"theme": "dark"}


def test_from_yaml_rejects_non_mapping(tmp_path):
    config = tmp_path / "settings.yaml"
    config.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        MangaSettings.from_yaml(config)


@pytest.mark.parametrize(
    "kind,message",
    [
        (ProviderKind.GEMINI, "Gemini API key"),
        (ProviderKind.VERTEX, "Project ID"),
        (ProviderKind.REPLICATE, "Replicate API token"),
    ],
)
def test_require_names_missing_credential(kind, message):
    with pytest.raises(ConfigurationError, match=message):
        MangaSettings().require(kind)


def test_require_passes_with_credentials(settings):
    for kind in ProviderKind:
        settings.require(kind)


@pytest.mark.parametrize(
    "overrides",
    [
        {"planner_provider": ProviderKind.REPLICATE},
        {"vertex_color_mode": "sepia"},
        {"request_timeout": 0},
    ],
)
def test_invalid_values_are_configuration_errors(overrides):
    with pytest.raises(ConfigurationError):
        MangaSettings(**overrides)


def test_invalid_enum_in_mapping_is_configuration_error():
    with pytest.raises(ConfigurationError):
        MangaSettings.from_mapping({"planner_provider": "openai"})


def test_with_overrides_ignores_none(settings):
    updated = settings.with_overrides(gemini_api_key=None, replicate_model="black-forest-labs/flux-1.1-pro")

    assert updated.gemini_api_key == settings.gemini_api_key
    assert updated.replicate_model == "black-forest-labs/flux-1.1-pro"


def test_settings_file_overrides_environment_even_with_default_values(tmp_path):
    config = tmp_path / "settings.yaml"
    config.write_text("planner_provider: gemini\nreplicate_model: null\n", encoding="utf-8")

    settings = MangaSettings.from_sources(
        config,
        environ={
            "GEMINI_API_KEY": "env-key",
            "MANGAFORGE_PLANNER_PROVIDER": "vertex",
            "REPLICATE_MODEL": "black-forest-labs/flux-schnell",
        },
    )

    assert settings.planner_provider is ProviderKind.GEMINI
    assert settings.gemini_api_key == "env-key"
    assert settings.replicate_model == "black-forest-labs/flux-schnell"


def test_from_sources_without_file_matches_environment():
    environ = {"MANGAFORGE_PLANNER_PROVIDER": "vertex", "GOOGLE_CLOUD_PROJECT": "demo"}

    assert MangaSettings.from_sources(environ=environ) == MangaSettings.from_env(environ)
