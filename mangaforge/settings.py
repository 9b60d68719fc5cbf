"""
Explicit configuration for provider credentials and model selection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from mangaforge.common import ConfigurationError, PageFailurePolicy, ProviderKind

DEFAULT_PLANNER_MODELS = {
    ProviderKind.GEMINI: "gemini/gemini-3-flash-preview",
    ProviderKind.VERTEX: "vertex_ai/gemini-2.5-flash",
}

DEFAULT_DESCRIBER_MODELS = (
    "gemini/gemini-2.5-flash",
    "gemini/gemini-2.0-flash",
    "gemini/gemini-1.5-flash",
    "gemini/gemini-1.5-pro",
)


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    return text or None


def _coerce_models(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [str(item) for item in value]
    return tuple(part.strip() for part in parts if part.strip())


@dataclass(frozen=True)
class MangaSettings:
    """
    Credentials and model identifiers threaded into the orchestrator.

    Attributes
    ----------
    gemini_api_key:
        Google AI Studio key. Required for the ``gemini`` image provider and for
        prompt planning when ``planner_provider`` is ``gemini``.
    vertex_project / vertex_location:
        Google Cloud project and region for the ``vertex`` provider. Authentication
        relies on Application Default Credentials.
    replicate_api_token:
        Token for the ``replicate`` provider.
    planner_provider:
        Backend used for prompt planning, independent of the image provider chosen
        per request.
    planner_model:
        LiteLLM model string used for planning. Defaults depend on the planner provider.
    describer_models:
        Vision models tried in order when reference images must be translated into text.
    request_timeout:
        Network timeout applied by every adapter, in seconds.
    """

    gemini_api_key: str | None = None
    vertex_project: str | None = None
    vertex_location: str = "us-central1"
    replicate_api_token: str | None = None
    planner_provider: ProviderKind = ProviderKind.GEMINI
    planner_model: str | None = None
    describer_models: tuple[str, ...] = DEFAULT_DESCRIBER_MODELS
    gemini_image_model: str = "gemini-3-pro-image-preview"
    vertex_image_model: str = "imagen-3.0-generate-002"
    replicate_model: str = "black-forest-labs/flux-dev"
    vertex_color_mode: str = "monochrome"
    request_timeout: float = 120.0
    failure_policy: PageFailurePolicy = PageFailurePolicy.ABORT
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "planner_provider", ProviderKind(self.planner_provider))
        object.__setattr__(self, "failure_policy", PageFailurePolicy(self.failure_policy))
        if self.planner_provider is ProviderKind.REPLICATE:
            raise ConfigurationError(
                "The replicate provider has no text generation capability and cannot plan prompts."
            )
        if self.vertex_color_mode not in {"monochrome", "color"}:
            raise ConfigurationError(
                f"vertex_color_mode must be 'monochrome' or 'color', got {self.vertex_color_mode!r}."
            )
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive.")

    @property
    def resolved_planner_model(self) -> str:
        return self.planner_model or DEFAULT_PLANNER_MODELS[self.planner_provider]

    def require(self, kind: ProviderKind | str) -> None:
        """
        Fail fast when the credentials needed by ``kind`` are missing.
        """
        kind = ProviderKind(kind)
        if kind is ProviderKind.GEMINI and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key is required. Set GEMINI_API_KEY or gemini_api_key in the settings file."
            )
        if kind is ProviderKind.VERTEX and not (self.vertex_project and self.vertex_location):
            raise ConfigurationError(
                "Project ID and location are required for the Vertex AI provider. "
                "Set GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION."
            )
        if kind is ProviderKind.REPLICATE and not self.replicate_api_token:
            raise ConfigurationError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or replicate_api_token."
            )

    def with_overrides(self, **overrides: Any) -> "MangaSettings":
        cleaned = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **cleaned)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MangaSettings":
        """
        Build settings from a mapping, ignoring ``None`` values and collecting unknown keys.
        """
        known = {item.name for item in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            if key not in known:
                extra[key] = value
                continue
            if key == "describer_models":
                value = _coerce_models(value)
            elif key == "request_timeout":
                try:
                    value = float(value)
                except (TypeError, ValueError) as exc:
                    raise ConfigurationError(
                        f"request_timeout must be a number, got {value!r}."
                    ) from exc
            elif key in {"planner_provider", "failure_policy"}:
                try:
                    value = (
                        ProviderKind(value) if key == "planner_provider" else PageFailurePolicy(value)
                    )
                except ValueError as exc:
                    raise ConfigurationError(f"Invalid value for {key}: {value!r}.") from exc
            else:
                value = _coerce_optional_str(value)
                if value is None:
                    continue
            kwargs[key] = value
        return cls(extra=extra, **kwargs)

    @classmethod
    def from_yaml(cls, source: str | Path) -> "MangaSettings":
        return cls.from_mapping(_yaml_mapping(source))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MangaSettings":
        return cls.from_mapping(_env_mapping(environ))

    @classmethod
    def from_sources(
        cls,
        config_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "MangaSettings":
        """
        Layer the settings file over the environment. Any key present in the file wins,
        even when it repeats the default value.
        """
        data = {key: value for key, value in _env_mapping(environ).items() if value}
        if config_path is not None:
            data.update(
                (key, value) for key, value in _yaml_mapping(config_path).items() if value is not None
            )
        return cls.from_mapping(data)


def _yaml_mapping(source: str | Path) -> dict[str, Any]:
    path = Path(source).expanduser()
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Settings YAML must deserialize to a mapping.")
    return dict(data)


def _env_mapping(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    return {
        "gemini_api_key": env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY"),
        "vertex_project": env.get("GOOGLE_CLOUD_PROJECT"),
        "vertex_location": env.get("GOOGLE_CLOUD_LOCATION"),
        "replicate_api_token": env.get("REPLICATE_API_TOKEN"),
        "planner_provider": env.get("MANGAFORGE_PLANNER_PROVIDER"),
        "planner_model": env.get("MANGAFORGE_PLANNER_MODEL"),
        "describer_models": env.get("MANGAFORGE_DESCRIBER_MODELS"),
        "gemini_image_model": env.get("MANGAFORGE_GEMINI_IMAGE_MODEL"),
        "vertex_image_model": env.get("MANGAFORGE_VERTEX_IMAGE_MODEL"),
        "replicate_model": env.get("MANGAFORGE_REPLICATE_MODEL") or env.get("REPLICATE_MODEL"),
        "vertex_color_mode": env.get("MANGAFORGE_VERTEX_COLOR_MODE"),
        "request_timeout": env.get("MANGAFORGE_REQUEST_TIMEOUT"),
    }
