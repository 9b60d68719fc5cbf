"""
mangaforge package exposing prompt planning, provider adapters, and the generation orchestrator.
"""

from .assets import AssetLibrary
from .common import (
    AspectRatio,
    ConfigurationError,
    InputMode,
    PageFailurePolicy,
    PlanningFailure,
    ProviderFailure,
    ProviderKind,
    ReferenceImage,
    ResolutionWarning,
)
from .pipeline import (
    GenerationRequest,
    GenerationResult,
    MangaOrchestrator,
    PageImage,
    PageStatus,
)
from .settings import MangaSettings

__all__ = [
    "AspectRatio",
    "AssetLibrary",
    "ConfigurationError",
    "GenerationRequest",
    "GenerationResult",
    "InputMode",
    "MangaOrchestrator",
    "MangaSettings",
    "PageFailurePolicy",
    "PageImage",
    "PageStatus",
    "PlanningFailure",
    "ProviderFailure",
    "ProviderKind",
    "ReferenceImage",
    "ResolutionWarning",
]
