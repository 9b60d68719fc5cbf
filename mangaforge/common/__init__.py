"""
Common utilities shared across mangaforge modules.
"""

from .errors import (
    ConfigurationError,
    MangaForgeError,
    PlanningFailure,
    ProviderFailure,
    ResolutionWarning,
)
from .llm import ChatResult, CompletionCallable, complete_chat
from .media import ImagePayload, ReferenceImage
from .types import AspectRatio, InputMode, PageFailurePolicy, ProviderKind

__all__ = [
    "AspectRatio",
    "InputMode",
    "PageFailurePolicy",
    "ProviderKind",
    "ChatResult",
    "CompletionCallable",
    "complete_chat",
    "ConfigurationError",
    "MangaForgeError",
    "PlanningFailure",
    "ProviderFailure",
    "ResolutionWarning",
    "ImagePayload",
    "ReferenceImage",
]
