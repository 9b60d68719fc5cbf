"""
Provider adapters that turn page prompts into images.
"""

from .base import ImageProvider, TextProvider, nearest_supported_ratio
from .gemini import GeminiProvider
from .llm_text import LiteLLMTextProvider
from .registry import build_image_provider, build_text_provider
from .replicate_service import ReplicateImageProvider
from .vertex import VertexImagenProvider

__all__ = [
    "ImageProvider",
    "TextProvider",
    "nearest_supported_ratio",
    "GeminiProvider",
    "LiteLLMTextProvider",
    "ReplicateImageProvider",
    "VertexImagenProvider",
    "build_image_provider",
    "build_text_provider",
]
