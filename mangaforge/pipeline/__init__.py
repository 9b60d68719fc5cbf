"""
End-to-end orchestration for manga page generation.
"""

from .models import GenerationRequest, GenerationResult, PageImage, PageStatus
from .pipeline import MangaOrchestrator, ProgressCallback
from .prompting import build_page_prompt

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "PageImage",
    "PageStatus",
    "MangaOrchestrator",
    "ProgressCallback",
    "build_page_prompt",
]
