"""
Error types raised across the manga generation workflow.
"""

from __future__ import annotations


class MangaForgeError(Exception):
    """Base class for every error raised by mangaforge."""


class ConfigurationError(MangaForgeError):
    """A credential or identifier required by the selected provider is missing."""


class PlanningFailure(MangaForgeError):
    """The page prompts could not be produced or parsed."""


class ProviderFailure(MangaForgeError):
    """
    An image or text generation call failed.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    status_code:
        HTTP-style status returned by the vendor, when one is available.
    page_index:
        1-based page being rendered when the failure happened. Filled in by the
        orchestrator, adapters leave it empty.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        page_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.page_index = page_index

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message


class ResolutionWarning(UserWarning):
    """A selected reference image could not be resolved and was skipped."""
