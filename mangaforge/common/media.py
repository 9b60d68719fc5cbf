"""
Binary image containers exchanged between the planner, providers, and asset store.
"""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path

DEFAULT_IMAGE_MIME_TYPE = "image/png"

_EXTENSION_OVERRIDES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}
_MIME_TYPES_BY_EXTENSION = {
    extension: mime_type for mime_type, extension in _EXTENSION_OVERRIDES.items()
}
_MIME_TYPES_BY_EXTENSION[".jpeg"] = "image/jpeg"


@dataclass(frozen=True)
class ReferenceImage:
    """A user-supplied reference image passed to planning and rendering calls."""

    data: bytes
    mime_type: str

    @classmethod
    def from_path(cls, path: str | Path) -> "ReferenceImage":
        image_path = Path(path).expanduser()
        if not image_path.exists():
            raise FileNotFoundError(f"Reference image not found at '{image_path}'.")
        return cls(data=image_path.read_bytes(), mime_type=guess_mime_type(image_path.name))

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


@dataclass(frozen=True)
class ImagePayload:
    """Normalized image returned by every provider adapter."""

    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("Image payload must not be empty.")
        if not self.mime_type.startswith("image/"):
            raise ValueError(f"Image payload has a non-image mime type: {self.mime_type!r}.")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def guess_mime_type(filename: str, default: str = DEFAULT_IMAGE_MIME_TYPE) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix in _MIME_TYPES_BY_EXTENSION:
        return _MIME_TYPES_BY_EXTENSION[suffix]
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or default


def extension_for(mime_type: str) -> str:
    """Return a file extension (with dot) suited to the given image mime type."""
    if mime_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[mime_type]
    return mimetypes.guess_extension(mime_type) or ".png"


def decode_data_uri(uri: str) -> ImagePayload:
    """Decode a ``data:<mime>;base64,<payload>`` string."""
    header, _, encoded = uri.partition(",")
    if not header.startswith("data:") or ";base64" not in header or not encoded:
        raise ValueError("Expected a base64 data URI.")
    mime_type = header[len("data:"):].split(";", 1)[0] or DEFAULT_IMAGE_MIME_TYPE
    return ImagePayload(data=base64.b64decode(encoded), mime_type=mime_type)
