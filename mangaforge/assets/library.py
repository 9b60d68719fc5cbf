"""
Local keyed blob store for reference images and character sheets.
"""

from __future__ import annotations

import logging
import time
import uuid
import warnings
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import yaml

from mangaforge.common import ReferenceImage, ResolutionWarning
from mangaforge.common.media import extension_for, guess_mime_type

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.yaml"
BLOB_DIRNAME = "blobs"


@dataclass(frozen=True)
class AssetRecord:
    """Metadata for one stored image."""

    id: str
    name: str
    mime_type: str
    filename: str
    created_at: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "AssetRecord":
        try:
            return cls(
                id=str(payload["id"]),
                name=str(payload.get("name") or payload["id"]),
                mime_type=str(payload["mime_type"]),
                filename=str(payload["filename"]),
                created_at=float(payload["created_at"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid asset entry: {payload}") from exc


@dataclass(frozen=True)
class AvailableAsset:
    """An asset offered for selection, with its bytes loaded."""

    id: str
    data: bytes
    display_name: str


@dataclass(frozen=True)
class CharacterRecord:
    """A named character bundling a description and its reference image ids."""

    id: str
    name: str
    description: str
    image_ids: tuple[str, ...] = field(default_factory=tuple)
    created_at: float = 0.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "CharacterRecord":
        try:
            return cls(
                id=str(payload["id"]),
                name=str(payload["name"]),
                description=str(payload.get("description") or ""),
                image_ids=tuple(str(item) for item in payload.get("image_ids") or ()),
                created_at=float(payload["created_at"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid character entry: {payload}") from exc

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["image_ids"] = list(self.image_ids)
        return payload


class AssetLibrary:
    """
    Filesystem-backed asset store.

    Blobs live under ``<root>/blobs`` and metadata in ``<root>/index.yaml``. The
    index is re-read on every call, so separate processes see each other's writes.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()
        self._blob_dir = self._root / BLOB_DIRNAME
        self._index_path = self._root / INDEX_FILENAME

    @property
    def root(self) -> Path:
        return self._root

    # Images -----------------------------------------------------------------

    def add(self, data: bytes, *, name: str, mime_type: str) -> AssetRecord:
        if not data:
            raise ValueError("Asset data must not be empty.")
        if not mime_type.startswith("image/"):
            raise ValueError(f"Only images can be stored, got {mime_type!r}.")

        asset_id = uuid.uuid4().hex
        filename = f"{asset_id}{extension_for(mime_type)}"
        self._blob_dir.mkdir(parents=True, exist_ok=True)
        (self._blob_dir / filename).write_bytes(data)

        record = AssetRecord(
            id=asset_id,
            name=name,
            mime_type=mime_type,
            filename=filename,
            created_at=time.time(),
        )
        index = self._load_index()
        index["images"].append(asdict(record))
        self._save_index(index)
        logger.info("Stored asset %s (%s)", asset_id, name)
        return record

    def add_file(self, path: str | Path, *, name: str | None = None) -> AssetRecord:
        file_path = Path(path).expanduser()
        if not file_path.exists():
            raise FileNotFoundError(f"Image not found at '{file_path}'.")
        return self.add(
            file_path.read_bytes(),
            name=name or file_path.name,
            mime_type=guess_mime_type(file_path.name),
        )

    def list_assets(self) -> list[AssetRecord]:
        """Return every stored image, oldest first."""
        records = [AssetRecord.from_mapping(entry) for entry in self._load_index()["images"]]
        return sorted(records, key=lambda record: record.created_at)

    def get(self, asset_id: str) -> AssetRecord | None:
        for record in self.list_assets():
            if record.id == asset_id:
                return record
        return None

    def read(self, asset_id: str) -> bytes:
        record = self.get(asset_id)
        if record is None:
            raise KeyError(asset_id)
        return (self._blob_dir / record.filename).read_bytes()

    def delete(self, asset_id: str) -> bool:
        index = self._load_index()
        remaining = [entry for entry in index["images"] if entry.get("id") != asset_id]
        if len(remaining) == len(index["images"]):
            return False

        for entry in index["images"]:
            if entry.get("id") == asset_id:
                (self._blob_dir / str(entry.get("filename"))).unlink(missing_ok=True)
        index["images"] = remaining
        self._save_index(index)
        logger.info("Deleted asset %s", asset_id)
        return True

    def list_available(self) -> list[AvailableAsset]:
        """Return selectable assets with their bytes, newest first."""
        available: list[AvailableAsset] = []
        for record in reversed(self.list_assets()):
            blob_path = self._blob_dir / record.filename
            if not blob_path.exists():
                logger.warning("Blob for asset %s is missing; skipping.", record.id)
                continue
            available.append(
                AvailableAsset(id=record.id, data=blob_path.read_bytes(), display_name=record.name)
            )
        return available

    def resolve(self, asset_ids: Iterable[str]) -> list[ReferenceImage]:
        """
        Load reference images for ``asset_ids`` in order, skipping ids that cannot be
        resolved with a :class:`ResolutionWarning`.
        """
        records = {record.id: record for record in self.list_assets()}
        resolved: list[ReferenceImage] = []
        for asset_id in asset_ids:
            record = records.get(asset_id)
            blob_path = self._blob_dir / record.filename if record else None
            if record is None or blob_path is None or not blob_path.exists():
                message = f"Reference image '{asset_id}' could not be resolved and was skipped."
                logger.warning(message)
                warnings.warn(message, ResolutionWarning, stacklevel=2)
                continue
            resolved.append(ReferenceImage(data=blob_path.read_bytes(), mime_type=record.mime_type))
        return resolved

    # Characters -------------------------------------------------------------

    def add_character(
        self,
        name: str,
        *,
        description: str = "",
        image_ids: Sequence[str] = (),
    ) -> CharacterRecord:
        if not name or not name.strip():
            raise ValueError("Character name must be a non-empty string.")

        record = CharacterRecord(
            id=uuid.uuid4().hex,
            name=name.strip(),
            description=description.strip(),
            image_ids=tuple(image_ids),
            created_at=time.time(),
        )
        index = self._load_index()
        index["characters"].append(record.to_dict())
        self._save_index(index)
        return record

    def list_characters(self) -> list[CharacterRecord]:
        records = [CharacterRecord.from_mapping(entry) for entry in self._load_index()["characters"]]
        return sorted(records, key=lambda record: record.created_at)

    def get_character(self, character_id: str) -> CharacterRecord | None:
        for record in self.list_characters():
            if record.id == character_id:
                return record
        return None

    def delete_character(self, character_id: str) -> bool:
        index = self._load_index()
        remaining = [entry for entry in index["characters"] if entry.get("id") != character_id]
        if len(remaining) == len(index["characters"]):
            return False
        index["characters"] = remaining
        self._save_index(index)
        return True

    def character_image_ids(self, character_id: str) -> tuple[str, ...]:
        record = self.get_character(character_id)
        if record is None:
            message = f"Character '{character_id}' could not be resolved and was skipped."
            logger.warning(message)
            warnings.warn(message, ResolutionWarning, stacklevel=2)
            return ()
        return record.image_ids

    # Index ------------------------------------------------------------------

    def _load_index(self) -> dict[str, list[dict[str, Any]]]:
        if not self._index_path.exists():
            return {"images": [], "characters": []}

        data = yaml.safe_load(self._index_path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Asset index at {self._index_path} must deserialize to a mapping.")
        return {
            "images": list(data.get("images") or []),
            "characters": list(data.get("characters") or []),
        }

    def _save_index(self, index: Mapping[str, Any]) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_suffix(".yaml.tmp")
        tmp_path.write_text(
            yaml.safe_dump(dict(index), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        tmp_path.replace(self._index_path)
