"""
Local asset library supplying reference images to generation runs.
"""

from .library import AssetLibrary, AssetRecord, AvailableAsset, CharacterRecord

__all__ = ["AssetLibrary", "AssetRecord", "AvailableAsset", "CharacterRecord"]
