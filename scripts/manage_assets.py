"""
Manage the local reference image library used by run_manga_generation.py.

Usage:
    python scripts/manage_assets.py add hero.png --name "Hero front view"
    python scripts/manage_assets.py list
    python scripts/manage_assets.py add-character "Kaito" --description "Spiky hair" --image ID
    python scripts/manage_assets.py list-characters
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mangaforge import AssetLibrary

DEFAULT_ASSETS_DIR = PROJECT_ROOT / "assets_library"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage stored reference images and characters.")
    parser.add_argument(
        "--assets-dir",
        default=str(DEFAULT_ASSETS_DIR),
        help=f"Asset library directory. Defaults to {DEFAULT_ASSETS_DIR}",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Store an image file.")
    add.add_argument("path", help="Image file to store.")
    add.add_argument("--name", default=None, help="Display name (defaults to the file name).")

    commands.add_parser("list", help="List stored images.")

    delete = commands.add_parser("delete", help="Delete a stored image.")
    delete.add_argument("asset_id")

    add_character = commands.add_parser("add-character", help="Register a character.")
    add_character.add_argument("name")
    add_character.add_argument("--description", default="")
    add_character.add_argument(
        "--image",
        action="append",
        default=[],
        metavar="ID",
        help="Asset id of a reference image for this character (repeatable).",
    )

    commands.add_parser("list-characters", help="List registered characters.")

    delete_character = commands.add_parser("delete-character", help="Delete a character.")
    delete_character.add_argument("character_id")
    return parser.parse_args(argv)


def _format_timestamp(value: float) -> str:
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    library = AssetLibrary(args.assets_dir)

    match args.command:
        case "add":
            record = library.add_file(args.path, name=args.name)
            print(f"Stored {record.name} as {record.id}")
        case "list":
            records = library.list_assets()
            if not records:
                print("No stored images.")
            for record in records:
                print(f"{record.id}  {_format_timestamp(record.created_at)}  {record.name}")
        case "delete":
            if not library.delete(args.asset_id):
                print(f"No image with id {args.asset_id}", file=sys.stderr)
                return 1
            print(f"Deleted {args.asset_id}")
        case "add-character":
            missing = [asset_id for asset_id in args.image if library.get(asset_id) is None]
            if missing:
                print(f"Unknown image id(s): {', '.join(missing)}", file=sys.stderr)
                return 1
            character = library.add_character(
                args.name,
                description=args.description,
                image_ids=args.image,
            )
            print(f"Registered {character.name} as {character.id}")
        case "list-characters":
            characters = library.list_characters()
            if not characters:
                print("No registered characters.")
            for character in characters:
                images = ", ".join(character.image_ids) or "(no images)"
                print(f"{character.id}  {character.name}: {character.description}")
                print(f"    images: {images}")
        case "delete-character":
            if not library.delete_character(args.character_id):
                print(f"No character with id {args.character_id}", file=sys.stderr)
                return 1
            print(f"Deleted {args.character_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
