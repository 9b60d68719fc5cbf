"""
CLI to run a complete manga generation from a story idea or script.

Usage:
    python scripts/run_manga_generation.py \
        --story "A robot finds a flower" \
        --pages 3 \
        --provider gemini \
        --output-dir manga_output

Environment variables:
    GEMINI_API_KEY        - required for --provider gemini and for Gemini planning
    GOOGLE_CLOUD_PROJECT  - required for --provider vertex
    GOOGLE_CLOUD_LOCATION - optional Vertex region (defaults to us-central1)
    REPLICATE_API_TOKEN   - required for --provider replicate
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mangaforge import (
    AspectRatio,
    AssetLibrary,
    ConfigurationError,
    GenerationRequest,
    GenerationResult,
    InputMode,
    MangaOrchestrator,
    MangaSettings,
    PageFailurePolicy,
    PlanningFailure,
    ProviderKind,
    ReferenceImage,
)
from mangaforge.common.media import extension_for

DEFAULT_ASSETS_DIR = PROJECT_ROOT / "assets_library"
MAX_CLI_PAGES = 4


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for a generation run.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "planning:started":
                mode = payload.get("input_mode", "idea")
                extra = " (describing reference images)" if payload.get("describe_references") else ""
                self._write(f"[1/3] Planning pages from the {mode}{extra}...")
            case "planning:ready":
                total = payload.get("total_pages", 0)
                self._write(f"[2/3] {payload.get('message')} Rendering pages...")
                self._page_bar = tqdm(total=total, desc="Manga pages", unit="page")
            case "page:rendering":
                if self._page_bar is not None:
                    self._page_bar.set_description(f"Page {payload.get('page_index')}")
            case "page:done":
                if self._page_bar is not None:
                    self._page_bar.update(1)
            case "page:failed":
                if self._page_bar is not None:
                    self._page_bar.update(1)
                self._write(f"  ! {payload.get('message')}")
            case "run:aborted" | "run:cancelled":
                self.close()
                self._write(f"[3/3] {payload.get('message')}")
            case "run:complete":
                self.close()
                self._write(f"[3/3] {payload.get('message')}")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate manga pages from a story.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--story", help="Story idea or script text.")
    source.add_argument("--story-file", help="Path to a text file holding the story.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in InputMode],
        default=InputMode.IDEA.value,
        help="'idea' lets the planner invent the plot; 'script' splits the text across pages.",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help=f"Number of pages to generate (1-{MAX_CLI_PAGES}).",
    )
    parser.add_argument(
        "--aspect-ratio",
        choices=[ratio.value for ratio in AspectRatio],
        default=AspectRatio.PORTRAIT_2_3.value,
        help="Logical page aspect ratio. Providers map it to their nearest supported ratio.",
    )
    parser.add_argument(
        "--provider",
        choices=[kind.value for kind in ProviderKind],
        default=ProviderKind.GEMINI.value,
        help="Image generation backend.",
    )
    parser.add_argument(
        "--reference",
        action="append",
        default=[],
        metavar="ID",
        help="Asset id of a reference image from the asset library (repeatable).",
    )
    parser.add_argument(
        "--reference-file",
        action="append",
        default=[],
        metavar="PATH",
        help="Local reference image file (repeatable).",
    )
    parser.add_argument(
        "--character",
        action="append",
        default=[],
        metavar="ID",
        help="Character id whose reference images should be attached (repeatable).",
    )
    parser.add_argument(
        "--assets-dir",
        default=str(DEFAULT_ASSETS_DIR),
        help=f"Asset library directory. Defaults to {DEFAULT_ASSETS_DIR}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML settings file. Values override environment variables.",
    )
    parser.add_argument(
        "--output-dir",
        default="manga_output",
        help="Directory receiving the page images and the run manifest.",
    )
    parser.add_argument(
        "--continue-on-failure",
        action="store_true",
        help="Keep rendering the remaining pages after a page fails.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def load_settings(config_path: str | None) -> MangaSettings:
    return MangaSettings.from_sources(config_path)


def collect_reference_images(args: argparse.Namespace) -> list[ReferenceImage]:
    images: list[ReferenceImage] = []
    asset_ids = list(args.reference)
    if asset_ids or args.character:
        library = AssetLibrary(args.assets_dir)
        for character_id in args.character:
            asset_ids.extend(library.character_image_ids(character_id))
        images.extend(library.resolve(asset_ids))
    images.extend(ReferenceImage.from_path(path) for path in args.reference_file)
    return images


def write_outputs(result: GenerationResult, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    filenames: dict[int, str] = {}
    for page in result.completed_pages:
        filename = f"manga_page_{page.index}{extension_for(page.mime_type or 'image/png')}"
        (output_dir / filename).write_bytes(page.image_bytes)
        filenames[page.index] = filename

    manifest_path = output_dir / "manga_result.yaml"
    manifest_path.write_text(result.to_yaml(filenames=filenames), encoding="utf-8")
    return manifest_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if not 1 <= args.pages <= MAX_CLI_PAGES:
        print(f"--pages must be between 1 and {MAX_CLI_PAGES}.", file=sys.stderr)
        return 2

    story_text = (
        Path(args.story_file).read_text(encoding="utf-8") if args.story_file else args.story
    )

    try:
        settings = load_settings(args.config)
        request = GenerationRequest(
            story_text=story_text,
            input_mode=InputMode(args.mode),
            page_count=args.pages,
            aspect_ratio=AspectRatio(args.aspect_ratio),
            reference_images=tuple(collect_reference_images(args)),
            provider=ProviderKind(args.provider),
        )
        policy = PageFailurePolicy.CONTINUE if args.continue_on_failure else None
        orchestrator = MangaOrchestrator(settings, failure_policy=policy)
    except (ConfigurationError, ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    tracker = ProgressTracker()
    try:
        result = orchestrator.generate(request, progress_callback=tracker)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except PlanningFailure as exc:
        print(f"Planning failed: {exc}", file=sys.stderr)
        return 1
    finally:
        tracker.close()

    manifest_path = write_outputs(result, Path(args.output_dir))
    print(f"Saved {len(result.completed_pages)} page(s) and manifest to {manifest_path}")
    if result.failure is not None:
        print(f"Run failed on page {result.failure.page_index}: {result.failure}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
