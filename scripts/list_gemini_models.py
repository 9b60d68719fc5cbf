"""
Print the models visible to a Gemini API key.

Usage:
    python scripts/list_gemini_models.py [--api-key KEY] [--images-only]

Environment variables:
    GEMINI_API_KEY  - required unless you pass --api-key
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mangaforge import ConfigurationError, MangaSettings, ProviderFailure
from mangaforge.providers import GeminiProvider


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="List models available to a Gemini API key.")
    parser.add_argument(
        "--api-key",
        default=None,
        help="Optional Gemini API key override (otherwise uses environment variable).",
    )
    parser.add_argument(
        "--images-only",
        action="store_true",
        help="Only show models whose name mentions image generation.",
    )
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    settings = MangaSettings.from_env().with_overrides(gemini_api_key=args.api_key)

    try:
        settings.require("gemini")
        provider = GeminiProvider(
            api_key=settings.gemini_api_key,
            timeout=settings.request_timeout,
        )
        models = provider.list_models()
    except (ConfigurationError, ProviderFailure) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.images_only:
        models = [model for model in models if "image" in (model["name"] or "")]

    print(f"Found {len(models)} model(s):")
    for model in models:
        actions = ", ".join(model.get("supported_actions") or [])
        print(f"  {model['name']}")
        if model.get("display_name"):
            print(f"    display name: {model['display_name']}")
        if actions:
            print(f"    actions     : {actions}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
