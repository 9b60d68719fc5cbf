"""
Final page prompt assembly shared by every image provider.
"""

from __future__ import annotations

from mangaforge.common import AspectRatio

STYLE_BOOSTER = "Style: Manga style, anime style, high quality."
QUALITY_BOOSTER = "Quality: Masterpiece, best quality, highly detailed."
CONSISTENCY_INSTRUCTION = (
    "[System Instruction]: Use the attached images as strict character references. "
    "Maintain character consistency throughout the page."
)


def build_page_prompt(
    planned_prompt: str,
    aspect_ratio: AspectRatio | str,
    *,
    has_references: bool = False,
) -> str:
    """
    Append the aspect-ratio directive, style boosters, and the optional consistency
    instruction to a planned page prompt.
    """
    if not planned_prompt or not planned_prompt.strip():
        raise ValueError("planned_prompt must be a non-empty string.")

    ratio = AspectRatio(aspect_ratio).value
    sections = [
        planned_prompt.strip(),
        "\n".join([f"Aspect Ratio: {ratio}", STYLE_BOOSTER, QUALITY_BOOSTER]),
    ]
    if has_references:
        sections.append(CONSISTENCY_INSTRUCTION)
    return "\n\n".join(sections)
