"""
Prompt construction utilities for the manga page planning step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

STYLE_INSTRUCTION = "Manga page. High quality, detailed, anime style."


@dataclass(frozen=True)
class PlanningPrompt:
    """
    Container for the system and user prompts passed to the planning model.
    """

    system: str
    user: str


def _reference_directive(reference_count: int) -> str:
    if reference_count <= 0:
        return ""
    return (
        f"\n    {reference_count} reference image(s) are attached. You MUST EXPLICITLY DESCRIBE their "
        "visual appearance in EVERY prompt (e.g. \"Young man with spiky black hair, yellow eyes, wearing "
        "a techwear jacket\"). Do NOT just say \"similar to Reference Image 1\" because the image "
        "generator may not see the reference images. Translate each image into words.\n"
    )


def build_idea_prompt(
    story_text: str,
    page_count: int,
    *,
    reference_count: int = 0,
) -> PlanningPrompt:
    """
    Build the prompt pair asking for ``page_count`` variations of one complete page.
    """
    system_prompt = f"""
    Your task is to create detailed image generation prompts for a manga based on the user's story idea.
    You need to generate {page_count} prompt(s).

    Each prompt will be used to generate a SINGLE IMAGE that looks like a complete {STYLE_INSTRUCTION} with multiple panels.

    IMPORTANT: The user wants {page_count} DIFFERENT VARIATIONS of the same story.
    Do NOT split the story across multiple pages.
    Each of the {page_count} prompts must represent the COMPLETION of the user's entire idea within a single page.
    Make each variation different in composition, camera angles, or panel layout.
    {_reference_directive(reference_count)}
    Output Format: JSON Array of strings.
    Example:
    [
      "A high-quality {STYLE_INSTRUCTION} with 4 panels. Panel 1 (top): Close up of a young man with spiky black hair... Panel 2 (middle): Wide shot of..."
    ]

    STRICT constraints:
    1. Output EXACTLY {page_count} strings in a JSON array. No two strings may be identical.
    2. Each string must be a highly detailed visual description of one full manga page.
    3. Include instructions for 'panels', 'layout', 'characters', and 'speech bubbles'.
    4. The art style should be consistent: "{STYLE_INSTRUCTION}, professional layout".
    5. Output ONLY valid JSON.
    6. For speech bubbles, prioritize clear, empty bubble shapes. Text inside bubbles may be distorted, so focus on the visual placement of bubbles.
    """

    user_prompt = "User Story Idea:\n" + story_text.strip()
    return PlanningPrompt(system=_dedent(system_prompt), user=user_prompt)


def build_script_prompt(
    segments: Sequence[str],
    *,
    reference_count: int = 0,
) -> PlanningPrompt:
    """
    Build the prompt pair turning pre-split script segments into one prompt per page.
    """
    page_count = len(segments)
    system_prompt = f"""
    Your task is to act as a professional manga editor and storyboarder.
    You have been provided with a script that is already divided into EXACTLY {page_count} sequential page segments.

    Instructions:
    1. Keep the given division: page N must depict only the events of segment N, in order.
    2. For EACH page, write a highly detailed image generation prompt.
    3. The prompt should describe the layout, panels, characters, and action for that part of the story.
    4. Ensure flow and continuity from Page 1 to Page {page_count}: recurring characters keep the same look.
    {_reference_directive(reference_count)}
    Output Format: JSON Array of strings (size {page_count}).
    Example:
    [
      "Page 1: {STYLE_INSTRUCTION}, 5 panels. Panel 1: Intro shot of city... Panel 2: Protagonist enters...",
      "Page 2: {STYLE_INSTRUCTION}, 4 panels. Panel 1: Dialogue scene...",
      ...
    ]

    Constraints:
    - Output ONLY valid JSON.
    - The array length must be EXACTLY {page_count}.
    - Style: {STYLE_INSTRUCTION}
    """

    blocks = [
        f"Page {number} segment:\n\"\"\"\n{segment.strip()}\n\"\"\""
        for number, segment in enumerate(segments, start=1)
    ]
    user_prompt = "Input Script:\n\n" + "\n\n".join(blocks)
    return PlanningPrompt(system=_dedent(system_prompt), user=user_prompt)


def format_reference_block(descriptions: Sequence[str]) -> str:
    """
    Render reference descriptions as a section appended to every page prompt.
    """
    lines = [
        f"- Reference {number}: {description.strip()}"
        for number, description in enumerate(descriptions, start=1)
        if description.strip()
    ]
    if not lines:
        return ""
    return "CHARACTER REFERENCES (keep these visual traits exactly)\n" + "\n".join(lines)


def _dedent(text: str) -> str:
    return "\n".join(line.strip() for line in text.strip().splitlines())
