"""
Turn a story idea or script into an ordered list of page prompts.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from mangaforge.common import InputMode, PlanningFailure, ProviderFailure, ReferenceImage
from mangaforge.providers.base import TextProvider

from .prompting import (
    PlanningPrompt,
    build_idea_prompt,
    build_script_prompt,
    format_reference_block,
)
from .reference_describer import ReferenceDescriber
from .script_splitter import split_script

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_prompt_array(raw_text: str, expected_count: int) -> list[str]:
    """
    Parse the planning model's reply into exactly ``expected_count`` prompt strings.
    """
    cleaned = _CODE_FENCE.sub("", raw_text).strip()
    try:
        parsed: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse JSON: %s", raw_text[:500])
        raise PlanningFailure("Failed to generate valid prompt structure.") from exc

    if isinstance(parsed, dict) and isinstance(parsed.get("prompts"), list):
        parsed = parsed["prompts"]

    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise PlanningFailure("Invalid prompt structure: expected a JSON array of strings.")

    prompts = [item.strip() for item in parsed]
    if any(not item for item in prompts):
        raise PlanningFailure("Planning model returned an empty page prompt.")

    if len(prompts) != expected_count:
        raise PlanningFailure(
            f"Expected exactly {expected_count} page prompts, received {len(prompts)}."
        )
    return prompts


class PromptPlanner:
    """
    Produces one image prompt per page using a fixed text-capable provider.

    The planner is all-or-nothing: it either returns exactly ``page_count`` prompts
    or raises :class:`PlanningFailure`.
    """

    def __init__(
        self,
        text_provider: TextProvider,
        *,
        describer: ReferenceDescriber | None = None,
        idea_temperature: float = 0.9,
        script_temperature: float = 0.3,
        max_output_tokens: int = 4000,
    ) -> None:
        self._text_provider = text_provider
        self._describer = describer or ReferenceDescriber(text_provider)
        self._idea_temperature = idea_temperature
        self._script_temperature = script_temperature
        self._max_output_tokens = max_output_tokens

    def plan(
        self,
        story_text: str,
        page_count: int,
        mode: InputMode | str,
        reference_images: Sequence[ReferenceImage] = (),
        *,
        describe_references: bool = False,
    ) -> list[str]:
        """
        Plan ``page_count`` prompts for ``story_text``.

        When ``describe_references`` is set, each reference image is first translated
        into words and appended to every prompt, for image models that cannot see
        the images themselves.
        """
        mode = InputMode(mode)
        if not story_text or not story_text.strip():
            raise ValueError("story_text must be a non-empty string.")
        if page_count < 1:
            raise ValueError(f"page_count must be at least 1, received {page_count}.")

        references = tuple(reference_images)
        descriptions: list[str] = []
        if describe_references and references:
            try:
                descriptions = self._describer.describe_all(references)
            except ProviderFailure as exc:
                raise PlanningFailure(f"Reference image analysis failed: {exc}") from exc

        if mode is InputMode.SCRIPT:
            try:
                segments = split_script(story_text, page_count)
            except ValueError as exc:
                raise PlanningFailure(str(exc)) from exc
            prompt = build_script_prompt(segments, reference_count=len(references))
            temperature = self._script_temperature
        else:
            prompt = build_idea_prompt(story_text, page_count, reference_count=len(references))
            temperature = self._idea_temperature

        raw_text = self._request(prompt, references, temperature)
        prompts = parse_prompt_array(raw_text, page_count)

        if mode is InputMode.IDEA and len(set(prompts)) != len(prompts):
            raise PlanningFailure("Planning model returned duplicate page variations.")

        reference_block = format_reference_block(descriptions)
        if reference_block:
            prompts = [f"{item}\n\n{reference_block}" for item in prompts]

        logger.info("Planned %d page prompt(s) in %s mode.", len(prompts), mode.value)
        return prompts

    def _request(
        self,
        prompt: PlanningPrompt,
        references: Sequence[ReferenceImage],
        temperature: float,
    ) -> str:
        try:
            return self._text_provider.generate_text(
                prompt.user,
                references,
                system=prompt.system,
                temperature=temperature,
                max_tokens=self._max_output_tokens,
            )
        except ProviderFailure as exc:
            raise PlanningFailure(f"Prompt planning request failed: {exc}") from exc
