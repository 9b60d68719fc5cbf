from __future__ import annotations

import json

import pytest

from mangaforge.common import InputMode, PlanningFailure, ProviderFailure
from mangaforge.planning import PromptPlanner, ReferenceDescriber, parse_prompt_array
from tests.stubs import StubTextProvider, prompt_reply

SCRIPT = (
    "Kaito wakes up late.\n\n"
    "He misses the train.\n\n"
    "A stray cat leads him away.\n\n"
    "He finds a hidden shrine."
)


@pytest.mark.parametrize("page_count", [1, 2, 3, 4])
def test_script_mode_returns_exact_page_count(page_count):
    provider = StubTextProvider([prompt_reply(page_count)])
    planner = PromptPlanner(provider)

    prompts = planner.plan(SCRIPT, page_count, InputMode.SCRIPT)

    assert len(prompts) == page_count
    user_prompt = provider.calls[0]["prompt"]
    assert f"Page {page_count} segment:" in user_prompt
    assert f"Page {page_count + 1} segment:" not in user_prompt


@pytest.mark.parametrize("page_count", [2, 3, 4])
def test_idea_mode_returns_distinct_prompts(page_count):
    provider = StubTextProvider([prompt_reply(page_count, prefix="Variation")])
    planner = PromptPlanner(provider)

    prompts = planner.plan("A robot finds a flower", page_count, "idea")

    assert len(prompts) == page_count
    assert len(set(prompts)) == page_count
    assert provider.calls[0]["temperature"] == 0.9


def test_idea_mode_rejects_duplicate_variations():
    provider = StubTextProvider([json.dumps(["same page", "same page"])])

    with pytest.raises(PlanningFailure):
        PromptPlanner(provider).plan("A robot finds a flower", 2, InputMode.IDEA)


def test_wrong_prompt_count_is_a_planning_failure():
    provider = StubTextProvider([prompt_reply(2)])

    with pytest.raises(PlanningFailure):
        PromptPlanner(provider).plan(SCRIPT, 3, InputMode.SCRIPT)


def test_script_too_short_is_a_planning_failure():
    provider = StubTextProvider([])

    with pytest.raises(PlanningFailure):
        PromptPlanner(provider).plan("Tiny", 3, InputMode.SCRIPT)
    assert provider.calls == []


def test_provider_failure_becomes_planning_failure():
    provider = StubTextProvider([ProviderFailure("quota exceeded", status_code=429)])

    with pytest.raises(PlanningFailure) as excinfo:
        PromptPlanner(provider).plan("A robot finds a flower", 1, InputMode.IDEA)

    assert "quota exceeded" in str(excinfo.value)


def test_reference_images_reach_the_planning_model(reference_image):
    provider = StubTextProvider([prompt_reply(1)])

    PromptPlanner(provider).plan("A robot finds a flower", 1, InputMode.IDEA, [reference_image])

    call = provider.calls[0]
    assert call["images"] == [reference_image]
    assert "1 reference image(s) are attached" in call["system"]


def test_described_references_are_embedded_in_every_prompt(reference_image):
    provider = StubTextProvider(
        [
            "silver hair,\n red eyes",
            prompt_reply(2, prefix="Variation"),
        ]
    )
    describer = ReferenceDescriber(provider, models=["gemini/gemini-2.5-flash"])
    planner = PromptPlanner(provider, describer=describer)

    prompts = planner.plan(
        "A robot finds a flower",
        2,
        InputMode.IDEA,
        [reference_image],
        describe_references=True,
    )

    for prompt in prompts:
        assert "CHARACTER REFERENCES" in prompt
        assert "- Reference 1: silver hair, red eyes" in prompt


def test_describer_failure_is_a_planning_failure(reference_image):
    provider = StubTextProvider([ProviderFailure("vision down")])
    describer = ReferenceDescriber(provider, models=["only-model"])

    with pytest.raises(PlanningFailure):
        PromptPlanner(provider, describer=describer).plan(
            "A robot finds a flower",
            1,
            InputMode.IDEA,
            [reference_image],
            describe_references=True,
        )


@pytest.mark.parametrize("page_count", [0, -1])
def test_invalid_page_count_is_rejected(page_count):
    with pytest.raises(ValueError):
        PromptPlanner(StubTextProvider()).plan("story", page_count, InputMode.IDEA)


def test_parse_prompt_array_strips_code_fences():
    raw = '```json\n["one", "two"]\n```'

    assert parse_prompt_array(raw, 2) == ["one", "two"]


def test_parse_prompt_array_accepts_wrapped_object():
    assert parse_prompt_array('{"prompts": ["one"]}', 1) == ["one"]


@pytest.mark.parametrize(
    "raw",
    ["not json", '{"pages": ["one"]}', "[1, 2]", '["one", "  "]'],
)
def test_parse_prompt_array_rejects_malformed_replies(raw):
    with pytest.raises(PlanningFailure):
        parse_prompt_array(raw, 2)
