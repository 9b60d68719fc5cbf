"""
Page planning utilities: story text in, ordered page prompts out.
"""

from .planner import PromptPlanner, parse_prompt_array
from .prompting import PlanningPrompt, build_idea_prompt, build_script_prompt
from .reference_describer import ReferenceDescriber
from .script_splitter import split_script

__all__ = [
    "PromptPlanner",
    "parse_prompt_array",
    "PlanningPrompt",
    "build_idea_prompt",
    "build_script_prompt",
    "ReferenceDescriber",
    "split_script",
]
