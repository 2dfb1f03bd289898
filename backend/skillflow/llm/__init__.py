"""
LLM integration — text generation and plan parsing.
"""

from skillflow.llm.plan_output import (
    PlanOutput,
    PlanSkillInstall,
    PlanStep,
    build_plan_instruction,
    parse_plan,
    strip_code_fences,
)
from skillflow.llm.text_generation import (
    ChatMessage,
    ChatModelTextGenerator,
    ChatReply,
    TextGenerator,
)

__all__ = [
    "PlanOutput",
    "PlanSkillInstall",
    "PlanStep",
    "build_plan_instruction",
    "parse_plan",
    "strip_code_fences",
    "ChatMessage",
    "ChatModelTextGenerator",
    "ChatReply",
    "TextGenerator",
]
