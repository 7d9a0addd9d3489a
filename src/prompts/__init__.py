"""Prompt templates and builders for LLM interactions."""

from src.prompts.agent import build_system_instruction, describe_tool
from src.prompts.extraction import build_extraction_prompt

__all__ = [
    "build_system_instruction",
    "describe_tool",
    "build_extraction_prompt",
]
