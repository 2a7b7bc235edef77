"""
Prompt templates for shell command generation.

Usage:
    from vibe_cli.core.prompts import build_system_prompt, build_messages

    system_prompt = build_system_prompt("Linux", "zsh")
    messages = build_messages("list files by size", system_prompt)
"""

from .templates import (
    SYSTEM_PROMPT_TEMPLATE,
    EXPLICIT_JSON_REMINDER,
    build_system_prompt,
    build_messages,
)

__all__ = [
    "SYSTEM_PROMPT_TEMPLATE",
    "EXPLICIT_JSON_REMINDER",
    "build_system_prompt",
    "build_messages",
]
