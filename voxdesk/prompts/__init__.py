"""Prompt templates and builders for LLM interactions."""

from voxdesk.prompts.receptionist import (
    SCHEDULE_APPOINTMENT,
    TOOLS,
    TRANSFER_CALL,
    build_system_prompt,
)

__all__ = [
    "SCHEDULE_APPOINTMENT",
    "TOOLS",
    "TRANSFER_CALL",
    "build_system_prompt",
]
