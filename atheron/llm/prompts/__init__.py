"""
Prompts module - LLM prompt templates.

Prompts are stored as separate Python files so prompt changes show up
clearly in version control.
"""
from atheron.llm.prompts.athey import ATHEY_SYSTEM_PROMPT, get_system_prompt

__all__ = [
    "ATHEY_SYSTEM_PROMPT",
    "get_system_prompt",
]
