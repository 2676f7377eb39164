"""
LLM module - Language model integration.

This module handles all LLM interactions:
- The Athey system prompt
- Streaming calls with provider fallback
"""
from atheron.core.exceptions import LLMError
from atheron.llm.client import LLMClient, get_llm_client, reset_llm_client

__all__ = [
    "LLMClient",
    "LLMError",
    "get_llm_client",
    "reset_llm_client",
]
