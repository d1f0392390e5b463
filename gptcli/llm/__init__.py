"""
LLM Provider Interface Module.

Provides a unified interface for sending chat requests to a completion
service, in whole-response or streaming mode.
"""

from .base import (
    ChatMessage,
    GenerationParams,
    LLMProvider,
    LLMResponse,
    Role,
    parse_logit_bias,
)
from .openai_client import OpenAIProvider
from .factory import create_llm_provider

__all__ = [
    "ChatMessage",
    "GenerationParams",
    "LLMProvider",
    "LLMResponse",
    "Role",
    "parse_logit_bias",
    "OpenAIProvider",
    "create_llm_provider",
]
