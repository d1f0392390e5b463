"""
LLM Provider Factory.

Creates the appropriate LLM provider based on configuration.
"""

import logging
from typing import Literal

from .base import LLMProvider
from .openai_client import OpenAIProvider

logger = logging.getLogger("gptcli.llm.factory")


def create_llm_provider(
    provider: Literal["openai"] = "openai",
    openai_api_key: str = "",
    openai_model: str = "gpt-3.5-turbo",
    openai_base_url: str = "",
) -> LLMProvider:
    """
    Create an LLM provider based on the specified type.

    Args:
        provider: Which provider to use (only "openai" today).
        openai_api_key: OpenAI API key.
        openai_model: OpenAI model to use.
        openai_base_url: Optional OpenAI-compatible endpoint.

    Returns:
        Configured LLMProvider instance.

    Raises:
        ValueError: If provider is not supported or not properly configured.
    """
    logger.info(f"Creating LLM provider: {provider}")

    if provider == "openai":
        if not openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")
        return OpenAIProvider(
            api_key=openai_api_key,
            model=openai_model,
            base_url=openai_base_url or None,
        )

    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
