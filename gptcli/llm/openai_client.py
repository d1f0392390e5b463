"""
OpenAI LLM Provider Implementation.

Provides integration with OpenAI's chat completions API, in either
whole-response or streaming mode.
"""

import logging
from collections.abc import AsyncIterator

from openai import AsyncOpenAI, OpenAIError

from .base import ChatMessage, GenerationParams, LLMProvider, LLMResponse

logger = logging.getLogger("gptcli.llm.openai")


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation."""

    def __init__(self, api_key: str, model: str = "gpt-3.5-turbo", base_url: str | None = None):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Default model, used when the request parameters name none.
            base_url: Optional OpenAI-compatible endpoint.
        """
        self._api_key = api_key
        self._model = model
        self._base_url = base_url or None
        self._client: AsyncOpenAI | None = None

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    @property
    def model_name(self) -> str:
        return self._model

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    def _request_kwargs(self, messages: list[ChatMessage], params: GenerationParams) -> dict:
        kwargs = params.to_request_kwargs()
        kwargs["model"] = params.model or self._model
        kwargs["messages"] = [m.to_dict() for m in messages]
        return kwargs

    async def complete(
        self,
        messages: list[ChatMessage],
        params: GenerationParams,
    ) -> LLMResponse:
        """
        Generate a whole response using OpenAI's API.

        Content of every returned choice is concatenated.
        """
        client = self._get_client()
        kwargs = self._request_kwargs(messages, params)

        logger.debug(f"Sending request to OpenAI ({kwargs['model']}) with {len(messages)} messages")

        try:
            response = await client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            return LLMResponse.failure(str(e), model=kwargs["model"])

        content = "".join(choice.message.content or "" for choice in response.choices)
        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(f"OpenAI response received, tokens used: {usage}")

        return LLMResponse(
            content=content,
            model=response.model,
            usage=usage,
            raw_response=response,
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        params: GenerationParams,
    ) -> AsyncIterator[LLMResponse]:
        """Stream a response, yielding one fragment per non-empty delta."""
        client = self._get_client()
        kwargs = self._request_kwargs(messages, params)
        kwargs["stream"] = True

        logger.debug(f"Streaming request to OpenAI ({kwargs['model']}) with {len(messages)} messages")

        try:
            stream = await client.chat.completions.create(**kwargs)
            async for chunk in stream:
                content = "".join(choice.delta.content or "" for choice in chunk.choices)
                if content:
                    yield LLMResponse(content=content, model=chunk.model, raw_response=chunk)
        except OpenAIError as e:
            logger.error(f"OpenAI API error while streaming: {e}")
            yield LLMResponse.failure(str(e), model=kwargs["model"])
