"""
Abstract base class for LLM providers.

Defines the interface that completion providers must implement,
plus the message and parameter types shared with the chat session.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import InvalidArgumentError


class Role(str, Enum):
    """Chat message roles understood by the completion API."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single message in an outgoing chat request."""
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


def parse_logit_bias(value: str | dict | None) -> dict[str, int] | None:
    """
    Parse a logit bias option.

    Accepts a JSON object (``{"50256": -100}``) or a comma separated list
    of ``token:bias`` pairs (``50256:-100,1234:5``).
    """
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        return {str(k): int(v) for k, v in value.items()}

    text = value.strip()
    try:
        if text.startswith("{"):
            parsed = json.loads(text)
            return {str(k): int(v) for k, v in parsed.items()}

        bias = {}
        for pair in text.split(","):
            if not pair.strip():
                continue
            token, _, amount = pair.partition(":")
            bias[token.strip()] = int(amount)
        return bias
    except (ValueError, AttributeError) as e:
        raise InvalidArgumentError(f"Invalid logit bias {value!r}: {e}") from e


@dataclass
class GenerationParams:
    """Global generation parameters shared by every request of a session."""
    model: str = "gpt-3.5-turbo"
    max_tokens: int | None = 1000
    temperature: float | None = None
    top_p: float | None = None
    n: int = 1
    stream: bool = True
    stop: list[str] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    logit_bias: dict[str, int] | None = None
    user: str | None = None

    def to_request_kwargs(self) -> dict[str, Any]:
        """Return only the parameters that were actually set."""
        kwargs: dict[str, Any] = {"model": self.model}
        optional = {
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "stop": self.stop,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            "logit_bias": self.logit_bias,
            "user": self.user,
        }
        kwargs.update({k: v for k, v in optional.items() if v is not None})
        if self.n != 1:
            kwargs["n"] = self.n
        return kwargs


@dataclass
class LLMResponse:
    """Standardized response (or streamed fragment) from LLM providers."""
    content: str
    model: str
    successful: bool = True
    error: str | None = None
    usage: dict[str, int] | None = None
    raw_response: Any = field(default=None, repr=False)

    @classmethod
    def failure(cls, error: str, model: str = "") -> "LLMResponse":
        return cls(content="", model=model, successful=False, error=error)

    @property
    def token_count(self) -> int:
        """Return total tokens used if available."""
        if self.usage:
            return self.usage.get("total_tokens", 0)
        return 0


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implement this interface to add support for new completion services.
    Failures are reported as unsuccessful LLMResponse objects rather than
    raised, so callers can decide how a failed turn is handled.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the LLM provider."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model being used."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        params: GenerationParams,
    ) -> LLMResponse:
        """
        Generate one complete response.

        Args:
            messages: Ordered conversation to send.
            params: Generation parameters.

        Returns:
            LLMResponse; ``successful`` is False when the provider failed.
        """
        pass

    @abstractmethod
    def stream(
        self,
        messages: list[ChatMessage],
        params: GenerationParams,
    ) -> AsyncIterator[LLMResponse]:
        """
        Generate a response incrementally.

        Yields:
            LLMResponse fragments whose contents concatenate to the full
            response. A failure is yielded as a final unsuccessful fragment.
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the provider is properly configured with API keys."""
        pass
