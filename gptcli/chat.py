"""
Multi-turn chat session with embedding context injection.

Only the (prompt, response) pairs survive between turns. Each turn the
outgoing message list is rebuilt from them, and the stored chunks most
similar to the new prompt are injected just before it, so earlier
turns' context is never resent.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from enum import Enum

from .config import DEFAULT_SYSTEM_PROMPT
from .errors import ProviderError
from .llm.base import ChatMessage, GenerationParams, LLMProvider, LLMResponse, Role
from .memory.document import Document
from .memory.embeddings import EmbeddingService
from .memory.search import find_most_similar

logger = logging.getLogger("gptcli.chat")

CONTEXT_PREFIX = "Embedding context for the next prompt: "
EXIT_COMMAND = "exit"


class SessionState(Enum):
    AWAITING_INPUT = "awaiting_input"
    PROCESSING_TURN = "processing_turn"


def is_exit_command(text: str) -> bool:
    """True if the input asks to leave the interactive loop."""
    return text.strip().lower() == EXIT_COMMAND


class ChatSession:
    """
    Turn-by-turn chat state.

    ``prompts[i]`` and ``responses[i]`` always describe the same completed
    turn; a failed or abandoned turn leaves both lists untouched.
    """

    def __init__(
        self,
        provider: LLMProvider,
        params: GenerationParams,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        documents: Sequence[Document] = (),
        embedder: EmbeddingService | None = None,
        match_limit: int = 3,
        max_history_length: int | None = None,
    ):
        self.provider = provider
        self.params = params
        self.system_prompt = system_prompt
        self.documents = list(documents)
        self.embedder = embedder
        self.match_limit = match_limit
        self.max_history_length = max_history_length

        self.prompts: list[str] = []
        self.responses: list[str] = []
        self.messages: list[ChatMessage] = []
        self.state = SessionState.AWAITING_INPUT
        self._pending_prompt: str | None = None

        self.clear_messages()

    @property
    def initial_request(self) -> list[ChatMessage]:
        return [ChatMessage(Role.SYSTEM, self.system_prompt)]

    def clear_messages(self) -> None:
        """Reset the in-progress buffer to the system message."""
        self.messages = list(self.initial_request)
        self._pending_prompt = None

    def append_message(self, role: Role | str, content: str) -> None:
        """Add a message to the current turn's buffer only."""
        self.messages.append(ChatMessage(Role(role), content))

    def _truncate(self, text: str) -> str:
        if self.max_history_length and len(text) > self.max_history_length:
            return text[:self.max_history_length]
        return text

    def build_messages(
        self,
        prompt: str,
        context: Sequence[Document] = (),
    ) -> list[ChatMessage]:
        """
        Rebuild the full message list for a turn without touching state.

        system + past (user, assistant) pairs + context chunks + prompt.
        """
        messages = list(self.initial_request)
        for past_prompt, past_response in zip(self.prompts, self.responses):
            messages.append(ChatMessage(Role.USER, self._truncate(past_prompt)))
            messages.append(ChatMessage(Role.ASSISTANT, self._truncate(past_response)))
        for document in context:
            messages.append(ChatMessage(Role.USER, f"{CONTEXT_PREFIX}{document.text}"))
        messages.append(ChatMessage(Role.USER, prompt))
        return messages

    async def retrieve_context(self, prompt: str) -> list[Document]:
        """Find the stored chunks closest to the prompt."""
        if not self.documents or self.embedder is None or self.match_limit <= 0:
            return []

        query = await self.embedder.embed(prompt)
        matches = find_most_similar(self.documents, query, self.match_limit)
        logger.info(f"Injecting {len(matches)} context chunks")
        return matches

    async def prepare_turn(self, prompt: str) -> list[ChatMessage]:
        """Load the buffer with the rebuilt conversation for ``prompt``."""
        if self.state is SessionState.PROCESSING_TURN:
            raise RuntimeError("A turn is already in progress")

        context = await self.retrieve_context(prompt)
        self.clear_messages()
        for message in self.build_messages(prompt, context)[1:]:
            self.append_message(message.role, message.content)
        self._pending_prompt = prompt
        return list(self.messages)

    async def _responses(self, messages: list[ChatMessage]) -> AsyncIterator[LLMResponse]:
        if self.params.stream:
            async with aclosing(self.provider.stream(messages, self.params)) as stream:
                async for response in stream:
                    yield response
        else:
            yield await self.provider.complete(messages, self.params)

    async def send_messages(self) -> AsyncIterator[str]:
        """
        Send the buffer and yield response content as it arrives.

        The concatenated content is recorded as the turn's response once
        the provider finishes. If the provider fails, ProviderError is
        raised and nothing is recorded; closing the generator early
        discards the turn the same way.
        """
        if self.state is SessionState.PROCESSING_TURN:
            raise RuntimeError("A turn is already in progress")

        self.state = SessionState.PROCESSING_TURN
        prompt = self._pending_prompt
        messages = list(self.messages)
        fragments: list[str] = []

        try:
            async with aclosing(self._responses(messages)) as responses:
                async for response in responses:
                    if not response.successful:
                        raise ProviderError(response.error or "Unknown provider error")
                    fragments.append(response.content)
                    yield response.content

            if prompt is not None:
                self.prompts.append(prompt)
                self.responses.append("".join(fragments))
                logger.debug(f"Recorded turn {len(self.prompts)}")
        finally:
            self._pending_prompt = None
            self.state = SessionState.AWAITING_INPUT

    async def ask(self, prompt: str) -> AsyncIterator[str]:
        """Run one full turn for ``prompt``."""
        await self.prepare_turn(prompt)
        async with aclosing(self.send_messages()) as fragments:
            async for fragment in fragments:
                yield fragment
