"""
Command line entry point for GPT CLI.

Modes:
1. complete (default): one-shot completion for --prompt, with piped
   stdin sent along as extra input
2. chat: interactive session with embedding context injection
3. embed: chunk stdin, embed the chunks and print them as JSON

SETUP:
1. Copy .env.example to .env and set OPENAI_API_KEY
2. Optionally copy config.yaml.example to config.yaml
3. Create embeddings:
   cat notes.txt | python -m gptcli embed > notes.json
4. Chat with them:
   python -m gptcli --file notes.json --file more.json chat
"""

import argparse
import asyncio
import logging
import sys
from typing import TextIO

from .chat import ChatSession, is_exit_command
from .config import Config, load_config
from .errors import GPTCLIError, InvalidArgumentError, ProviderError
from .llm import ChatMessage, GenerationParams, LLMProvider, Role, create_llm_provider, parse_logit_bias
from .memory import store
from .memory.document import Document, chunk_stream
from .memory.embeddings import EmbeddingService, create_embedding_service, embed_documents

logger = logging.getLogger("gptcli.cli")

BANNER = r"""
 #####                       #####  ######  #######     #####  #       ###
#     # #    #   ##   ##### #     # #     #    #       #     # #        #
#       #    #  #  #    #   #       #     #    #       #       #        #
#       ###### #    #   #   #  #### ######     #       #       #        #
#       #    # ######   #   #     # #          #       #       #        #
#     # #    # #    #   #   #     # #          #       #     # #        #
 #####  #    # #    #   #    #####  #          #        #####  ####### ###"""


def _common_options() -> argparse.ArgumentParser:
    """Options accepted both before and after the subcommand."""
    # SUPPRESS keeps a subcommand's unset option from clobbering a value
    # given before the subcommand
    common = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    common.add_argument("--api-key", help="Your OpenAI API key")
    common.add_argument("--base-url", help="The base URL for the OpenAI API")
    common.add_argument("--config", help="Path to the config.yaml file")
    common.add_argument("--model", help="The model ID to use")
    common.add_argument("--max-tokens", type=int,
                        help="The maximum number of tokens to generate in the completion")
    common.add_argument("--temperature", type=float,
                        help="The sampling temperature to use, between 0 and 2")
    common.add_argument("--top-p", type=float, help="The value for nucleus sampling")
    common.add_argument("--n", type=int,
                        help="The number of completions to generate for each prompt")
    common.add_argument("--stream", action=argparse.BooleanOptionalAction,
                        help="Whether to stream back partial progress")
    common.add_argument("--stop", action="append",
                        help="A sequence where the API will stop generating (repeatable, up to 4)")
    common.add_argument("--presence-penalty", type=float,
                        help="Penalty for new tokens based on their presence in the text so far")
    common.add_argument("--frequency-penalty", type=float,
                        help="Penalty for new tokens based on their frequency in the text so far")
    common.add_argument("--logit-bias",
                        help="Token likelihood overrides, as JSON or token:bias,token:bias")
    common.add_argument("--user", help="A unique identifier representing your end-user")
    common.add_argument("--file", action="append", dest="files",
                        help="Previously saved embedding file to load (repeatable)")
    common.add_argument("--directory", action="append", dest="directories",
                        help="Directory of previously saved embedding files to load (repeatable)")
    common.add_argument("--match-limit", type=int,
                        help="Number of embedding chunks to inject as context")
    common.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="gptcli",
        description="GPT Console Application",
        parents=[common],
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    complete_parser = subparsers.add_parser(
        "complete", parents=[common], help="One-shot completion (default)"
    )
    complete_parser.add_argument(
        "--prompt", default=argparse.SUPPRESS, help="The prompt for text generation"
    )

    chat_parser = subparsers.add_parser(
        "chat", parents=[common], help="Starts listening in chat mode"
    )
    chat_parser.add_argument(
        "--max-chat-history-length", type=int,
        help="The maximum message length to keep in chat history",
    )

    embed_parser = subparsers.add_parser(
        "embed", parents=[common], help="Create embeddings for data redirected via STDIN"
    )
    embed_parser.add_argument(
        "--chunk-size", type=int,
        help="The size to chunk down text into embeddable documents",
    )

    # --prompt is accepted without a subcommand as well
    parser.add_argument("--prompt", help="The prompt for text generation")
    return parser


_OVERRIDES = {
    "api_key": ("openai", "api_key"),
    "base_url": ("openai", "base_url"),
    "model": ("openai", "model"),
    "max_tokens": ("generation", "max_tokens"),
    "temperature": ("generation", "temperature"),
    "top_p": ("generation", "top_p"),
    "n": ("generation", "n"),
    "stream": ("generation", "stream"),
    "presence_penalty": ("generation", "presence_penalty"),
    "frequency_penalty": ("generation", "frequency_penalty"),
    "logit_bias": ("generation", "logit_bias"),
    "user": ("generation", "user"),
    "files": ("memory", "files"),
    "directories": ("memory", "directories"),
    "match_limit": ("memory", "match_limit"),
    "chunk_size": ("memory", "chunk_size"),
    "max_chat_history_length": ("memory", "max_chat_history_length"),
    "log_level": ("app", "log_level"),
}


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Copy every command line option that was given onto the config."""
    for name, (section, key) in _OVERRIDES.items():
        value = getattr(args, name, None)
        if value is not None:
            setattr(getattr(config, section), key, value)

    stop = getattr(args, "stop", None)
    if stop:
        config.generation.stop = ",".join(stop)
    return config


def generation_params(config: Config) -> GenerationParams:
    """Build request parameters from configuration."""
    gen = config.generation
    stop = [s for s in gen.stop.split(",") if s] if gen.stop else None
    if stop and len(stop) > 4:
        raise InvalidArgumentError("At most 4 stop sequences are allowed")

    return GenerationParams(
        model=config.openai.model,
        max_tokens=gen.max_tokens,
        temperature=gen.temperature,
        top_p=gen.top_p,
        n=gen.n,
        stream=gen.stream,
        stop=stop,
        presence_penalty=gen.presence_penalty,
        frequency_penalty=gen.frequency_penalty,
        logit_bias=parse_logit_bias(gen.logit_bias),
        user=gen.user,
    )


def load_documents(config: Config) -> list[Document]:
    """Load every configured embedding file and directory, or fail entirely."""
    if not config.memory.files and not config.memory.directories:
        return []
    return store.load_many(config.memory.files, config.memory.directories)


def _embedder(config: Config) -> EmbeddingService:
    return create_embedding_service(
        provider=config.openai.embedding_provider,
        api_key=config.openai.api_key,
        model=config.openai.embedding_model,
        dimensions=config.openai.embedding_dimensions,
        base_url=config.openai.base_url,
    )


def _provider(config: Config) -> LLMProvider:
    return create_llm_provider(
        "openai",
        openai_api_key=config.openai.api_key,
        openai_model=config.openai.model,
        openai_base_url=config.openai.base_url,
    )


async def run_embed(
    config: Config,
    stdin: TextIO,
    stdout: TextIO,
    embedder: EmbeddingService | None = None,
) -> int:
    """Chunk stdin, embed every chunk and write the JSON documents to stdout."""
    if stdin.isatty():
        raise InvalidArgumentError("Input required for embedding")

    documents = chunk_stream(stdin, config.memory.chunk_size, source="stdin")
    logger.info(f"Embedding {len(documents)} chunks")
    await embed_documents(embedder or _embedder(config), documents)

    store.save(documents, stdout)
    stdout.write("\n")
    return 0


async def run_complete(
    config: Config,
    prompt: str | None,
    stdin: TextIO,
    stdout: TextIO,
    stderr: TextIO,
    provider: LLMProvider | None = None,
    embedder: EmbeddingService | None = None,
) -> int:
    """One-shot completion. Piped stdin goes in as a user message before the prompt."""
    if not prompt:
        raise InvalidArgumentError("--prompt is required for completion mode")

    documents = load_documents(config)
    session = ChatSession(
        provider or _provider(config),
        generation_params(config),
        system_prompt=config.app.system_prompt,
        documents=documents,
        embedder=(embedder or _embedder(config)) if documents else None,
        match_limit=config.memory.match_limit,
    )

    await session.prepare_turn(prompt)
    if not stdin.isatty():
        piped = stdin.read()
        if piped:
            # Keep the prompt as the final message
            session.messages.insert(len(session.messages) - 1, ChatMessage(Role.USER, piped))

    try:
        async for fragment in session.send_messages():
            stdout.write(fragment)
            stdout.flush()
    except ProviderError as e:
        stderr.write(e.message.strip() + "\n")
        return 1

    stdout.write("\n")
    return 0


async def run_chat(session: ChatSession, stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
    """
    Interactive loop: one turn per input line.

    Exits on "exit" (any case) or end of input. A failed turn is reported
    on stderr and the session carries on.
    """
    stdout.write(BANNER + "\n")

    while True:
        stdout.write("\r\n? ")
        stdout.flush()
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break

        chat_input = line.rstrip("\r\n")
        if not chat_input.strip():
            continue
        if is_exit_command(chat_input):
            break

        try:
            async for fragment in session.ask(chat_input):
                stdout.write(fragment)
                stdout.flush()
        except ProviderError as e:
            stderr.write(e.message.strip() + "\n")
            stderr.flush()

        stdout.write("\n")

    return 0


async def _dispatch(config: Config, args: argparse.Namespace) -> int:
    command = args.command or "complete"

    if command == "embed":
        return await run_embed(config, sys.stdin, sys.stdout)

    if command == "chat":
        documents = load_documents(config)
        session = ChatSession(
            _provider(config),
            generation_params(config),
            system_prompt=config.app.system_prompt,
            documents=documents,
            embedder=_embedder(config) if documents else None,
            match_limit=config.memory.match_limit,
            max_history_length=config.memory.max_chat_history_length,
        )
        return await run_chat(session, sys.stdin, sys.stdout, sys.stderr)

    return await run_complete(
        config, getattr(args, "prompt", None), sys.stdin, sys.stdout, sys.stderr
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = apply_overrides(load_config(getattr(args, "config", None)), args)

    local_embed = args.command == "embed" and config.openai.embedding_provider == "local"
    errors = config.validate(require_api_key=not local_embed)
    if errors:
        for error in errors:
            print(f"Configuration error: {error}", file=sys.stderr)
        sys.exit(1)

    config.setup_logging()

    try:
        sys.exit(asyncio.run(_dispatch(config, args)))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(130)
    except GPTCLIError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
