"""
Configuration module for GPT CLI.

Loads application settings from config.yaml and secrets from environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Default config file path
CONFIG_FILE = Path("config.yaml")

EMBEDDING_PROVIDERS = ("openai", "local")

DEFAULT_SYSTEM_PROMPT = (
    "You are ChatGPT CLI, the helpful assistant, but you're running on a command line."
)


def _load_yaml_config(path: Path = CONFIG_FILE) -> dict:
    """Load configuration from YAML file."""
    if path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


# Loaded once per process; load_config() swaps in an explicit file
_yaml_config = _load_yaml_config()


def _get_yaml(section: str, key: str, default=None):
    """Get a value from the YAML config."""
    return _yaml_config.get(section, {}).get(key, default)


def _get_yaml_section(section: str, default=None):
    """Get an entire section from the YAML config."""
    return _yaml_config.get(section, default or {})


@dataclass
class OpenAIConfig:
    """OpenAI API configuration."""
    # Secrets from .env
    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    base_url: str = field(
        default_factory=lambda: os.getenv("OPENAI_BASE_URL", "") or _get_yaml("openai", "base_url", "")
    )
    # Settings from YAML
    model: str = field(default_factory=lambda: _get_yaml("openai", "model", "gpt-3.5-turbo"))
    embedding_provider: Literal["openai", "local"] = field(
        default_factory=lambda: _get_yaml("openai", "embedding_provider", "openai")
    )
    # Empty = the embedding provider's own default model
    embedding_model: str = field(
        default_factory=lambda: _get_yaml("openai", "embedding_model", "")
    )
    # None = use the model's default dimensions
    embedding_dimensions: int | None = field(
        default_factory=lambda: _get_yaml("openai", "embedding_dimensions", None)
    )


@dataclass
class GenerationConfig:
    """Sampling parameters sent with every completion request."""
    max_tokens: int = field(default_factory=lambda: _get_yaml("generation", "max_tokens", 1000))
    temperature: float | None = field(
        default_factory=lambda: _get_yaml("generation", "temperature", None)
    )
    top_p: float | None = field(default_factory=lambda: _get_yaml("generation", "top_p", None))
    n: int = field(default_factory=lambda: _get_yaml("generation", "n", 1))
    stream: bool = field(default_factory=lambda: _get_yaml("generation", "stream", True))
    stop: str | None = field(default_factory=lambda: _get_yaml("generation", "stop", None))
    presence_penalty: float | None = field(
        default_factory=lambda: _get_yaml("generation", "presence_penalty", None)
    )
    frequency_penalty: float | None = field(
        default_factory=lambda: _get_yaml("generation", "frequency_penalty", None)
    )
    logit_bias: str | None = field(
        default_factory=lambda: _get_yaml("generation", "logit_bias", None)
    )
    user: str | None = field(default_factory=lambda: _get_yaml("generation", "user", None))


@dataclass
class MemoryConfig:
    """Embedding memory configuration."""
    chunk_size: int = field(default_factory=lambda: _get_yaml("memory", "chunk_size", 1024))
    match_limit: int = field(default_factory=lambda: _get_yaml("memory", "match_limit", 3))
    max_chat_history_length: int = field(
        default_factory=lambda: _get_yaml("memory", "max_chat_history_length", 1024)
    )
    files: list[str] = field(default_factory=lambda: _get_yaml("memory", "files", []) or [])
    directories: list[str] = field(
        default_factory=lambda: _get_yaml("memory", "directories", []) or []
    )


@dataclass
class AppConfig:
    """Application settings from YAML."""
    log_level: str = field(default_factory=lambda: _get_yaml("logging", "level", "WARNING"))
    system_prompt: str = field(
        default_factory=lambda: _get_yaml("app", "system_prompt", DEFAULT_SYSTEM_PROMPT)
    )


@dataclass
class Config:
    """Main configuration container."""
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    app: AppConfig = field(default_factory=AppConfig)

    def setup_logging(self) -> logging.Logger:
        """Configure and return the application logger."""
        # Reset existing handlers to ensure clean configuration
        root = logging.getLogger()
        if root.handlers:
            for handler in root.handlers[:]:
                root.removeHandler(handler)

        # basicConfig writes to stderr, keeping stdout for model output
        logging.basicConfig(
            level=getattr(logging, self.app.log_level.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        return logging.getLogger("gptcli")

    def validate(self, require_api_key: bool = True) -> list[str]:
        """
        Validate configuration and return list of missing/invalid settings.

        Args:
            require_api_key: Whether the command about to run calls OpenAI.

        Returns:
            List of validation error messages, empty if all valid.
        """
        errors = []

        if require_api_key and not self.openai.api_key:
            errors.append("OPENAI_API_KEY (or --api-key) is required")

        if self.openai.embedding_provider not in EMBEDDING_PROVIDERS:
            errors.append(
                f"embedding_provider must be one of {', '.join(EMBEDDING_PROVIDERS)}, "
                f"got {self.openai.embedding_provider!r}"
            )

        if self.memory.chunk_size <= 0:
            errors.append(f"chunk_size must be positive, got {self.memory.chunk_size}")

        if self.memory.match_limit < 0:
            errors.append(f"match_limit must not be negative, got {self.memory.match_limit}")

        if self.app.log_level.upper() not in logging.getLevelNamesMapping():
            errors.append(f"Unknown log level: {self.app.log_level}")

        return errors


def load_config(path: str | Path | None = None) -> Config:
    """
    Load configuration once for this process.

    Args:
        path: Optional YAML file; defaults to ./config.yaml.

    Returns:
        A fresh Config built from the YAML file and the environment.
    """
    global _yaml_config
    _yaml_config = _load_yaml_config(Path(path) if path else CONFIG_FILE)
    return Config()
