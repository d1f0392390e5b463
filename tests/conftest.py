"""
Shared pytest fixtures for gptcli tests.

This module provides:
- Temporary embedding files and directories
- Mock external services (AsyncOpenAI)
- Streaming and whole-response generation parameters
- Sample data fixtures
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gptcli.llm.base import GenerationParams
from gptcli.memory.document import Document
from tests.fixtures import make_document


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_documents() -> list[Document]:
    """Three embedded documents pointing in different directions."""
    return [
        make_document("apples are red", [1.0, 0.0, 0.0]),
        make_document("the sky is blue", [0.0, 1.0, 0.0]),
        make_document("grass is green", [0.0, 0.0, 1.0]),
    ]


@pytest.fixture
def embedding_dir(tmp_path) -> Path:
    """A directory holding two embedding files."""
    directory = tmp_path / "embeddings"
    directory.mkdir()
    (directory / "a.json").write_text(
        json.dumps([{"text": "from a", "embedding": [1.0, 0.0]}])
    )
    (directory / "b.json").write_text(
        json.dumps([
            {"text": "from b 1", "embedding": [0.0, 1.0]},
            {"text": "from b 2", "embedding": [0.5, 0.5]},
        ])
    )
    return directory


@pytest.fixture
def sample_config_yaml(tmp_path) -> Path:
    """Create a sample config.yaml file."""
    config_path = tmp_path / "config.yaml"
    config_content = """
openai:
  model: gpt-4o-mini
  embedding_model: text-embedding-3-small

generation:
  max_tokens: 256
  temperature: 0.2
  stream: false

memory:
  chunk_size: 512
  match_limit: 5
  files:
    - notes.json

app:
  system_prompt: You are a test assistant.

logging:
  level: DEBUG
"""
    config_path.write_text(config_content)
    return config_path


# =============================================================================
# Generation Parameters
# =============================================================================


@pytest.fixture
def stream_params() -> GenerationParams:
    return GenerationParams(model="fake-model", stream=True)


@pytest.fixture
def whole_params() -> GenerationParams:
    return GenerationParams(model="fake-model", stream=False)


# =============================================================================
# Mock External Services
# =============================================================================


@pytest.fixture
def mock_openai():
    """Mock AsyncOpenAI for OpenAI API tests."""
    # Patch at the module where it's imported, not where it's defined
    with patch("gptcli.llm.openai_client.AsyncOpenAI") as mock_client_class:
        mock_client = MagicMock()

        # Create mock response
        mock_message = MagicMock()
        mock_message.content = "This is a test response from OpenAI."

        mock_choice = MagicMock()
        mock_choice.message = mock_message

        mock_response = MagicMock()
        mock_response.choices = [mock_choice]
        mock_response.model = "gpt-3.5-turbo"
        mock_response.usage = MagicMock(
            prompt_tokens=100,
            completion_tokens=50,
            total_tokens=150,
        )

        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client
        yield mock_client_class


@pytest.fixture
def mock_openai_embeddings():
    """Mock AsyncOpenAI for the embedding service."""
    with patch("gptcli.memory.embeddings.AsyncOpenAI") as mock_client_class:
        mock_client = MagicMock()

        async def create(model, input, **kwargs):
            texts = [input] if isinstance(input, str) else input
            # Return out of order to exercise index sorting
            data = [
                MagicMock(index=i, embedding=[float(i), float(len(t))])
                for i, t in enumerate(texts)
            ]
            return MagicMock(data=list(reversed(data)))

        mock_client.embeddings.create = AsyncMock(side_effect=create)
        mock_client_class.return_value = mock_client
        yield mock_client_class


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables for testing."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
