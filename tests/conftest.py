"""Fixtures shared across the Retainer unit tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from retainer.infrastructure.providers.embedding import HashEmbeddingProvider
from retainer.infrastructure.providers.llm import MockLLMProvider
from retainer.infrastructure.stores.action import InMemoryActionStore
from retainer.infrastructure.stores.episode import InMemoryEpisodeStore
from retainer.infrastructure.stores.memory import InMemoryMemoryStore
from retainer.memory import AgentMemory, EpisodeRecorder

USER_ID = "acct_test"
AGENT_TYPE = "recovery"


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Each test sees settings built from its own environment."""
    from retainer.config import get_settings
    from retainer.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    path = tmp_path / "config"
    path.mkdir()
    return path


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Write {filename: toml text} into test_config_dir."""

    def write(files: dict[str, str]) -> None:
        for name, text in files.items():
            (test_config_dir / name).write_text(text)

    return write


@pytest.fixture
def embeddings() -> HashEmbeddingProvider:
    """Deterministic, offline embeddings."""
    return HashEmbeddingProvider(dimensions=64)


@pytest.fixture
def llm() -> MockLLMProvider:
    """Scriptable generative backend."""
    return MockLLMProvider()


@pytest.fixture
def memory_store() -> InMemoryMemoryStore:
    return InMemoryMemoryStore()


@pytest.fixture
def episode_store() -> InMemoryEpisodeStore:
    return InMemoryEpisodeStore()


@pytest.fixture
def action_store() -> InMemoryActionStore:
    return InMemoryActionStore()


@pytest.fixture
def agent_memory(memory_store, embeddings) -> AgentMemory:
    return AgentMemory(USER_ID, AGENT_TYPE, memory_store, embeddings)


@pytest.fixture
def episode_recorder(episode_store, embeddings) -> EpisodeRecorder:
    return EpisodeRecorder(USER_ID, AGENT_TYPE, episode_store, embeddings)
