"""Shared pytest fixtures for Imager tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from imager.core.config import ImagerConfig
from imager.core.config_store import JsonConfigStore, MemoryConfigStore
from imager.core.errors import ProviderError
from imager.core.models import AspectRatio, ModelConfig
from imager.core.provider import ContentPart, GenerationProvider
from imager.core.registry import ModelRegistry


class FakeProvider(GenerationProvider):
    """In-process provider that records calls and returns canned parts.

    Attributes:
        calls: One ``(model_name, api_key, parts, aspect_ratio)`` tuple per call.
        response: Parts returned by the next call.
        error: If set, raised instead of returning ``response``.
    """

    def __init__(self, response: list[ContentPart] | None = None) -> None:
        self.calls: list[tuple[str, str, list[ContentPart], AspectRatio]] = []
        self.response = response if response is not None else [ContentPart(inline_data="aW1hZ2U=")]
        self.error: Exception | None = None

    async def generate_content(self, model_name, api_key, parts, aspect_ratio):
        self.calls.append((model_name, api_key, parts, aspect_ratio))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ImagerConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        ImagerConfig instance for testing
    """
    return ImagerConfig(
        _env_file=None,
        data_dir=str(temp_dir / "data"),
        outputs_dir=str(temp_dir / "outputs"),
        default_model_name="gemini-2.5-flash-image",
        api_key="bootstrap-key",
        admin_username="admin",
        admin_password="secret",
    )


@pytest.fixture
def memory_store(test_config: ImagerConfig) -> MemoryConfigStore:
    """In-memory store that starts out empty (never written)."""
    return MemoryConfigStore(test_config)


@pytest.fixture
def empty_store(test_config: ImagerConfig) -> MemoryConfigStore:
    """In-memory store holding an explicitly empty model list."""
    store = MemoryConfigStore(test_config)
    store.write_models([])
    return store


@pytest.fixture
def json_store(test_config: ImagerConfig) -> JsonConfigStore:
    """File-backed store rooted in the test data directory."""
    return JsonConfigStore(test_config.data_dir, test_config)


@pytest.fixture
def registry(empty_store: MemoryConfigStore) -> ModelRegistry:
    """Registry over an empty collection."""
    return ModelRegistry(empty_store)


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider double returning a single inline image part."""
    return FakeProvider()


@pytest.fixture
def sample_model() -> ModelConfig:
    """A default, enabled model with a credential."""
    return ModelConfig(
        id="m-1",
        name="gemini-2.5-flash-image",
        api_key="key-1234",
        is_default=True,
        is_enabled=True,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """Bytes of a small PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Bytes of a small JPEG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(0, 0, 255)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def failing_provider() -> FakeProvider:
    """Provider double that fails like a rejected credential."""
    provider = FakeProvider()
    provider.error = ProviderError("API key not valid. Please pass a valid API key.", 400)
    return provider
