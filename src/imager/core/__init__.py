"""Core model registry and generation orchestration.

This package holds everything the presentation layer calls into:

- **ImagerConfig / config**: Pydantic Settings configuration (IMAGER_* env vars)
- **ConfigStore**: persistence of site config, models and the admin flag
- **ModelRegistry**: the model collection and its single-default invariant
- **GenerationOrchestrator**: one request, one provider call, one result
- **encoding**: source-image file to inline payload conversion
- **AdminSession**: admin login gate

Usage Example
-------------
    import asyncio

    from imager.core import (
        GeminiProvider,
        GenerationOrchestrator,
        JsonConfigStore,
        ModelRegistry,
        build_request,
        config,
    )

    registry = ModelRegistry(JsonConfigStore(config.data_dir))
    orchestrator = GenerationOrchestrator(GeminiProvider(config.provider_base_url))

    request = build_request("a paper boat on a pond", registry.active_model())
    result = asyncio.run(orchestrator.generate(request))
    result.save(config.outputs_dir)
"""

from imager.core.admin import AdminSession
from imager.core.config import ImagerConfig, config
from imager.core.config_store import ConfigStore, JsonConfigStore, MemoryConfigStore
from imager.core.errors import (
    EncodingError,
    ImagerError,
    NotFoundError,
    PolicyError,
    ProviderError,
    ValidationError,
)
from imager.core.models import (
    AspectRatio,
    GenerationResult,
    ImageRequest,
    ModelConfig,
    SiteConfig,
    SourceImage,
    TextRequest,
    build_request,
)
from imager.core.orchestrator import GenerationOrchestrator, GenerationState
from imager.core.provider import ContentPart, GeminiProvider, GenerationProvider
from imager.core.registry import ModelRegistry

__all__ = [
    "AdminSession",
    "AspectRatio",
    "ConfigStore",
    "ContentPart",
    "EncodingError",
    "GeminiProvider",
    "GenerationOrchestrator",
    "GenerationProvider",
    "GenerationResult",
    "GenerationState",
    "ImageRequest",
    "ImagerConfig",
    "ImagerError",
    "JsonConfigStore",
    "MemoryConfigStore",
    "ModelConfig",
    "ModelRegistry",
    "NotFoundError",
    "PolicyError",
    "ProviderError",
    "SiteConfig",
    "SourceImage",
    "TextRequest",
    "ValidationError",
    "build_request",
    "config",
]
