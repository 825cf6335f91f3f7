"""Imager Studio - model registry and generation orchestration for an AI image studio."""

__version__ = "0.3.0"

from imager.core.config import ImagerConfig, config
from imager.core.orchestrator import GenerationOrchestrator
from imager.core.registry import ModelRegistry

__all__ = [
    "GenerationOrchestrator",
    "ImagerConfig",
    "ModelRegistry",
    "config",
]
