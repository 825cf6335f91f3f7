"""Pydantic request and response models for the Imager HTTP API.

Request bodies deliberately do not enforce non-empty strings: empty names,
keys and prompts are rejected by the core so that the user sees the same
message whichever surface they came through.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from imager.core.models import AspectRatio, ModelConfig


class LoginRequest(BaseModel):
    """Body of ``POST /api/admin/login``."""

    username: str
    password: str = Field(repr=False)


class ModelRequest(BaseModel):
    """Body of ``POST /api/models`` and ``PUT /api/models/{id}``.

    Attributes:
        name: Provider model identifier.
        api_key: Credential for the provider.
    """

    name: str = ""
    api_key: str = Field(default="", repr=False)


class EnabledRequest(BaseModel):
    """Body of ``POST /api/models/{id}/enabled``."""

    enabled: bool


class ModelView(BaseModel):
    """A model as shown to clients; the credential is masked."""

    id: str
    name: str
    masked_key: str
    is_default: bool
    is_enabled: bool

    @classmethod
    def from_model(cls, model: ModelConfig) -> ModelView:
        return cls(
            id=model.id,
            name=model.name,
            masked_key=model.masked_key,
            is_default=model.is_default,
            is_enabled=model.is_enabled,
        )


class GenerateRequest(BaseModel):
    """Body of ``POST /api/generate``.

    Attributes:
        prompt: What to generate.  May be empty when ``source_image`` is set.
        aspect_ratio: ``"9:16"`` or ``"16:9"``.
        source_image: Optional source image as a ``data:`` URI (or bare
            base64 text).
    """

    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    source_image: str | None = Field(default=None, repr=False)


class GenerateResponse(BaseModel):
    """Response of ``POST /api/generate``."""

    image_url: str
    timestamp: int
    model_name: str
