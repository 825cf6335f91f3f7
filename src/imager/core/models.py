"""Data model for the model registry and generation orchestrator.

Persisted types
---------------
SiteConfig
    Title, description and UI language of the studio.
ModelConfig
    One registered generation backend (provider model name + credential).
    Instances are frozen: the registry replaces entries with updated copies
    instead of mutating them, so a ``ModelConfig`` handed to a generation
    request is a stable snapshot.

Transient types
---------------
TextRequest / ImageRequest
    The two shapes of a generation request.  A source image and its mime type
    travel together in :class:`SourceImage`, so a request can never carry a
    mime type without image bytes.
GenerationResult
    A successful generation: the image as a ``data:`` URI plus its creation
    time.  Failures are raised as :mod:`imager.core.errors` exceptions.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import EncodingError

if TYPE_CHECKING:
    from .config import ImagerConfig

Language = Literal["en", "zh-TW"]

DEFAULT_MODEL_ID = "default-1"


class AspectRatio(str, Enum):
    """Output aspect ratios supported by the studio."""

    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"


class SiteConfig(BaseModel):
    """Site-wide presentation settings."""

    title: str = "AI Imager Studio"
    description: str = "Transform your ideas into reality with our advanced AI image engine."
    language: Language = "en"


DEFAULT_SITE_CONFIG = SiteConfig()


class ModelConfig(BaseModel):
    """A registered generation backend.

    Attributes:
        id: Opaque identifier, assigned on creation and never changed.
        name: Provider model identifier, e.g. ``"gemini-2.5-flash-image"``.
        api_key: Credential sent to the provider.  Hidden from ``repr``.
        is_default: Whether this is the default model.
        is_enabled: Whether the model may be selected.  Records written
            before this field existed are read back as enabled.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    api_key: str = Field(
        repr=False,
        validation_alias=AliasChoices("api_key", "apiKey"),
    )
    is_default: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_default", "isDefault"),
    )
    is_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("is_enabled", "isEnabled"),
    )

    @property
    def masked_key(self) -> str:
        """Credential reduced to a bullet mask and its last four characters."""
        if not self.api_key:
            return ""
        return "•" * 17 + self.api_key[-4:]


def bootstrap_model(config: ImagerConfig | None = None) -> ModelConfig:
    """Build the entry used to seed an empty store.

    Args:
        config: Configuration supplying the model name and credential.
            Defaults to the global configuration.

    Returns:
        A default, enabled ``ModelConfig`` with id ``"default-1"``.
    """
    if config is None:
        from .config import config as global_config

        config = global_config

    return ModelConfig(
        id=DEFAULT_MODEL_ID,
        name=config.default_model_name,
        api_key=config.api_key,
        is_default=True,
        is_enabled=True,
    )


class SourceImage(BaseModel):
    """An image attached to a request, already in the provider's inline form.

    Attributes:
        data: Base64 text of the image bytes, without any ``data:`` prefix.
        mime_type: Image mime type, e.g. ``"image/jpeg"``.
    """

    model_config = ConfigDict(frozen=True)

    data: str = Field(min_length=1, repr=False)
    mime_type: str = Field(pattern=r"^image/[\w.+-]+$")


class TextRequest(BaseModel):
    """Generate an image from a prompt alone."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    prompt: str
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    model: ModelConfig


class ImageRequest(BaseModel):
    """Derive an image from a source image, optionally guided by a prompt."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    prompt: str = ""
    source_image: SourceImage
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    model: ModelConfig


GenerationRequest = Annotated[Union[TextRequest, ImageRequest], Field(discriminator="kind")]


def build_request(
    prompt: str,
    model: ModelConfig,
    aspect_ratio: AspectRatio | str = AspectRatio.PORTRAIT,
    source_image: SourceImage | None = None,
) -> TextRequest | ImageRequest:
    """Pick the request variant that matches the inputs.

    Args:
        prompt: User prompt (may be empty when a source image is attached).
        model: Model snapshot to generate with.
        aspect_ratio: Output aspect ratio.
        source_image: Optional inline source image.

    Returns:
        ``ImageRequest`` when a source image is given, else ``TextRequest``.
    """
    if source_image is not None:
        return ImageRequest(
            prompt=prompt,
            source_image=source_image,
            aspect_ratio=AspectRatio(aspect_ratio),
            model=model,
        )
    return TextRequest(prompt=prompt, aspect_ratio=AspectRatio(aspect_ratio), model=model)


class GenerationResult(BaseModel):
    """A generated image.

    Attributes:
        image_url: ``data:image/png;base64,<payload>`` URI.
        created_at: When the provider response was received.
    """

    image_url: str = Field(repr=False)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def timestamp(self) -> int:
        """Creation time as milliseconds since the epoch."""
        return int(self.created_at.timestamp() * 1000)

    def image_bytes(self) -> bytes:
        """Decode the payload of :attr:`image_url`.

        Raises:
            EncodingError: If the URI is not a base64 ``data:`` URI.
        """
        header, sep, payload = self.image_url.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise EncodingError("Result is not a base64 data URI")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Result payload is not valid base64: {e}") from e

    def save(self, directory: Path) -> Path:
        """Write the image to ``generated-<timestamp>.png`` in *directory*.

        Args:
            directory: Target directory, created if missing.

        Returns:
            Path of the written file.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"generated-{self.timestamp}.png"
        path.write_bytes(self.image_bytes())
        return path
