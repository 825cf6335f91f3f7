"""Generation orchestration: one request in, one image (or one error) out.

Each call to :meth:`GenerationOrchestrator.generate` runs a fresh
:class:`GenerationJob` through a fixed sequence of states::

    IDLE -> VALIDATING -> DISPATCHED -> SUCCEEDED
                     \\            \\-> FAILED
                      \\-> FAILED

Validation happens before anything is sent to the provider:

- the model snapshot must carry a credential
- a text-only request must have a non-empty prompt

The provider is called exactly once per job.  There is no retry, no
timeout and no cancellation; a failed job is simply reported to the caller,
who may submit a new request.  Concurrent requests are not serialised here.

Usage
-----
::

    orchestrator = GenerationOrchestrator(GeminiProvider(config.provider_base_url))
    request = build_request("a lighthouse at dusk", registry.active_model())
    result = await orchestrator.generate(request)
    print(result.image_url[:40])
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from .encoding import RESULT_MIME_TYPE, to_data_uri
from .errors import ImagerError, ProviderError, ValidationError
from .models import GenerationResult, ImageRequest, TextRequest
from .provider import GENERIC_FAILURE_MESSAGE, ContentPart, GenerationProvider

logger = logging.getLogger(__name__)

# Instruction used when a source image is attached but no prompt was given.
ENHANCE_INSTRUCTION = "Enhance this image"


class GenerationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    DISPATCHED = "dispatched"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def build_parts(request: TextRequest | ImageRequest) -> list[ContentPart]:
    """Assemble the ordered content parts for *request*.

    The text part always comes first; an attached image follows it.
    """
    if isinstance(request, ImageRequest):
        text = request.prompt if request.prompt.strip() else ENHANCE_INSTRUCTION
        return [
            ContentPart(text=text),
            ContentPart(
                inline_data=request.source_image.data,
                mime_type=request.source_image.mime_type,
            ),
        ]
    return [ContentPart(text=request.prompt)]


def first_image(parts: list[ContentPart]) -> str:
    """Return the first inline image of *parts* as a PNG data URI.

    Raises:
        ProviderError: If no part carries image data.
    """
    for part in parts:
        if part.has_image:
            return to_data_uri(part.inline_data, RESULT_MIME_TYPE)
    raise ProviderError("No image in response")


class GenerationJob:
    """A single pass through the generation state machine.

    A job can only be run once; submit a new request for another attempt.
    """

    def __init__(self, request: TextRequest | ImageRequest, provider: GenerationProvider) -> None:
        self.request = request
        self._provider = provider
        self.state = GenerationState.IDLE
        self.error: ImagerError | None = None

    def _transition(self, state: GenerationState) -> None:
        logger.debug("Generation job %s: %s -> %s", id(self), self.state.value, state.value)
        self.state = state

    def _validate(self) -> None:
        request = self.request
        if not request.model.api_key.strip():
            raise ValidationError(
                "API key is missing. Please configure it in the admin panel."
            )
        if isinstance(request, TextRequest) and not request.prompt.strip():
            raise ValidationError("Please provide a prompt or upload an image.")

    async def run(self) -> GenerationResult:
        """Validate, dispatch and interpret the response.

        Raises:
            ValidationError: If the request fails a precondition.
            ProviderError: If the provider call fails or returns no image.
            RuntimeError: If the job has already been run.
        """
        if self.state is not GenerationState.IDLE:
            raise RuntimeError("Generation job has already been run")

        self._transition(GenerationState.VALIDATING)
        try:
            self._validate()
        except ValidationError as e:
            self._fail(e)
            raise

        parts = build_parts(self.request)
        model = self.request.model
        self._transition(GenerationState.DISPATCHED)
        logger.info(
            "Generating with %s (aspect=%s, parts=%d)",
            model.name,
            self.request.aspect_ratio.value,
            len(parts),
        )

        try:
            response_parts = await self._provider.generate_content(
                model.name, model.api_key, parts, self.request.aspect_ratio
            )
            image_url = first_image(response_parts)
        except ProviderError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = ProviderError(str(e) or GENERIC_FAILURE_MESSAGE)
            self._fail(error)
            raise error from e

        self._transition(GenerationState.SUCCEEDED)
        return GenerationResult(image_url=image_url, created_at=datetime.now())

    def _fail(self, error: ImagerError) -> None:
        self.error = error
        self._transition(GenerationState.FAILED)
        if isinstance(error, ProviderError):
            logger.debug("Generation with %s failed: %s", self.request.model.name, error)


class GenerationOrchestrator:
    """Turns generation requests into results via a provider.

    Args:
        provider: The external generation service to call.
    """

    def __init__(self, provider: GenerationProvider) -> None:
        self._provider = provider

    async def generate(self, request: TextRequest | ImageRequest) -> GenerationResult:
        """Run *request* through a fresh :class:`GenerationJob`."""
        return await GenerationJob(request, self._provider).run()
