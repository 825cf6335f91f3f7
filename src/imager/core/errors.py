"""Error taxonomy for the model registry and generation orchestrator.

Every error carries a message that is meant to be shown to the user as-is.
None of them are retried internally and none of them leave the registry or
orchestrator unusable.
"""


class ImagerError(Exception):
    """Base class for all user-presentable Imager errors."""


class ValidationError(ImagerError):
    """Caller input is missing or malformed.

    Always user-correctable (empty name, empty credential, empty prompt, ...).
    """


class NotFoundError(ImagerError):
    """A model identifier does not exist in the current collection.

    Usually means the caller is holding an outdated snapshot.
    """


class PolicyError(ImagerError):
    """An operation was refused because it would break a collection invariant."""


class ProviderError(ImagerError):
    """The external generation provider failed or returned an unusable response.

    Attributes:
        status_code: HTTP status returned by the provider, when there was one.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EncodingError(ImagerError):
    """A source image could not be converted into an inline payload."""
