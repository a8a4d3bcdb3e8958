"""Exception taxonomy for the generation client."""


class GenerationError(Exception):
    """Base class for generation failures surfaced to the conversation."""

    pass


class BackendConfigurationError(GenerationError):
    """Generation backend is missing or misconfigured.

    The message is user-facing and carries the remediation.
    """

    pass


class StructuredPayloadError(GenerationError):
    """Response text did not contain a parseable structured payload."""

    pass


class MalformedDocumentError(GenerationError):
    """Response text did not contain a usable markup document."""

    pass


class ElementEditError(GenerationError):
    """A scoped edit or whole-document revision could not be applied."""

    pass
