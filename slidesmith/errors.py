# slidesmith/errors.py
"""
Error taxonomy.

Configuration and remote errors abort the operation that raised them and
carry a user-readable message. Local validation problems (empty deck, bad
index during tolerant edits) are not exceptions; those edits are no-ops.
"""


class SlidesmithError(Exception):
    """Base class for every error raised on purpose by slidesmith."""


class MissingApiKeyError(SlidesmithError, ValueError):
    """No API key configured for the selected provider."""

    def __init__(self, provider: str):
        super().__init__(f"API Key for {provider} is missing.")
        self.provider = provider


class ProviderError(SlidesmithError, RuntimeError):
    """The remote LLM call failed or returned something unusable."""


class UnsupportedProviderError(ProviderError):
    pass


class MalformedResponseError(ProviderError):
    pass


class ContentPolicyError(ProviderError):
    """Image generation was refused by the provider's safety filter."""


class ExtractionError(SlidesmithError, ValueError):
    pass


class ExportError(SlidesmithError, RuntimeError):
    pass


class DialogBusyError(SlidesmithError):
    """A dialog of the same kind is already open or still running."""


class WorkflowError(SlidesmithError):
    """Operation not allowed in the current application state."""
