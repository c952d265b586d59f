"""Exception hierarchy for the Scholia core."""

from typing import Any


class ScholiaError(RuntimeError):
    """Base class for every error raised by the core."""


class MissingCredentialError(ScholiaError):
    """Raised when no credential is registered for the addressed provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"No API key configured for provider '{provider}'.")
        self.provider = provider


class UnknownProviderError(ScholiaError, ValueError):
    """Raised when a provider name has no registered adapter."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Provider '{provider}' is not registered.")
        self.provider = provider


class ProviderError(ScholiaError):
    """Raised when a vendor call fails or its response cannot be normalized."""

    def __init__(self, provider: str, message: str, vendor_detail: Any = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.vendor_detail = vendor_detail


class SafetyBlockError(ProviderError):
    """The vendor refused to answer (safety filter or empty candidate list)."""

    def __init__(self, provider: str, block_reason: str, vendor_detail: Any = None) -> None:
        super().__init__(provider, f"response blocked ({block_reason})", vendor_detail)
        self.block_reason = block_reason


class ExtractionError(ScholiaError):
    """Raised when no structured payload can be recovered from model text."""
