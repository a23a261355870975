from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .interfaces import ConversionCapability


class ConversionError(Exception):
    """Base exception for all conversion errors."""

    code = "conversion_error"
    # Client errors are detected before any converter runs.
    client_error = False

    @property
    def message(self) -> str:
        return str(self)


class BadRequest(ConversionError):
    """Raised when a request is missing its file or its format pair."""

    code = "bad_request"
    client_error = True


class UnsupportedConversion(ConversionError):
    """Raised when no registered converter handles the requested pair."""

    code = "unsupported_conversion"
    client_error = True

    def __init__(self, message: str, capabilities: Sequence[ConversionCapability] = ()) -> None:
        super().__init__(message)
        self.capabilities = tuple(capabilities)


class ConversionFailed(ConversionError):
    """Raised inside a converter when the conversion itself did not succeed."""

    code = "conversion_failed"


class DependencyUnavailable(ConversionFailed):
    """A required external tool is missing or cannot be run."""

    code = "dependency_unavailable"


class ProcessingFailed(ConversionFailed):
    """The external tool ran but failed or produced no usable output."""

    code = "processing_failed"


class IOFailure(ConversionFailed):
    """Creating, writing or reading scratch resources failed."""

    code = "io_failure"


class RegistryFrozenError(RuntimeError):
    """Raised when registering a converter after startup registration closed."""
