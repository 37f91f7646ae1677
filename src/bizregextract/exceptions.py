"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass

from bizregextract.typing.enums import ErrorCode


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    error_code = ErrorCode.CONFIGURATION_ERROR
    status_code = 500

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when optional runtime dependencies are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"


@dataclass(frozen=True)
class BackendError(PackageError):
    """Raised when a provider transport is misconfigured or fails."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class RequestError(PackageError):
    """Base class for errors reported to the caller with a stable code."""

    error_code: ErrorCode
    message: str
    status_code: int = 400

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class InputError(RequestError):
    """Raised when form fields or the uploaded file are rejected."""


@dataclass(frozen=True)
class ExtractionError(RequestError):
    """Raised when the extraction step cannot produce a usable result."""

    error_code: ErrorCode = ErrorCode.EXTRACTION_ERROR
    message: str = "Failed to extract business registration numbers from image"
    status_code: int = 422


@dataclass(frozen=True)
class ModelCallError(ExtractionError):
    """Raised when the model call fails after the retry policy gives up."""

    attempts: int = 0
    model: str | None = None


@dataclass(frozen=True)
class ResponseParseError(ExtractionError):
    """Raised when the model output is not a structurally valid extraction."""

    fragment: str = ""

    def __str__(self) -> str:
        """Return error message payload with the offending text."""
        if not self.fragment:
            return self.message
        return f"{self.message} (response: {self.fragment!r})"


@dataclass(frozen=True)
class ResultValidationError(RequestError):
    """Raised when an extraction is empty or below the confidence threshold."""

    status_code: int = 422
    provider: str | None = None
    request_id: str | None = None
    client_request_id: str | None = None
    x_request_id: str | None = None
