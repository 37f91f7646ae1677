"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class Provider(_EnumMixin):
    """Source of an extraction result."""

    OPENAI = "openai"
    MOCK = "mock"


class ErrorCode(_EnumMixin):
    """Machine-readable error codes returned to API callers."""

    INVALID_CONTENT_TYPE = "invalid_content_type"
    INVALID_FORM_DATA = "invalid_form_data"
    MISSING_PRODUCT_CODE = "missing_product_code"
    NO_VALID_PRODUCT_CODE = "no_valid_product_code"
    INVALID_PRODUCT_CODE = "invalid_product_code"
    MISSING_FILE = "missing_file"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INVALID_FILE_TYPE = "invalid_file_type"
    EXTRACTION_ERROR = "extraction_error"
    EXTRACTION_FAILED = "extraction_failed"
    LOW_CONFIDENCE = "low_confidence"
    CONFIGURATION_ERROR = "configuration_error"
    CONNECTION_FAILED = "connection_failed"
    API_KEY_INVALID = "api_key_invalid"  # noqa: S105
    INTERNAL_ERROR = "internal_error"


class CallState(_EnumMixin):
    """States of the model call retry machine."""

    SELECTING_MODEL = "selecting_model"
    CALLING = "calling"
    BACKING_OFF = "backing_off"
    EXHAUSTED = "exhausted"
    DONE = "done"


class FailureKind(_EnumMixin):
    """Classification of a failed model call."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    MODEL_NOT_FOUND = "model_not_found"
    OTHER = "other"
