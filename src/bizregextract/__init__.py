"""Business registration number extraction package."""

from bizregextract.exceptions import (
    BackendError,
    DependencyError,
    ExtractionError,
    InputError,
    ModelCallError,
    PackageError,
    RequestError,
    ResponseParseError,
    ResultValidationError,
    SettingsError,
)
from bizregextract.logging import configure_logging, get_logger
from bizregextract.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("bizregextract")

__all__ = [
    "BackendError",
    "DependencyError",
    "ExtractionError",
    "InputError",
    "ModelCallError",
    "PackageError",
    "RequestError",
    "ResponseParseError",
    "ResultValidationError",
    "Settings",
    "SettingsError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
]
