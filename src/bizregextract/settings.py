"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
import re
import ssl
from functools import lru_cache
from pathlib import Path
from typing import Any

import httpx
from pydantic import Field, PrivateAttr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bizregextract.exceptions import SettingsError

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-5-mini-2025-08-07"
DEFAULT_PRODUCT_CODE_REGEX = r"^\d{5}$"


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "bizregextract"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )
    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )
    all_proxy: str | None = Field(default=None, validation_alias="ALL_PROXY", description="All proxy URL.")
    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to SSL certificate.",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        validation_alias="TIMEOUT",
        description="Provider request timeout in seconds.",
    )

    openai_api_key: str | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="API key for OpenAI. Required unless MOCK_LLM is enabled.",
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias="OPENAI_BASE_URL",
        description="Optional base URL override for the OpenAI API.",
    )
    openai_model: str = Field(
        default=DEFAULT_OPENAI_MODEL,
        validation_alias="OPENAI_MODEL",
        description="Model override. A value other than the primary model skips catalog selection.",
    )
    openai_organization_id: str | None = Field(default=None, validation_alias="OPENAI_ORGANIZATION_ID")
    openai_project_id: str | None = Field(default=None, validation_alias="OPENAI_PROJECT_ID")

    resend_api_key: str = Field(
        min_length=1,
        validation_alias="RESEND_API_KEY",
        description="API key for the Resend email API.",
    )
    resend_base_url: str = Field(
        default="https://api.resend.com",
        validation_alias="RESEND_BASE_URL",
        description="Base URL of the Resend API.",
    )
    sender_email: str = Field(
        default="Acme <onboarding@resend.dev>",
        validation_alias="SENDER_EMAIL",
        description="Sender address for result emails.",
    )
    recipient_email: str = Field(
        default="results@example.com",
        validation_alias="RECIPIENT_EMAIL",
        description="Fixed recipient of result emails.",
    )

    product_code_regex: str = Field(
        default=DEFAULT_PRODUCT_CODE_REGEX,
        validation_alias="PRODUCT_CODE_REGEX",
        description="Regular expression every normalized product code must match.",
    )
    min_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        validation_alias="MIN_CONFIDENCE",
        description="Minimum batch confidence accepted from the model.",
    )
    mock_llm: bool = Field(
        default=False,
        validation_alias="MOCK_LLM",
        description="Return a fixed synthetic result instead of calling the model.",
    )

    _product_code_pattern: re.Pattern[str] | None = PrivateAttr(default=None)
    _http_client: httpx.Client | None = PrivateAttr(default=None)

    @field_validator("product_code_regex")
    @classmethod
    def _validate_product_code_regex(cls, value: str) -> str:
        """Ensure the product code pattern compiles.

        Args:
            value (str): Raw pattern.

        Raises:
            ValueError: If the pattern is not a valid regular expression.

        Returns:
            str: Validated pattern.
        """
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid PRODUCT_CODE_REGEX {value!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _require_openai_key(self) -> Settings:
        """Require the OpenAI key unless mock mode is enabled.

        Raises:
            ValueError: If the key is missing outside mock mode.

        Returns:
            Settings: Validated settings.
        """
        if not self.mock_llm and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required unless MOCK_LLM is enabled")
        return self

    def model_post_init(self, __context: object, /) -> None:
        """Initialize derived runtime settings."""
        self._product_code_pattern = re.compile(self.product_code_regex)

    @property
    def product_code_pattern(self) -> re.Pattern[str]:
        """Return the compiled product code pattern."""
        if self._product_code_pattern is None:
            self._product_code_pattern = re.compile(self.product_code_regex)
        return self._product_code_pattern

    @property
    def http_client(self) -> httpx.Client:
        """Return the shared HTTPX client, creating it on first use."""
        if self._http_client is None:
            self._http_client = httpx.Client(**build_httpx_client_kwargs(self))
        return self._http_client

    def close_http_client(self) -> None:
        """Close the shared HTTPX client (best effort)."""
        client, self._http_client = self._http_client, None
        if client is None:
            return
        try:
            client.close()
        except Exception:
            logger.warning("Failed to close HTTPX client")


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path)
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def build_httpx_client_kwargs(settings: Settings) -> dict[str, Any]:
    """Build kwargs used for `httpx.Client`.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        dict[str, Any]: Arguments for the client constructor.
    """
    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
    }
    proxy_url = settings.https_proxy or settings.http_proxy or settings.all_proxy
    if proxy_url:
        kwargs["proxy"] = proxy_url
    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
