"""Shared fixtures and pytest marker auto-assignment by folder."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from bizregextract import logger
from bizregextract.api.dependencies import reset_runtime
from bizregextract.settings import Settings
from bizregextract.typing.models import ImageUpload

if TYPE_CHECKING:
    from collections.abc import Iterator

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "LOG_FILE",
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "CERT_PATH",
    "TIMEOUT",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_ORGANIZATION_ID",
    "OPENAI_PROJECT_ID",
    "RESEND_API_KEY",
    "RESEND_BASE_URL",
    "SENDER_EMAIL",
    "RECIPIENT_EMAIL",
    "PRODUCT_CODE_REGEX",
    "MIN_CONFIDENCE",
    "MOCK_LLM",
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Run every test without ambient env vars or `.env` and with fresh caches."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_runtime()
    yield
    reset_runtime()


@pytest.fixture
def settings() -> Settings:
    return Settings(resend_api_key="re_test_key", openai_api_key="sk-test")  # pragma: allowlist secret


@pytest.fixture
def mock_settings() -> Settings:
    return Settings(resend_api_key="re_test_key", mock_llm=True)  # pragma: allowlist secret


@pytest.fixture
def png_upload() -> ImageUpload:
    return ImageUpload(filename="table.png", content_type="image/png", data=PNG_BYTES)
