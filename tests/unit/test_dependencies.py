from __future__ import annotations

import pytest

from bizregextract import dependencies
from bizregextract.exceptions import DependencyError


def test_ensure_cli_dependencies_for_serve_passes_when_installed(monkeypatch) -> None:
    monkeypatch.setattr(dependencies, "_is_module_available", lambda _name: True)

    dependencies.ensure_cli_dependencies_for_serve()


def test_ensure_cli_dependencies_for_serve_reports_missing(monkeypatch) -> None:
    monkeypatch.setattr(dependencies, "_is_module_available", lambda name: name != "uvicorn")

    with pytest.raises(DependencyError) as exc_info:
        dependencies.ensure_cli_dependencies_for_serve()

    assert exc_info.value.missing_package == ["uvicorn"]
    assert "serve" in str(exc_info.value)


def test_is_module_available() -> None:
    assert dependencies._is_module_available("json")
    assert not dependencies._is_module_available("definitely_not_a_module_xyz")
